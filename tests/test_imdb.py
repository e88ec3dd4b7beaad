import asyncio

from lazytorrentio.metadata import imdb
from lazytorrentio.metadata.imdb import get_title_basics


def test_title_basics_from_suggestion(monkeypatch):
    urls = []

    async def fake_fetch_json(url, **kwargs):
        urls.append(url)
        return {
            "d": [
                {"id": "tt0944948", "l": "Not It", "qid": "movie"},
                {"id": "tt0944947", "l": "Game of Thrones", "qid": "tvSeries"},
            ]
        }

    monkeypatch.setattr(imdb, "fetch_json", fake_fetch_json)

    basics = asyncio.run(get_title_basics("tt0944947"))

    assert basics.primary_title == "Game of Thrones"
    assert basics.title_type == "tvSeries"
    assert urls == ["https://v3.sg.media-imdb.com/suggestion/a/tt0944947.json"]


def test_title_basics_missing(monkeypatch):
    async def no_match(url, **kwargs):
        return {"d": [{"id": "tt1", "l": "Other"}]}

    async def failed(url, **kwargs):
        return None

    monkeypatch.setattr(imdb, "fetch_json", no_match)
    assert asyncio.run(get_title_basics("tt2")) is None

    monkeypatch.setattr(imdb, "fetch_json", failed)
    assert asyncio.run(get_title_basics("tt2")) is None
