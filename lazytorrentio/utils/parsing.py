from lazytorrentio.core.exceptions import BadRequestError
from lazytorrentio.scrapers.models import ParsedIdentifier


def _parse_positive_int(value: str):
    if value is None or value == "":
        return None
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number > 0 else None


def parse_stremio_id(media_id: str) -> ParsedIdentifier:
    info = media_id.replace("imdb_id:", "").strip().split(":")

    base_id = info[0].strip()
    if not base_id:
        raise BadRequestError("Invalid id")

    season = _parse_positive_int(info[1]) if len(info) > 1 else None
    episode = _parse_positive_int(info[2]) if len(info) > 2 else None
    return ParsedIdentifier(base_id=base_id, season=season, episode=episode)
