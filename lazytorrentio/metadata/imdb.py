from typing import Optional

from lazytorrentio.core.logger import logger
from lazytorrentio.core.models import settings
from lazytorrentio.scrapers.models import TitleBasics
from lazytorrentio.utils.http_client import fetch_json


async def get_title_basics(base_id: str) -> Optional[TitleBasics]:
    metadata = await fetch_json(f"{settings.IMDB_SUGGESTION_URL}/a/{base_id}.json")
    if not isinstance(metadata, dict):
        logger.warning(f"No IMDB metadata for {base_id}")
        return None

    for element in metadata.get("d") or []:
        if not isinstance(element, dict) or element.get("id") != base_id:
            continue

        return TitleBasics(
            primary_title=element.get("l"),
            title_type=element.get("qid"),
        )

    return None
