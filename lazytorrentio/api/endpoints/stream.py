from fastapi import APIRouter, Request

from lazytorrentio.core.exceptions import BadRequestError
from lazytorrentio.services.aggregation import SUPPORTED_TYPES
from lazytorrentio.utils.parsing import parse_stremio_id

streams = APIRouter()


@streams.get(
    "/stream/{media_type}/{media_id}.json",
    tags=["Stremio"],
    summary="Streams",
    description="Returns the deduplicated streams for a movie or an episode.",
)
async def stream(request: Request, media_type: str, media_id: str):
    if media_type not in SUPPORTED_TYPES:
        raise BadRequestError("Invalid type")

    parsed = parse_stremio_id(media_id)
    return await request.app.state.aggregator.resolve_streams(media_type, parsed)
