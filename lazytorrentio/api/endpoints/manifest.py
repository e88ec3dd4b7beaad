from fastapi import APIRouter

from lazytorrentio.core.models import settings

router = APIRouter()


@router.get(
    "/manifest.json",
    tags=["Stremio"],
    summary="Add-on Manifest",
    description="Returns the add-on manifest.",
)
async def manifest():
    return {
        "id": settings.ADDON_ID,
        "version": "1.0.0",
        "name": settings.ADDON_NAME,
        "description": "On-demand streams addon",
        "catalogs": [],
        "resources": ["stream"],
        "types": ["movie", "series"],
        "idPrefixes": ["tt"],
    }
