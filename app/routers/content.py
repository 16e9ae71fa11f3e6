"""
Content endpoints: pack menu and single packs.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException

from app.deps import Services, get_services
from app.errors import NotFoundFailure, NotOwnedFailure
from app.models import ContentPack, PackSummary

router = APIRouter()


@router.get("/packs", response_model=List[PackSummary])
async def list_packs(services: Services = Depends(get_services)):
    """Pack summaries for the main menu."""
    return await services.content.list_packs()


@router.get("/packs/{slug}", response_model=ContentPack)
async def get_pack(slug: str, services: Services = Depends(get_services)):
    """One transformed pack; 403 until it is free or purchased."""
    try:
        return await services.content.open_pack(slug)
    except NotFoundFailure as e:
        raise HTTPException(status_code=404, detail=str(e))
    except NotOwnedFailure as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post("/cache/invalidate")
async def invalidate_cache(services: Services = Depends(get_services)):
    """Force the next read to go back to the catalog server."""
    services.cache.invalidate()
    return {"status": "invalidated"}
