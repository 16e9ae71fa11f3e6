"""
Purchase endpoints.

Verification failure is reported as 402 and a purchase that could not be
recorded as 503, so the client never assumes ownership it does not have.
"""

from fastapi import APIRouter, Depends, HTTPException

from app.deps import Services, get_services
from app.errors import StorageFailure, VerificationFailure

router = APIRouter(prefix="/purchases")


@router.get("")
async def get_purchases(services: Services = Depends(get_services)):
    """Owned product ids."""
    return {"purchased": services.purchases.get_purchased_content()}


@router.get("/menu")
async def get_purchase_menu(services: Services = Depends(get_services)):
    return services.purchases.get_purchase_menu()


@router.post("/restore")
async def restore_purchases(services: Services = Depends(get_services)):
    restored = await services.purchases.restore_purchases()
    return {"restored": restored}


@router.post("/{slug}")
async def buy_pack(slug: str, services: Services = Depends(get_services)):
    """Initiate, verify and record a purchase."""
    try:
        return await services.purchases.buy(slug)
    except VerificationFailure as e:
        raise HTTPException(status_code=402, detail=f"Purchase not verified: {e}")
    except StorageFailure as e:
        raise HTTPException(status_code=503, detail=f"Purchase not recorded: {e}")
