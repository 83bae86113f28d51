# module storefront.inventory.views
"""Endpoints inventaire.
- POST /api/inventory/reserve: réserve du stock avant checkout (expire après 1h). 409 si insuffisant.
- GET  /api/inventory/status: état du stock (tous les produits actifs ou ?product_id=...).
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from storefront.errors import CheckoutError
from storefront.inventory import service as inventory_service
from storefront.inventory.models import ReservationLine
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/inventory", tags=["Inventory API"])


class ReserveItem(BaseModel):
    productId: str = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class ReserveRequest(BaseModel):
    items: List[ReserveItem] = Field(..., min_length=1)
    sessionId: Optional[str] = None
    customerEmail: Optional[str] = None
    userId: Optional[str] = None


@router.post("/reserve", dependencies=[Depends(optional_rate_limit(times=20, seconds=60))])
def reserve(body: ReserveRequest):
    """
    Réserve chaque article indépendamment.
    Réponse: {perItem: [{productId, reserved, reason?, reservationId?, expiresAt?}]}
    - 200 si tout est réservé, 409 si au moins un article est refusé (les autres restent réservés).
    """
    lines = [ReservationLine(product_id=i.productId, quantity=i.quantity) for i in body.items]
    outcomes = inventory_service.reserve_items(
        lines,
        session_prefix=body.sessionId or inventory_service.new_session_prefix(),
        customer_email=body.customerEmail,
        user_id=body.userId,
    )
    payload = {"perItem": [o.to_dict() for o in outcomes]}
    all_ok = all(o.reserved for o in outcomes)
    return JSONResponse(payload, status_code=200 if all_ok else 409)


@router.get("/status")
def inventory_status(product_id: Optional[str] = None):
    try:
        rows = inventory_service.status(product_id)
    except CheckoutError:
        raise
    except Exception:
        logger.exception("Erreur inventory_status")
        raise HTTPException(status_code=500, detail="Failed to fetch inventory status")
    if product_id:
        if not rows:
            raise HTTPException(status_code=404, detail="Product not found")
        return rows[0]
    return rows
