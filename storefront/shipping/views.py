import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from storefront.errors import CheckoutError
from storefront.shipping import service as shipping_service
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/shipping", tags=["Shipping API"])


class QuoteRequest(BaseModel):
    postalCode: str = ""
    cartItems: List[Dict[str, Any]] = Field(default_factory=list)


# module storefront.shipping.views
@router.post("/quote", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def shipping_quote(body: QuoteRequest):
    """
    Cotação de frete (Melhor Envio).
    - Réponse: {quotes: [{id, name, price, deliveryTime, deliveryRange, company, type}] | null,
      freeShippingThreshold, isFreeShipping, subtotal, message?}
    - Erreurs: 400 (CEP/sacola), 502 (transporteur indisponible), 503 (token absent)
    """
    try:
        return shipping_service.quote(body.postalCode, body.cartItems)
    except (HTTPException, CheckoutError):
        raise
    except Exception:
        logger.exception("Erreur shipping_quote")
        raise HTTPException(status_code=500, detail="Erro ao consultar frete. Tente novamente em instantes.")
