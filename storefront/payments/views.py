import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from storefront.errors import CheckoutError
from storefront.payments import service as payments_service
from storefront.payments.models import CheckoutRequest
from storefront.utils.rate_limit import optional_rate_limit
from storefront.utils.security import get_optional_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/checkout", tags=["Checkout API"])


# module storefront.payments.views
@router.post("/pagarme", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def checkout_pagarme(body: CheckoutRequest, user: Optional[Dict[str, Any]] = Depends(get_optional_user)):
    """
    Checkout transparent Pagar.me (PIX ou cartão), invité autorisé.
    - Sécurité: rate limit (10 req / 60s); l'utilisateur connecté (si présent) prime sur body.userId
    - Réponses:
      PIX    -> {orderId, paymentMethod: "pix", pix: {qr_code, qr_code_url, pix_copy_paste, expires_at, expires_in}}
      Cartão -> {orderId, paymentMethod: "card", status: approved|pending|declined, gatewayStatus}
    - Erreurs métier (CheckoutError) -> JSON {error, code, retryable} via le handler global
    - Cartão recusado -> 402 (réservation libérée)
    """
    try:
        result = payments_service.submit_checkout(body, user_id=(user or {}).get("id"))
    except (HTTPException, CheckoutError):
        raise
    except Exception:
        logger.exception("Erreur checkout_pagarme")
        raise HTTPException(status_code=500, detail="Erro interno ao processar o checkout.")

    if result.card_status == payments_service.DECLINED:
        payload = result.to_dict()
        payload["error"] = "Pagamento recusado. Verifique os dados do cartão ou tente outro meio de pagamento."
        return JSONResponse(payload, status_code=402)
    return result.to_dict()
