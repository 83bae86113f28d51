import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from storefront.errors import CheckoutError
from storefront.orders import service as orders_service
from storefront.payments import pagarme_client
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Orders API"])


# module storefront.orders.views
@router.get("/api/orders/verify", dependencies=[Depends(optional_rate_limit(times=60, seconds=60))])
def verify_order(
    order_id: Optional[str] = None,
    session_id: Optional[str] = None,
    payment_intent: Optional[str] = None,
):
    """
    Vérifie si le webhook a déjà créé la commande (invité: service role, pas de session requise).
    - Paramètre: order_id (Pagar.me), session_id ou payment_intent
    - Réponses: {exists: true, orderId, status, createdAt} | {exists: false, message}
    - Erreurs: 400 si aucun identifiant, 500 si la base est indisponible
    """
    gateway_id = order_id or session_id or payment_intent
    if not gateway_id:
        raise HTTPException(status_code=400, detail="order_id, session_id ou payment_intent é obrigatório")
    try:
        return orders_service.verify_order(gateway_id)
    except CheckoutError:
        raise
    except Exception:
        logger.exception("Erreur verify_order")
        raise HTTPException(status_code=500, detail="Erro ao verificar pedido")


@router.get("/api/webhooks/pagarme", include_in_schema=False)
def webhook_pagarme_get():
    return JSONResponse({"error": "Webhooks Pagar.me aceitam apenas POST."}, status_code=405)


@router.post("/api/webhooks/pagarme", include_in_schema=False)
async def webhook_pagarme(request: Request):
    """
    Webhook Pagar.me: consomme order.paid pour créer la commande.
    - 503 si la passerelle n'est pas configurée
    - Réponses: {"received": true, ...}; 400 si le corps n'est pas du JSON, 500 si la création échoue
    """
    if not pagarme_client.is_configured():
        return JSONResponse({"error": "Pagar.me not configured"}, status_code=503)
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid Pagar.me webhook payload")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Invalid Pagar.me webhook payload")
    try:
        return orders_service.handle_paid_webhook(payload)
    except (HTTPException, CheckoutError):
        raise
    except Exception:
        logger.exception("Erreur webhook_pagarme")
        raise HTTPException(status_code=500, detail="Failed to create order")
