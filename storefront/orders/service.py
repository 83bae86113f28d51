"""Couche service de la confirmation de commande.
Rôles:
- Vérifier l'existence d'une commande par l'id de la passerelle (polling de la page de succès).
- Consommer le webhook order.paid: créer la commande et ses lignes (idempotent), confirmer
  les réservations de stock, envoyer l'e-mail de confirmation.
La commande n'est jamais créée par le checkout lui-même: le webhook est la seule source.
"""
from typing import Any, Dict, List, Optional
import logging
import re

from storefront.inventory import service as inventory_service
from storefront.notifications import email as email_notifications
from storefront.orders import repository
from storefront.orders.models import OrderStatus

logger = logging.getLogger(__name__)

ORDER_PAID = "order.paid"
NON_PRODUCT_CODES = {"shipping", "pix_discount"}


def verify_order(gateway_id: str) -> Dict[str, Any]:
    """{exists: True, orderId, status, createdAt} ou {exists: False, message}."""
    row = repository.find_by_gateway_id(gateway_id)
    if row:
        return {
            "exists": True,
            "orderId": row.get("id"),
            "status": row.get("status"),
            "createdAt": row.get("created_at"),
        }
    return {"exists": False, "message": "Pedido ainda não foi processado"}


def _digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def _customer_phone(data: Dict[str, Any]) -> Optional[str]:
    phones = (data.get("customer") or {}).get("phones") or {}
    phone = phones.get("mobile_phone") or phones.get("home_phone")
    if phone and phone.get("number") is not None:
        joined = _digits(phone.get("area_code")) + _digits(phone.get("number"))
        return joined or None
    return ((data.get("metadata") or {}).get("customer_phone") or "").strip() or None


def order_row_from_payload(data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Ligne 'orders' depuis data (order.paid); None si l'e-mail client est absent."""
    metadata = data.get("metadata") or {}
    customer = data.get("customer") or {}
    customer_email = customer.get("email") or metadata.get("customer_email") or ""
    if not customer_email:
        return None
    user_id = metadata.get("user_id")
    addr = (data.get("shipping") or {}).get("address") or customer.get("address") or {}
    row = {
        "user_id": user_id if user_id and user_id != "guest" else None,
        "customer_email": customer_email,
        "status": OrderStatus.PAID.value,
        "total_amount": (data.get("amount") or 0) / 100,
        "gateway_session_id": data["id"],
        "customer_name": customer.get("name") or metadata.get("customer_name") or None,
        "customer_cpf": _digits(customer.get("document")) or None,
        "customer_phone": _customer_phone(data),
        "shipping_cep": addr.get("zip_code"),
        "shipping_street": addr.get("line_1"),
        "shipping_complement": addr.get("line_2"),
        "shipping_city": addr.get("city"),
        "shipping_state": addr.get("state"),
    }
    return {k: v for k, v in row.items() if v is not None or k == "user_id"}


def order_items_from_payload(order_id: str, items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Lignes produit uniquement (frete et desconto ignorés); prix unitaire en reais."""
    rows = []
    for item in items or []:
        code = item.get("code")
        if code in NON_PRODUCT_CODES:
            continue
        quantity = int(item.get("quantity") or 0)
        # amount Pagar.me = prix unitaire en centavos
        unit_price = (item.get("amount") or 0) / 100
        rows.append({
            "order_id": order_id,
            "product_id": code or item.get("id"),
            "product_name": item.get("description") or "Produto",
            "quantity": quantity,
            "price": unit_price,
            "product_image": None,
        })
    return rows


def handle_paid_webhook(payload: Dict[str, Any], *, store: Any = None) -> Dict[str, Any]:
    """
    Traite un événement Pagar.me.
    - Autre type que order.paid, ou sans data.id: ignoré ({"received": True})
    - Commande déjà présente pour cet id: idempotent (aucune écriture)
    - Échec d'insertion des lignes: la commande est supprimée puis l'erreur remonte (500, Pagar.me réessaie)
    - Confirmation du stock et e-mail: erreurs journalisées, n'échouent jamais le webhook
    """
    event_type = payload.get("type")
    data = payload.get("data") or {}
    gateway_id = data.get("id")
    logger.info("orders.webhook received type=%s data_id=%s", event_type, gateway_id)
    if event_type != ORDER_PAID or not gateway_id:
        return {"received": True}

    if repository.find_by_gateway_id(gateway_id, columns="id"):
        logger.info("orders.webhook duplicate ignored gateway_id=%s", gateway_id)
        return {"received": True, "duplicate": True}

    row = order_row_from_payload(data)
    if row is None:
        logger.error("orders.webhook order.paid sans customer email gateway_id=%s", gateway_id)
        return {"received": True}

    created = repository.insert_order(row)
    order_id = str(created.get("id"))
    logger.info("orders.webhook order created order_id=%s gateway_id=%s", order_id, gateway_id)

    items = order_items_from_payload(order_id, data.get("items") or [])
    try:
        repository.insert_order_items(items)
    except Exception:
        logger.exception("orders.webhook order_items insert failed order_id=%s", order_id)
        repository.delete_order(order_id)
        raise

    try:
        inventory_service.confirm(gateway_id, order_id, store=store)
    except Exception:
        logger.exception("orders.webhook confirm_reservation failed gateway_id=%s", gateway_id)

    try:
        result = email_notifications.send_order_confirmation(email_notifications.OrderConfirmation(
            customer_email=row["customer_email"],
            customer_name=row.get("customer_name"),
            order_id=order_id,
            order_date=created.get("created_at"),
            total_amount=row["total_amount"],
            status="Pago",
            items=items,
        ))
        if not result.get("success"):
            logger.warning("orders.webhook e-mail non envoyé order_id=%s error=%s", order_id, result.get("error"))
    except Exception:
        logger.exception("orders.webhook send_order_confirmation failed order_id=%s", order_id)

    return {"received": True, "orderId": order_id}
