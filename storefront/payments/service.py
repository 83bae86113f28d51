"""
Cas d'usage 'payments': orchestre validation, inventory, payload et client Pagar.me.
Séquence: valider -> réserver (tout ou rien) -> créer la commande -> réassocier les réservations
à l'id de la commande -> répondre. Toute erreur après réservation libère le stock.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging
import re

from storefront.cart.validation import calculate_subtotal, validate_cart_items, validate_subtotal
from storefront.errors import (
    CheckoutError,
    ConfigurationMissingError,
    GatewayRejectedError,
    InvalidCheckoutError,
    ReservationConflictError,
)
from storefront.inventory import service as inventory_service
from storefront.payments import pagarme_client
from storefront.payments.models import CheckoutRequest
from storefront.payments.payload import build_order_payload, compute_totals, only_digits
from storefront.payments.pix import PixPayment, ensure_fresh_pix, extract_pix_from_charge
from storefront.utils.qrcode_utils import render_pix_qr

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

APPROVED = "approved"
DECLINED = "declined"
PENDING = "pending"

_CARD_APPROVED = {"paid", "captured", "authorized_pending_capture"}
_CARD_DECLINED = {"failed", "not_authorized", "refused", "canceled", "voided", "with_error"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckoutResult:
    order_id: str
    payment_method: str
    pix: Optional[PixPayment] = None
    card_status: Optional[str] = None
    gateway_status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"orderId": self.order_id, "paymentMethod": self.payment_method}
        if self.pix is not None:
            body["pix"] = self.pix.to_dict()
        if self.card_status is not None:
            body["status"] = self.card_status
            body["gatewayStatus"] = self.gateway_status
        return body


def card_outcome(charge_status: Optional[str]) -> str:
    s = (charge_status or "").lower()
    if s in _CARD_APPROVED:
        return APPROVED
    if s in _CARD_DECLINED:
        return DECLINED
    return PENDING


def validate_request(req: CheckoutRequest) -> str:
    """Valide le formulaire et retourne l'e-mail normalisé."""
    validate_cart_items(req.items)
    form = req.checkoutData
    if form is None:
        raise InvalidCheckoutError("Dados do checkout são obrigatórios (checkoutData).")

    email = (form.email or "").strip().lower() or (req.customerEmail or "").strip().lower()
    if not email or not EMAIL_RE.match(email):
        raise InvalidCheckoutError("E-mail válido é obrigatório para o checkout.")

    if form.address is None:
        raise InvalidCheckoutError("Endereço é obrigatório (checkoutData.address).")
    missing = form.address.missing_fields()
    if missing:
        raise InvalidCheckoutError(f"Endereço incompleto. Preencha: {', '.join(missing)}.")

    if len(only_digits(form.cpf)) != 11:
        raise InvalidCheckoutError("CPF válido (11 dígitos) é obrigatório.")

    if req.paymentMethod == "card" and not req.cardToken:
        raise InvalidCheckoutError("Token do cartão é obrigatório para pagamento com cartão.")
    return email


def _first_charge(order: Dict[str, Any]) -> Dict[str, Any]:
    charges = order.get("charges") or []
    return charges[0] if charges and isinstance(charges[0], dict) else {}


def _pix_payment(pix_data: Dict[str, Optional[str]], created_at: datetime) -> PixPayment:
    return PixPayment.issued_at(
        created_at,
        qr_code=pix_data.get("qr_code"),
        qr_code_url=pix_data.get("qr_code_url"),
        copy_paste_code=pix_data.get("pix_copy_paste"),
    )


def build_pix(order: Dict[str, Any], now: datetime) -> PixPayment:
    """
    PIX à partir de la commande; si la réponse n'a pas de QR, la charge est relue une fois.
    Sans image fournie par la passerelle, le QR est rendu localement depuis le copia-e-cola.
    """
    charge = _first_charge(order)
    current = _pix_payment(extract_pix_from_charge(charge), now)

    def _refetch() -> PixPayment:
        if not charge.get("id"):
            return current
        try:
            fetched = pagarme_client.get_charge(charge["id"])
        except CheckoutError as e:
            logger.warning("payments.pix get_charge failed order_id=%s: %s", order.get("id"), e.code)
            return current
        return _pix_payment(extract_pix_from_charge(fetched), now)

    pix = ensure_fresh_pix(current, now, _refetch)
    if not pix.has_payload:
        logger.error("payments.pix sans QR order_id=%s charge_id=%s", order.get("id"), charge.get("id"))
    if not pix.qr_code and not pix.qr_code_url and pix.copy_paste_code:
        pix = PixPayment(
            qr_code=render_pix_qr(pix.copy_paste_code),
            qr_code_url=None,
            copy_paste_code=pix.copy_paste_code,
            created_at=pix.created_at,
            expires_at=pix.expires_at,
        )
    return pix


def submit_checkout(
    req: CheckoutRequest,
    *,
    user_id: Optional[str] = None,
    store: Any = None,
    clock: Callable[[], datetime] = _utcnow,
) -> CheckoutResult:
    if not pagarme_client.is_configured():
        raise ConfigurationMissingError("Pagar.me não está configurado. Configure PAGARME_SECRET_KEY.")

    email = validate_request(req)
    subtotal = calculate_subtotal(req.items)
    validate_subtotal(subtotal)
    totals = compute_totals(
        subtotal,
        payment_method=req.paymentMethod,
        shipping_reais=req.shippingReais,
        selected_option=req.selectedShippingOption,
        coupon_code=req.couponCode,
    )
    user_id = user_id or req.userId
    payload = build_order_payload(
        items=req.items,
        totals=totals,
        form=req.checkoutData,
        email=email,
        payment_method=req.paymentMethod,
        user_id=user_id,
        card_token=req.cardToken,
        installments=req.installments,
        selected_option=req.selectedShippingOption,
    )

    outcomes = inventory_service.reserve_or_fail(
        inventory_service.expand_cart_items(req.items),
        session_prefix=inventory_service.new_session_prefix(),
        customer_email=email,
        user_id=user_id,
        store=store,
    )
    held: List[str] = [o.session_id for o in outcomes]
    logger.info("payments.checkout reserved lines=%s method=%s total_cents=%s", len(held), req.paymentMethod, totals.total_cents)

    try:
        order = pagarme_client.create_order(payload)
        order_id = order.get("id")
        if not order_id:
            raise GatewayRejectedError("Resposta do Pagar.me sem identificador de pedido.")
        try:
            inventory_service.reassign(held, order_id, store=store)
        except Exception:
            logger.exception("payments.checkout reassign failed order_id=%s", order_id)
            raise ReservationConflictError("Erro ao associar reserva ao pedido. Tente novamente.")
        held = held + [order_id]

        if req.paymentMethod == "pix":
            pix = build_pix(order, clock())
            logger.info("payments.checkout pix order_id=%s %r", order_id, pix)
            return CheckoutResult(order_id=order_id, payment_method="pix", pix=pix)

        gateway_status = _first_charge(order).get("status") or order.get("status")
        outcome = card_outcome(gateway_status)
        logger.info("payments.checkout card order_id=%s status=%s outcome=%s", order_id, gateway_status, outcome)
        if outcome == DECLINED:
            inventory_service.release_all([order_id], "Card declined - releasing reservation", store=store)
        return CheckoutResult(order_id=order_id, payment_method="card", card_status=outcome, gateway_status=gateway_status)
    except Exception:
        inventory_service.release_all(held, "Checkout Pagar.me failed - releasing reservation", store=store)
        raise
