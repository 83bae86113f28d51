"""
Construction du corps de commande Pagar.me v5 (montants en centavos, entiers).
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
import re
from uuid import uuid4

from storefront import config
from storefront.cart.models import CartLineItem
from storefront.errors import InvalidCheckoutError
from storefront.payments.models import CheckoutAddress, CheckoutFormData, SelectedShippingOption


def only_digits(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def to_cents(reais: float) -> int:
    return int(round(reais * 100))


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: float
    shipping: float
    pix_discount: float
    coupon_discount: float
    is_free_shipping: bool

    @property
    def total(self) -> float:
        return self.subtotal + self.shipping - self.pix_discount - self.coupon_discount

    @property
    def total_cents(self) -> int:
        return to_cents(self.total)

    @property
    def discount_cents(self) -> int:
        return to_cents(self.pix_discount) + to_cents(self.coupon_discount)


def compute_totals(
    subtotal: float,
    *,
    payment_method: str,
    shipping_reais: Optional[float] = None,
    selected_option: Optional[SelectedShippingOption] = None,
    coupon_code: Optional[str] = None,
) -> CheckoutTotals:
    """
    Frete grátis à partir de FREE_SHIPPING_THRESHOLD; sinon le frete doit être choisi
    (sauf entrega local gratuita). Desconto PIX de 5% + cupom sur le subtotal.
    """
    is_free = subtotal >= config.FREE_SHIPPING_THRESHOLD
    shipping = 0.0
    if not is_free and shipping_reais is not None and shipping_reais >= 0:
        shipping = float(shipping_reais)
    is_local_free = bool(selected_option and selected_option.type == "local" and shipping == 0)
    if not is_free and shipping <= 0 and not is_local_free:
        raise InvalidCheckoutError("Informe o CEP e selecione uma opção de frete para continuar.")

    pix_discount = subtotal * config.PIX_DISCOUNT_PERCENT if payment_method == "pix" else 0.0
    coupon_discount = 0.0
    if coupon_code and coupon_code.strip() == config.COUPON_CODE_TESTE90:
        coupon_discount = subtotal * config.COUPON_TESTE90_DISCOUNT_PERCENT
    return CheckoutTotals(
        subtotal=subtotal,
        shipping=shipping,
        pix_discount=pix_discount,
        coupon_discount=coupon_discount,
        is_free_shipping=is_free,
    )


def build_items(items: List[CartLineItem], totals: CheckoutTotals) -> List[Dict[str, Any]]:
    """
    Lignes en centavos; la remise (PIX + cupom) est répartie sur les lignes dans l'ordre,
    sans descendre sous 1 centavo par unité. Le frete devient une ligne 'shipping'.
    """
    remaining = totals.discount_cents
    lines: List[Dict[str, Any]] = []
    for item in items:
        amount = to_cents(item.price)
        if remaining > 0:
            line_total = amount * item.quantity
            applied = min(remaining, line_total - item.quantity)
            remaining -= applied
            amount = max(1, int(round((line_total - applied) / item.quantity)))
        lines.append({"amount": amount, "description": item.name, "quantity": item.quantity, "code": item.id})
    if totals.shipping > 0:
        lines.append({"amount": to_cents(totals.shipping), "description": "Frete", "quantity": 1, "code": "shipping"})
    return lines


def build_address(address: CheckoutAddress) -> Dict[str, Any]:
    body = {
        "line_1": ", ".join(p for p in (address.street.strip(), address.number.strip()) if p),
        "zip_code": only_digits(address.cep),
        "city": address.city.strip(),
        "state": address.state.strip().upper()[:2],
        "country": "BR",
    }
    if address.complement and address.complement.strip():
        body["line_2"] = address.complement.strip()
    return body


def build_customer(form: CheckoutFormData, email: str, address: Dict[str, Any]) -> Dict[str, Any]:
    """document: 11 chiffres; phones.home_phone obligatoire (valeur neutre si le téléphone est incomplet)."""
    document = only_digits(form.cpf)
    if len(document) != 11:
        raise InvalidCheckoutError("CPF válido (11 dígitos) é obrigatório.")
    phone = only_digits(form.phone)
    if len(phone) >= 10:
        home_phone = {"country_code": "55", "area_code": phone[:2], "number": phone[2:]}
    else:
        home_phone = {"country_code": "55", "area_code": "11", "number": "000000000"}
    return {
        "name": (form.fullName or "").strip() or "Cliente VIOS",
        "email": email,
        "document": document,
        "type": "individual",
        "address": address,
        "phones": {"home_phone": home_phone},
    }


def build_payments(
    payment_method: str,
    *,
    card_token: Optional[str] = None,
    billing_address: Optional[Dict[str, Any]] = None,
    installments: int = 1,
) -> List[Dict[str, Any]]:
    if payment_method == "pix":
        return [{"payment_method": "pix", "pix": {"expires_in": config.PIX_EXPIRATION_SECONDS}}]
    return [{
        "payment_method": "credit_card",
        "credit_card": {
            "card": {"token": card_token, "billing_address": billing_address},
            "installments": max(1, min(installments, config.MAX_INSTALLMENTS)),
            "statement_descriptor": config.PAGARME_STATEMENT_DESCRIPTOR,
        },
    }]


def new_order_code() -> str:
    return f"vios_{uuid4().hex[:16]}"


def build_order_payload(
    *,
    items: List[CartLineItem],
    totals: CheckoutTotals,
    form: CheckoutFormData,
    email: str,
    payment_method: str,
    user_id: Optional[str] = None,
    card_token: Optional[str] = None,
    installments: int = 1,
    selected_option: Optional[SelectedShippingOption] = None,
) -> Dict[str, Any]:
    address = build_address(form.address or CheckoutAddress())
    metadata = {
        "user_id": user_id or "guest",
        "customer_email": email,
        "customer_name": (form.fullName or "").strip(),
        "customer_phone": only_digits(form.phone)[:11],
        "free_shipping": str(totals.is_free_shipping).lower(),
        "items_count": str(len(items)),
        "shipping_neighborhood": ((form.address.neighborhood if form.address else "") or "").strip(),
    }
    if selected_option:
        metadata.update({
            "shipping_option_id": selected_option.id,
            "shipping_option_name": selected_option.name,
            "shipping_option_type": selected_option.type,
        })
    if totals.is_free_shipping:
        shipping_description = "Frete Grátis"
    else:
        shipping_description = selected_option.name if selected_option else "Frete"
    return {
        "items": build_items(items, totals),
        "customer": build_customer(form, email, address),
        "payments": build_payments(
            payment_method,
            card_token=card_token,
            billing_address=address,
            installments=installments,
        ),
        "shipping": {
            "amount": to_cents(totals.shipping),
            "description": shipping_description,
            "address": address,
        },
        "code": new_order_code(),
        "currency": "BRL",
        "metadata": metadata,
    }
