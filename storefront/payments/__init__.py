"""
Module 'payments' (feature-first): point d'entrée public.
Réunit le client Pagar.me, la construction du payload, les données PIX et le service de checkout.
"""

from .pagarme_client import is_configured, create_order, get_charge
from .payload import compute_totals, build_items, build_order_payload, CheckoutTotals
from .pix import PixPayment, ensure_fresh_pix, extract_pix_from_charge, extract_pix_from_transaction
from .service import submit_checkout, card_outcome, CheckoutResult

__all__ = [
    # pagarme
    "is_configured",
    "create_order",
    "get_charge",
    # payload
    "compute_totals",
    "build_items",
    "build_order_payload",
    "CheckoutTotals",
    # pix
    "PixPayment",
    "ensure_fresh_pix",
    "extract_pix_from_charge",
    "extract_pix_from_transaction",
    # services
    "submit_checkout",
    "card_outcome",
    "CheckoutResult",
]
