"""
Module 'cart' (feature-first): modèles, réducteurs purs, store injecté et validation checkout.
"""

from .models import CartLineItem, CartState
from .reducer import add_product, add_kit, remove_item, update_quantity, clear_cart
from .store import CartStore
from .validation import validate_cart_items, calculate_subtotal, validate_subtotal

__all__ = [
    "CartLineItem",
    "CartState",
    "add_product",
    "add_kit",
    "remove_item",
    "update_quantity",
    "clear_cart",
    "CartStore",
    "validate_cart_items",
    "calculate_subtotal",
    "validate_subtotal",
]
