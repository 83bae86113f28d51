"""
Règles de validation du panier au moment du checkout (côté serveur, le front n'est pas digne de confiance).
"""
import math
from typing import Iterable, List

from storefront import config
from storefront.cart.models import CartLineItem
from storefront.errors import InvalidCheckoutError


def validate_cart_items(items: List[CartLineItem]) -> None:
    """
    Lève InvalidCheckoutError si:
    - panier vide ou plus de MAX_ITEMS_PER_CART lignes
    - id dupliqué, prix hors (0, MAX_ITEM_PRICE], quantité hors [1, MAX_QUANTITY_PER_ITEM]
    - quantité totale > MAX_TOTAL_QUANTITY
    - kit sans produits
    """
    if not items:
        raise InvalidCheckoutError("Sacola vazia")
    if len(items) > config.MAX_ITEMS_PER_CART:
        raise InvalidCheckoutError(f"Máximo de {config.MAX_ITEMS_PER_CART} itens diferentes permitidos")

    seen = set()
    total_qty = 0
    for item in items:
        if item.id in seen:
            raise InvalidCheckoutError(f"Item duplicado: {item.name}")
        seen.add(item.id)
        if not math.isfinite(item.price) or item.price <= 0 or item.price > config.MAX_ITEM_PRICE:
            raise InvalidCheckoutError(f"Preço inválido para {item.name}")
        if item.quantity < config.MIN_QUANTITY or item.quantity > config.MAX_QUANTITY_PER_ITEM:
            raise InvalidCheckoutError(f"Quantidade inválida para {item.name}")
        total_qty += item.quantity
        if total_qty > config.MAX_TOTAL_QUANTITY:
            raise InvalidCheckoutError(f"Quantidade total máxima excedida ({config.MAX_TOTAL_QUANTITY})")
        if item.is_kit and not item.kit_products:
            raise InvalidCheckoutError(f"Kit {item.name} sem produtos definidos")


def calculate_subtotal(items: Iterable[CartLineItem]) -> float:
    return sum(i.price * i.quantity for i in items)


def validate_subtotal(subtotal: float) -> None:
    if not math.isfinite(subtotal):
        raise InvalidCheckoutError("Erro no cálculo do subtotal.")
    if subtotal < config.MIN_SUBTOTAL:
        raise InvalidCheckoutError(f"Subtotal mínimo R$ {config.MIN_SUBTOTAL:.0f} não atingido")
    if subtotal > config.MAX_SUBTOTAL:
        raise InvalidCheckoutError("Subtotal excede o valor máximo permitido.")
