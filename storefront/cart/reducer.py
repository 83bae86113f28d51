"""
Réducteurs purs du panier: (state, payload) -> nouvel état.
Aucun effet de bord (pas de session, pas de toast, pas d'analytics).
"""
from typing import Iterable, Optional

from storefront.cart.models import CartLineItem, CartState


def add_product(state: CartState, product: CartLineItem, quantity: int = 1) -> CartState:
    """Ajoute un produit (hors kit); incrémente la quantité si la ligne existe déjà."""
    if quantity <= 0:
        return state
    existing = state.find(product.id, is_kit=False)
    if existing:
        items = tuple(
            i.model_copy(update={"quantity": i.quantity + quantity}) if i.key == existing.key else i
            for i in state.items
        )
        return CartState(items=items)
    line = product.model_copy(update={"quantity": quantity, "is_kit": False, "kit_products": None})
    return CartState(items=state.items + (line,))


def add_kit(state: CartState, kit_id: str, name: str, price: float, products: Iterable[str],
            image: Optional[str] = None, quantity: int = 1) -> CartState:
    """Ajoute un kit: la ligne garde les ids des produits qui le composent."""
    if quantity <= 0:
        return state
    existing = state.find(kit_id, is_kit=True)
    if existing:
        items = tuple(
            i.model_copy(update={"quantity": i.quantity + quantity}) if i.key == existing.key else i
            for i in state.items
        )
        return CartState(items=items)
    line = CartLineItem(
        id=kit_id,
        name=name,
        price=price,
        quantity=quantity,
        is_kit=True,
        kit_products=tuple(products),
        image=image,
    )
    return CartState(items=state.items + (line,))


def remove_item(state: CartState, item_id: str) -> CartState:
    return CartState(items=tuple(i for i in state.items if i.id != item_id))


def update_quantity(state: CartState, item_id: str, quantity: int) -> CartState:
    """quantity <= 0 retire la ligne."""
    if quantity <= 0:
        return remove_item(state, item_id)
    return CartState(items=tuple(
        i.model_copy(update={"quantity": quantity}) if i.id == item_id else i
        for i in state.items
    ))


def clear_cart(state: CartState) -> CartState:
    return CartState()
