# module storefront.cart.views
"""Endpoints du panier (stocké dans la session signée, SessionMiddleware).
- GET    /api/v1/cart: état courant + totaux
- POST   /api/v1/cart/items: ajoute un produit ou un kit
- PATCH  /api/v1/cart/items/{item_id}: met à jour la quantité (<= 0 retire)
- DELETE /api/v1/cart/items/{item_id}: retire la ligne
- DELETE /api/v1/cart: vide le panier
"""
from typing import List, Optional
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from storefront.cart import reducer
from storefront.cart.models import CartLineItem
from storefront.cart.store import CartStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/cart", tags=["Cart API"])


class AddItemRequest(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    price: float = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    isKit: bool = False
    kitProducts: Optional[List[str]] = None
    image: Optional[str] = None


class UpdateQuantityRequest(BaseModel):
    quantity: int


def _store(request: Request) -> CartStore:
    return CartStore.from_session(request.session)


@router.get("")
def get_cart(request: Request):
    return _store(request).state.to_public()


@router.post("/items")
def add_item(request: Request, body: AddItemRequest):
    store = _store(request)
    if body.isKit:
        store.dispatch(
            reducer.add_kit,
            body.id,
            body.name,
            body.price,
            body.kitProducts or [],
            image=body.image,
            quantity=body.quantity,
        )
    else:
        product = CartLineItem(id=body.id, name=body.name, price=body.price, image=body.image)
        store.dispatch(reducer.add_product, product, body.quantity)
    store.save(request.session)
    logger.info("cart.add id=%s kit=%s qty=%s", body.id, body.isKit, body.quantity)
    return store.state.to_public()


@router.patch("/items/{item_id}")
def update_item(request: Request, item_id: str, body: UpdateQuantityRequest):
    store = _store(request)
    store.dispatch(reducer.update_quantity, item_id, body.quantity)
    store.save(request.session)
    return store.state.to_public()


@router.delete("/items/{item_id}")
def remove_item(request: Request, item_id: str):
    store = _store(request)
    store.dispatch(reducer.remove_item, item_id)
    store.save(request.session)
    return store.state.to_public()


@router.delete("")
def clear_cart(request: Request):
    store = _store(request)
    store.clear()
    store.save(request.session)
    return store.state.to_public()
