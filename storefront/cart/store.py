"""
CartStore: objet d'état explicite, injecté (pas de singleton global).
- dispatch(reducer, ...) applique un réducteur pur et remplace l'état.
- load/dump: persistance dans la session Starlette (cookie signé).
"""
from typing import Any, Callable, Dict, List, Optional
import logging

from pydantic import ValidationError

from storefront.cart.models import CartLineItem, CartState
from storefront.cart import reducer

logger = logging.getLogger(__name__)

SESSION_KEY = "vios_cart"


class CartStore:
    def __init__(self, state: Optional[CartState] = None):
        self._state = state or CartState()

    @property
    def state(self) -> CartState:
        return self._state

    def dispatch(self, fn: Callable[..., CartState], *args: Any, **kwargs: Any) -> CartState:
        self._state = fn(self._state, *args, **kwargs)
        return self._state

    def clear(self) -> CartState:
        return self.dispatch(reducer.clear_cart)

    @classmethod
    def from_session(cls, session: Dict[str, Any]) -> "CartStore":
        """
        Recharge le panier depuis la session.
        Les lignes invalides (id vide, quantité < 1, prix non positif) sont ignorées.
        """
        raw: List[dict] = (session or {}).get(SESSION_KEY) or []
        items: List[CartLineItem] = []
        if not isinstance(raw, list):
            return cls()
        for entry in raw:
            try:
                items.append(CartLineItem.model_validate(entry))
            except ValidationError:
                logger.warning("cart.store ligne ignorée (invalide) id=%s", (entry or {}).get("id") if isinstance(entry, dict) else None)
        return cls(CartState(items=tuple(items)))

    def save(self, session: Dict[str, Any]) -> None:
        session[SESSION_KEY] = [i.model_dump(by_alias=True, exclude_none=True) for i in self._state.items]
