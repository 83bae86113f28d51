"""
Modèles du panier (sacola).
- CartLineItem: ligne immuable (produit ou kit); la paire (id, is_kit) identifie une ligne.
- CartState: tuple immuable de lignes + totaux dérivés.
"""
from typing import Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field


class CartLineItem(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str
    price: float = Field(..., gt=0)
    quantity: int = Field(1, ge=1)
    is_kit: bool = Field(False, alias="isKit")
    kit_products: Optional[Tuple[str, ...]] = Field(None, alias="kitProducts")
    image: Optional[str] = None

    @property
    def key(self) -> Tuple[str, bool]:
        return (self.id, self.is_kit)

    @property
    def line_total(self) -> float:
        return self.price * self.quantity

    def to_public(self) -> dict:
        """Forme camelCase attendue par le front (et par /api/shipping/quote)."""
        return self.model_dump(by_alias=True, exclude_none=True)


class CartState(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: Tuple[CartLineItem, ...] = ()

    @property
    def total_items(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def total_price(self) -> float:
        return round(sum(i.line_total for i in self.items), 2)

    def find(self, item_id: str, is_kit: Optional[bool] = None) -> Optional[CartLineItem]:
        for item in self.items:
            if item.id == item_id and (is_kit is None or item.is_kit == is_kit):
                return item
        return None

    def to_public(self) -> dict:
        return {
            "items": [i.to_public() for i in self.items],
            "totalItems": self.total_items,
            "totalPrice": self.total_price,
        }
