# module storefront.payments.models
"""Schémas d'entrée du checkout transparent (PIX ou cartão).
Les noms de champs suivent le JSON envoyé par le front (camelCase); card_token est aussi accepté.
"""
from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from storefront.cart.models import CartLineItem


REQUIRED_ADDRESS_FIELDS = ("cep", "street", "number", "neighborhood", "city", "state")


class CheckoutAddress(BaseModel):
    cep: str = ""
    street: str = ""
    number: str = ""
    complement: Optional[str] = None
    neighborhood: str = ""
    city: str = ""
    state: str = ""

    def missing_fields(self) -> List[str]:
        return [f for f in REQUIRED_ADDRESS_FIELDS if not str(getattr(self, f) or "").strip()]


class CheckoutFormData(BaseModel):
    email: str = ""
    fullName: str = ""
    cpf: str = ""
    phone: str = ""
    address: Optional[CheckoutAddress] = None


class SelectedShippingOption(BaseModel):
    id: str
    name: str
    type: str = "standard"


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartLineItem]
    userId: Optional[str] = None
    customerEmail: Optional[str] = None
    paymentMethod: Literal["pix", "card"]
    installmentOption: Optional[Literal["1x", "2x", "3x"]] = None
    cardToken: Optional[str] = None
    card_token: Optional[str] = Field(None, exclude=True)
    checkoutData: Optional[CheckoutFormData] = None
    couponCode: Optional[str] = None
    shippingReais: Optional[float] = None
    selectedShippingOption: Optional[SelectedShippingOption] = None

    @model_validator(mode="after")
    def _merge_card_token(self):
        if not self.cardToken and self.card_token:
            self.cardToken = self.card_token
        return self

    @property
    def installments(self) -> int:
        if not self.installmentOption:
            return 1
        return int(self.installmentOption.rstrip("x"))
