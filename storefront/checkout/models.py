"""
Schémas d'entrée du checkout (panier, client, livraison).
Les noms JSON suivent le front (camelCase); les attributs Python restent en snake_case.
"""
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CartItem(BaseModel):
    """Ligne de panier éphémère: jamais persistée telle quelle."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    quantity: int = Field(gt=0)
    image: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class DeliveryDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    borough: str
    city: str
    zip: str
    date: str
    time: str
    instructions: Optional[str] = None


class Customer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", default="")
    email: EmailStr
    phone: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class CheckoutRequest(BaseModel):
    """
    Corps de POST /api/v1/checkout/session.
    - items peut être vide ici: le Builder lève ValidationError (400) et non une 422.
    - user_id: référence d'un compte déjà authentifié en amont (sinon commande invité).
    """

    model_config = ConfigDict(populate_by_name=True)

    customer: Customer
    delivery: DeliveryDetails
    items: List[CartItem] = Field(default_factory=list)
    payment_method: str = Field(alias="paymentMethod", default="stripe")
    user_id: Optional[str] = Field(alias="userId", default=None)


class CheckoutResult(BaseModel):
    url: str
    order_number: str
    session_id: Optional[str] = None
