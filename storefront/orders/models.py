# module storefront.orders.models
"""Modèles persistés: Order (table orders) et OrderItem (table order_items).
- Montants en Decimal côté Python, écrits en chaînes "0.00" vers Supabase.
- OrderItem est un instantané: nom et prix figés au moment de l'achat.
"""
import json
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, model_validator

CENT = Decimal("0.01")


class OrderStatus(str, Enum):
    PENDING = "pending"
    DEPOSIT_PAID = "deposit_paid"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


def _money(value: Optional[Decimal]) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(BaseModel):
    id: str
    order_number: str
    user_id: Optional[str] = None
    guest_email: Optional[str] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    status: OrderStatus
    subtotal: Decimal
    deposit_amount: Optional[Decimal] = None
    deposit_paid: bool = False
    total_amount: Decimal
    amount_paid: Decimal = Decimal("0")
    payment_method: Optional[str] = None
    stripe_session_id: Optional[str] = None
    stripe_payment_intent_id: Optional[str] = None
    delivery_borough: Optional[str] = None
    delivery_address: Optional[str] = None
    delivery_date: Optional[str] = None
    delivery_time: Optional[str] = None
    special_instructions: Optional[str] = None
    created_at: datetime = Field(default_factory=_utcnow)

    @model_validator(mode="after")
    def _amount_paid_within_total(self) -> "Order":
        if self.amount_paid > self.total_amount:
            raise ValueError("amount_paid ne peut pas dépasser total_amount")
        return self

    @property
    def balance_due(self) -> Decimal:
        return (self.total_amount - self.amount_paid).quantize(CENT)

    def delivery_dict(self) -> Dict[str, Any]:
        """Adresse JSON stockée, ou {"address": <texte>} si ce n'est pas du JSON."""
        if not self.delivery_address:
            return {}
        try:
            parsed = json.loads(self.delivery_address)
        except ValueError:
            return {"address": self.delivery_address}
        return parsed if isinstance(parsed, dict) else {"address": self.delivery_address}

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json")
        row["status"] = self.status.value
        for key in ("subtotal", "deposit_amount", "total_amount", "amount_paid"):
            row[key] = _money(getattr(self, key))
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Order":
        return cls.model_validate(row)


class OrderItem(BaseModel):
    id: str
    order_id: str
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    price_at_purchase: Decimal

    def to_row(self) -> Dict[str, Any]:
        row = self.model_dump(mode="json")
        row["price_at_purchase"] = _money(self.price_at_purchase)
        return row

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "OrderItem":
        return cls.model_validate(row)
