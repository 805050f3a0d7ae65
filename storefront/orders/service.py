"""Couche service de la consultation de commande.
- Résout une commande par numéro ou identifiant interne.
- Construit le résumé JSON (camelCase) attendu par le front.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.errors import OrderNotFoundError
from storefront.orders.models import CENT, Order, OrderItem
from storefront.orders.repository import OrderRepository

logger = logging.getLogger(__name__)

DELIVERY_KEYS = ("address", "borough", "city", "zip", "date", "time")


def _money(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(value).quantize(CENT))


def _delivery(order: Order) -> Dict[str, Any]:
    stored = order.delivery_dict()
    out = {key: stored.get(key) for key in DELIVERY_KEYS}
    # Colonnes dédiées prioritaires sur le JSON stocké
    out["borough"] = order.delivery_borough or out["borough"]
    out["date"] = order.delivery_date or out["date"]
    out["time"] = order.delivery_time or out["time"]
    return out


def summarize(order: Order, items: List[OrderItem]) -> Dict[str, Any]:
    return {
        "id": order.id,
        "orderNumber": order.order_number,
        "status": order.status.value,
        "items": [
            {
                "id": it.product_id,
                "name": it.product_name,
                "quantity": it.quantity,
                "price": _money(it.price_at_purchase),
            }
            for it in items
        ],
        "subtotal": _money(order.subtotal),
        "totalAmount": _money(order.total_amount),
        "depositAmount": _money(order.deposit_amount),
        "depositPaid": order.deposit_paid,
        "amountPaid": _money(order.amount_paid),
        "balanceDue": _money(order.balance_due),
        "paymentMethod": order.payment_method,
        "delivery": _delivery(order),
        "specialInstructions": order.special_instructions,
        "createdAt": order.created_at.isoformat(),
    }


def get_order_summary(repository: OrderRepository, identifier: str) -> Dict[str, Any]:
    """Lève OrderNotFoundError si ni le numéro ni l'identifiant ne correspondent."""
    order = repository.find(identifier)
    if order is None:
        logger.info("orders.lookup not found identifier=%s", identifier)
        raise OrderNotFoundError(identifier)
    return summarize(order, repository.list_items(order.id))
