"""
Module 'orders': commandes matérialisées après paiement (modèles, accès Supabase, consultation).
"""
from .models import Order, OrderItem, OrderStatus
from .repository import OrderRepository
from .service import get_order_summary

__all__ = [
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderRepository",
    "get_order_summary",
]
