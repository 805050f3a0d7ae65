"""
Accès aux données pour la feature 'orders' (Supabase / PostgREST).
- Unicité garantie par la base: orders.order_number et orders.stripe_session_id.
- Une violation d'unicité (code 23505) devient PersistenceConflictError;
  toute autre erreur devient PersistenceError.
"""
import logging
from typing import List, Optional, Sequence

from postgrest.exceptions import APIError
from supabase import Client

from storefront.errors import PersistenceConflictError, PersistenceError
from storefront.orders.models import Order, OrderItem

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ORDER_ITEMS_TABLE = "order_items"
UNIQUE_VIOLATION = "23505"


class OrderRepository:
    def __init__(self, client: Client):
        self.client = client

    def _first(self, column: str, value: str) -> Optional[Order]:
        try:
            res = (
                self.client
                .table(ORDERS_TABLE)
                .select("*")
                .eq(column, value)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository lookup failed %s=%s", column, value)
            raise PersistenceError(f"Lecture commande impossible: {e}")
        rows = res.data or []
        return Order.from_row(rows[0]) if rows else None

    def get_by_session_id(self, session_id: str) -> Optional[Order]:
        """Commande déjà matérialisée pour cette session Checkout, sinon None."""
        if not session_id:
            return None
        return self._first("stripe_session_id", session_id)

    def find(self, identifier: str) -> Optional[Order]:
        """Recherche par numéro de commande, puis par identifiant interne."""
        if not identifier:
            return None
        return self._first("order_number", identifier) or self._first("id", identifier)

    def list_items(self, order_id: str) -> List[OrderItem]:
        try:
            res = (
                self.client
                .table(ORDER_ITEMS_TABLE)
                .select("*")
                .eq("order_id", order_id)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository.list_items failed order_id=%s", order_id)
            raise PersistenceError(f"Lecture des articles impossible: {e}")
        return [OrderItem.from_row(row) for row in (res.data or [])]

    def create(self, order: Order, items: Sequence[OrderItem]) -> Order:
        """
        Insère la commande puis ses articles (insert groupé).
        - Conflit d'unicité sur orders: PersistenceConflictError, rien n'est écrit.
        - Échec des articles: la commande est supprimée (cascade) puis PersistenceError,
          afin qu'une nouvelle livraison de l'événement reparte d'un état propre.
        """
        try:
            self.client.table(ORDERS_TABLE).insert(order.to_row()).execute()
        except APIError as e:
            if str(getattr(e, "code", "")) == UNIQUE_VIOLATION:
                logger.info("orders.repository.create conflict order_number=%s session=%s",
                            order.order_number, order.stripe_session_id)
                raise PersistenceConflictError(f"Commande déjà existante: {order.order_number}")
            logger.exception("orders.repository.create failed order_number=%s", order.order_number)
            raise PersistenceError(f"Insertion commande impossible: {e}")
        except Exception as e:
            logger.exception("orders.repository.create failed order_number=%s", order.order_number)
            raise PersistenceError(f"Insertion commande impossible: {e}")

        if not items:
            return order
        try:
            self.client.table(ORDER_ITEMS_TABLE).insert([it.to_row() for it in items]).execute()
        except Exception as e:
            logger.exception("orders.repository.create items failed order_id=%s", order.id)
            self._delete(order.id)
            raise PersistenceError(f"Insertion des articles impossible: {e}")
        return order

    def _delete(self, order_id: str) -> None:
        try:
            self.client.table(ORDERS_TABLE).delete().eq("id", order_id).execute()
        except Exception:
            logger.exception("orders.repository compensation delete failed order_id=%s", order_id)
