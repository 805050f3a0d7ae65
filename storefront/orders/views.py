# module storefront.orders.views
"""Endpoint de consultation d'une commande (page de confirmation, suivi)."""
from typing import Any, Callable, Dict

from fastapi import APIRouter, Depends

from storefront.config import Settings, get_settings
from storefront.infra.supabase_client import get_service_supabase
from storefront.orders import service as orders_service
from storefront.orders.repository import OrderRepository

router = APIRouter(prefix="/api/v1/orders", tags=["Orders API"])


def get_order_repository_factory(settings: Settings = Depends(get_settings)) -> Callable[[], OrderRepository]:
    """Construction différée: le client Supabase n'est créé qu'à l'appel."""
    return lambda: OrderRepository(get_service_supabase(settings.supabase))


def get_order_repository(
    factory: Callable[[], OrderRepository] = Depends(get_order_repository_factory),
) -> OrderRepository:
    return factory()


@router.get("/{identifier}")
def get_order(identifier: str, repository: OrderRepository = Depends(get_order_repository)) -> Dict[str, Any]:
    """
    Retourne le résumé d'une commande par numéro (DRH-...) ou identifiant interne.
    - 404 {"error": "Order not found"} sinon (via les handlers d'exceptions).
    """
    return orders_service.get_order_summary(repository, identifier)
