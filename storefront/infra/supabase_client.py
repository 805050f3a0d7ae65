from typing import Optional
from supabase import create_client, Client

from storefront.config import SupabaseSettings
from storefront.errors import PersistenceError

_service_supabase: Optional[Client] = None


def get_service_supabase(settings: SupabaseSettings) -> Client:
    """
    Client Supabase service-role (bypass RLS), partagé par le processus.
    Les écritures de commandes se font côté serveur uniquement (webhook Stripe).
    """
    global _service_supabase
    if not settings.url or not settings.service_key:
        raise PersistenceError("SUPABASE_URL/SUPABASE_SERVICE_KEY manquants pour get_service_supabase()")
    if _service_supabase is None:
        _service_supabase = create_client(settings.url, settings.service_key)
    return _service_supabase
