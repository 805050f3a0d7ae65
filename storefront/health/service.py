import socket
from typing import Any, Dict
from urllib.parse import urlparse

from storefront.config import Settings
from storefront.infra.supabase_client import get_service_supabase
from storefront.orders.repository import ORDER_ITEMS_TABLE, ORDERS_TABLE


def _check_table(client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("id").limit(1).execute()
        return {"ok": True, "rows": len(res.data or [])}
    except Exception as e:
        return {"ok": False, "error": str(e)}


def health_supabase_info(settings: Settings) -> Dict[str, Any]:
    """Joignabilité de Supabase et des tables de commandes. Ne lève jamais."""
    effective_url = settings.supabase.url
    hostname = urlparse(effective_url).hostname if effective_url else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info: Dict[str, Any] = {
        "supabase_url": effective_url,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = get_service_supabase(settings.supabase)
        for t in (ORDERS_TABLE, ORDER_ITEMS_TABLE):
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = all(t["ok"] for t in info["tables"].values())
    except Exception as e:
        info["error"] = str(e)
    return info
