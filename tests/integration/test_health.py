from unittest.mock import MagicMock

from storefront.health import service as health_service


def test_health_root(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"ok": True}


def test_health_supabase_without_config_never_raises(client):
    res = client.get("/health/supabase")
    assert res.status_code == 200
    data = res.json()
    assert data["connect_ok"] is False
    assert data["error"]


def test_health_supabase_checks_order_tables(client, monkeypatch):
    fake = MagicMock()
    fake.table.return_value.select.return_value.limit.return_value.execute.return_value = MagicMock(data=[])
    monkeypatch.setattr(health_service, "get_service_supabase", lambda settings: fake)

    data = client.get("/health/supabase").json()
    assert data["connect_ok"] is True
    assert set(data["tables"]) == {"orders", "order_items"}


def test_health_rate_limit_disabled_in_tests(client):
    assert client.get("/health/rate-limit").json()["enabled"] is False
