import json
from dataclasses import replace

from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.config import get_settings


def test_completed_event_creates_order(post_webhook, repository, notifier, make_request, make_event):
    res = post_webhook(make_event(make_request()))
    assert res.status_code == 200
    assert res.json() == {"received": True}
    assert len(repository.orders) == 1
    assert len(notifier.sent) == 1


def test_replayed_event_is_idempotent(post_webhook, repository, notifier, make_request, make_event):
    event = make_event(make_request())
    assert post_webhook(event).status_code == 200
    assert post_webhook(event).status_code == 200
    assert len(repository.orders) == 1
    assert len(notifier.sent) == 1


def test_invalid_signature_has_no_side_effects(post_webhook, repository, make_request, make_event):
    res = post_webhook(make_event(make_request()), secret="whsec_attacker")
    assert res.status_code == 400
    assert res.json()["code"] == "SIGNATURE_VERIFICATION_ERROR"
    assert repository.create_calls == 0


def test_missing_signature_is_400(post_webhook, repository, make_request, make_event):
    res = post_webhook(make_event(make_request()), signature="")
    assert res.status_code == 400
    assert res.json()["error"] == "No signature"
    assert repository.create_calls == 0


def test_missing_webhook_secret_is_500(client, settings, post_webhook, repository, make_request, make_event):
    client.app.dependency_overrides[get_settings] = lambda: replace(
        settings, stripe=replace(settings.stripe, webhook_secret="")
    )
    res = post_webhook(make_event(make_request()))
    assert res.status_code == 500
    assert res.json()["code"] == "PAYMENT_CONFIGURATION_ERROR"
    assert repository.create_calls == 0


def test_malformed_metadata_is_acknowledged(post_webhook, repository, make_request, make_event):
    event = make_event(make_request())
    event["data"]["object"]["metadata"] = {"foo": "bar"}
    res = post_webhook(event)
    assert res.status_code == 200
    assert repository.orders == {}


def test_materialization_failure_acknowledged_by_default(post_webhook, repository, make_request, make_event):
    repository.fail_items = True
    res = post_webhook(make_event(make_request()))
    assert res.status_code == 200
    assert res.json() == {"received": True}


def test_materialization_failure_is_500_when_retry_policy(client, settings, post_webhook, repository, make_request, make_event):
    client.app.dependency_overrides[get_settings] = lambda: replace(settings, webhook_ack_on_error=False)
    repository.fail_items = True
    res = post_webhook(make_event(make_request()))
    assert res.status_code == 500

    repository.fail_items = False
    assert post_webhook(make_event(make_request())).status_code == 200
    assert len(repository.orders) == 1


def test_payment_intent_events_are_acknowledged(post_webhook, repository):
    event = {
        "id": "evt_pi",
        "type": "payment_intent.payment_failed",
        "data": {"object": {"id": "pi_1", "last_payment_error": {"message": "Your card was declined."}}},
    }
    res = post_webhook(event)
    assert res.status_code == 200
    assert repository.create_calls == 0


def test_non_utf8_body_is_400(client, repository):
    res = client.post(
        "/api/v1/webhooks/stripe",
        content=b"\xff\xfe\xfa not utf8",
        headers={"Stripe-Signature": "t=1,v1=deadbeef", "Content-Type": "application/json"},
    )
    assert res.status_code == 400
    assert res.json()["code"] == "SIGNATURE_VERIFICATION_ERROR"
    assert repository.create_calls == 0


def _app_without_supabase(settings):
    # Seule la configuration est surchargée: SUPABASE_URL absente, aucun repository en mémoire
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    return app


def test_bad_signature_is_400_without_supabase(settings):
    with TestClient(_app_without_supabase(settings)) as c:
        res = c.post("/api/v1/webhooks/stripe", content="{}", headers={"Stripe-Signature": "t=1,v1=bad"})
    assert res.status_code == 400
    assert res.json()["code"] == "SIGNATURE_VERIFICATION_ERROR"


def test_payment_intent_is_acknowledged_without_supabase(settings, sign):
    payload = json.dumps({"id": "evt_pi", "type": "payment_intent.succeeded", "data": {"object": {"id": "pi_1"}}})
    with TestClient(_app_without_supabase(settings)) as c:
        res = c.post(
            "/api/v1/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign(payload), "Content-Type": "application/json"},
        )
    assert res.status_code == 200
    assert res.json() == {"received": True}
