# module storefront.webhooks.views
"""Webhook Stripe.
- Corps brut + en-tête Stripe-Signature, vérifiés avant tout parsing.
- SDK Stripe et client Supabase synchrones: exécutés dans le threadpool.
- Réponses: 200 {"received": true}; 400 signature absente/invalide;
  500 configuration manquante, ou échec de matérialisation si WEBHOOK_ACK_ON_ERROR=false.
"""
import logging
from typing import Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from storefront.config import Settings, get_settings
from storefront.notifications.email import ResendEmailNotifier
from storefront.orders.repository import OrderRepository
from storefront.orders.views import get_order_repository_factory
from storefront.webhooks.service import PaymentReconciler

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])


def get_notifier(settings: Settings = Depends(get_settings)) -> ResendEmailNotifier:
    return ResendEmailNotifier(settings.email, timeout=settings.http_timeout)


def get_reconciler(
    settings: Settings = Depends(get_settings),
    repository_factory: Callable[[], OrderRepository] = Depends(get_order_repository_factory),
    notifier: ResendEmailNotifier = Depends(get_notifier),
) -> PaymentReconciler:
    # Supabase n'est ouvert qu'après vérification de la signature, et seulement pour matérialiser
    return PaymentReconciler(settings, notifier=notifier, repository_factory=repository_factory)


@router.post("/stripe", include_in_schema=False)
async def stripe_webhook(request: Request, reconciler: PaymentReconciler = Depends(get_reconciler)):
    payload = await request.body()
    signature = request.headers.get("stripe-signature")

    event = await run_in_threadpool(reconciler.verify, payload, signature)
    acknowledged = await run_in_threadpool(reconciler.process_event, event)
    if not acknowledged:
        return JSONResponse(
            status_code=500,
            content={"error": "Webhook processing failed", "code": "WEBHOOK_PROCESSING_FAILED"},
        )
    return {"received": True}
