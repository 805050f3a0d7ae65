"""
Adaptateur Stripe: centralise les appels au SDK.
- La clé API est passée à chaque requête (aucun stripe.api_key global).
- Le transport HTTP du SDK reçoit un timeout borné au démarrage (configure_http_client).
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe

from storefront.config import StripeSettings
from storefront.errors import PaymentConfigurationError, SignatureVerificationError, UpstreamError

logger = logging.getLogger(__name__)


# module storefront.checkout.stripe_client
def configure_http_client(timeout: float) -> None:
    """Remplace le client HTTP par défaut du SDK par un client à timeout borné."""
    stripe.default_http_client = stripe.RequestsClient(timeout=timeout)


def require_stripe(settings: StripeSettings) -> None:
    """Lève PaymentConfigurationError si STRIPE_SECRET_KEY est absente."""
    if not settings.is_configured:
        logger.error("Configuration Stripe manquante: STRIPE_SECRET_KEY absente")
        raise PaymentConfigurationError("Payment configuration error")


def create_session(
    settings: StripeSettings,
    params: Dict[str, Any],
    idempotency_key: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - params: mode, line_items, success_url, cancel_url, metadata, ...
    - idempotency_key: évite une double session si la requête est rejouée
    Retour: {"id": "cs_...", "url": "https://checkout.stripe.com/..."}
    Erreurs: UpstreamError si Stripe refuse ou est injoignable.
    """
    require_stripe(settings)
    try:
        session = stripe.checkout.Session.create(
            api_key=settings.secret_key,
            idempotency_key=idempotency_key,
            **params,
        )
    except stripe.StripeError as e:
        logger.exception("stripe_client.create_session failed")
        raise UpstreamError(f"Stripe a refusé la création de session: {getattr(e, 'user_message', None) or e}")
    return {"id": getattr(session, "id", None), "url": getattr(session, "url", None)}


def construct_event(payload: bytes, sig_header: Optional[str], settings: StripeSettings) -> Dict[str, Any]:
    """
    Vérifie la signature Stripe-Signature sur le corps brut, puis seulement ensuite
    parse l'enveloppe JSON.
    - Tolérance (anti-rejeu/décalage d'horloge): settings.webhook_tolerance secondes
    - Lève PaymentConfigurationError si STRIPE_WEBHOOK_SECRET est absent
    - Lève SignatureVerificationError si l'en-tête est absent ou invalide
    """
    if not settings.webhook_secret:
        logger.error("Configuration Stripe manquante: STRIPE_WEBHOOK_SECRET absent")
        raise PaymentConfigurationError("Webhook configuration error")
    if not sig_header:
        raise SignatureVerificationError("No signature")

    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else str(payload)
    except UnicodeDecodeError:
        raise SignatureVerificationError("Webhook Error: invalid payload")
    try:
        stripe.WebhookSignature.verify_header(
            text, sig_header, settings.webhook_secret, tolerance=settings.webhook_tolerance
        )
    except stripe.SignatureVerificationError as e:
        raise SignatureVerificationError(f"Webhook Error: {e}")

    try:
        event = json.loads(text)
    except ValueError:
        raise SignatureVerificationError("Webhook Error: invalid payload")
    if not isinstance(event, dict):
        raise SignatureVerificationError("Webhook Error: invalid payload")
    return event
