"""
Cas d'usage 'checkout': orchestre cart, metadata et stripe_client.
Le Builder ne crée jamais de commande en base: la commande n'existe qu'après
confirmation du paiement (voir storefront.webhooks.service).
"""
import logging
from typing import Any, Dict

from storefront.checkout import cart as cart_logic
from storefront.checkout import metadata as meta
from storefront.checkout import stripe_client
from storefront.checkout.models import CheckoutRequest, CheckoutResult
from storefront.config import Settings
from storefront.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

PAYMENT_METHOD_TYPES = {
    "stripe": ["card"],
    "paypal": ["paypal"],
}


def free_delivery_option(currency: str) -> Dict[str, Any]:
    return {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": 0, "currency": currency},
            "display_name": "Free Delivery",
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": 1},
                "maximum": {"unit": "business_day", "value": 5},
            },
        },
    }


class CheckoutSessionBuilder:
    """Panier -> montant à encaisser -> session Stripe hébergée."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def success_url(self, order_number: str) -> str:
        return f"{self.settings.site_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}&order={order_number}"

    def cancel_url(self) -> str:
        return f"{self.settings.site_url}/checkout?cancelled=true"

    def build_params(self, request: CheckoutRequest, order_number: str) -> Dict[str, Any]:
        """Paramètres de stripe.checkout.Session.create (sans appel réseau)."""
        currency = self.settings.stripe.currency
        breakdown = cart_logic.compute_charge(
            request.items, self.settings.deposit_threshold, self.settings.deposit_rate
        )
        params: Dict[str, Any] = {
            "mode": "payment",
            "payment_method_types": PAYMENT_METHOD_TYPES[request.payment_method],
            "line_items": cart_logic.to_line_items(
                request.items, breakdown, order_number, currency, self.settings.deposit_rate
            ),
            "customer_email": request.customer.email,
            "success_url": self.success_url(order_number),
            "cancel_url": self.cancel_url(),
            "metadata": meta.make_metadata(request, order_number, breakdown),
        }
        if request.payment_method == "stripe":
            params["shipping_options"] = [free_delivery_option(currency)]
        logger.info(
            "checkout.build order=%s deposit=%s subtotal=%s due=%s",
            order_number, breakdown.is_deposit, breakdown.subtotal, breakdown.amount_due,
        )
        return params

    def build(self, request: CheckoutRequest) -> CheckoutResult:
        """
        Étapes:
          1) Valider le panier (non vide) et le moyen de paiement
          2) Vérifier la configuration Stripe (PaymentConfigurationError)
          3) Calculer acompte / paiement complet et générer le numéro de commande
          4) Créer la session Stripe (UpstreamError si refus) et renvoyer son URL
        """
        if not request.items:
            raise ValidationError("Panier vide", field="items")
        if request.payment_method not in PAYMENT_METHOD_TYPES:
            raise ValidationError("Moyen de paiement invalide", field="paymentMethod")
        stripe_client.require_stripe(self.settings.stripe)

        order_number = cart_logic.generate_order_number(self.settings.order_number_prefix)
        params = self.build_params(request, order_number)
        session = stripe_client.create_session(
            self.settings.stripe, params, idempotency_key=f"checkout-{order_number}"
        )
        url = session.get("url")
        if not url:
            raise UpstreamError("Session Stripe invalide")
        return CheckoutResult(url=url, order_number=order_number, session_id=session.get("id"))
