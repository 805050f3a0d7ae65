"""
Notification e-mail de confirmation de commande via l'API REST Resend.
- httpx POST https://api.resend.com/emails, Authorization: Bearer <RESEND_API_KEY>
- Timeout borné (settings.http_timeout)
- Toute erreur devient UpstreamError; c'est à l'appelant de décider de l'ignorer.
"""
import logging
from decimal import Decimal
from typing import Optional, Sequence

import httpx

from storefront.config import EmailSettings
from storefront.errors import UpstreamError
from storefront.orders.models import CENT, Order, OrderItem

logger = logging.getLogger(__name__)


def _usd(amount: Decimal) -> str:
    return f"${Decimal(amount).quantize(CENT)}"


def render_confirmation_text(order: Order, items: Sequence[OrderItem], customer_name: Optional[str] = None) -> str:
    """Corps texte de l'e-mail (le rendu HTML reste hors de ce service)."""
    is_deposit = order.deposit_paid
    lines = [
        f"Thank You, {customer_name or 'Valued Customer'}!",
        "",
        f"Your order {order.order_number} has been {'received' if is_deposit else 'confirmed'}.",
        "",
        "Order Details",
    ]
    for it in items:
        lines.append(f"- {it.product_name} x{it.quantity} - {_usd(it.price_at_purchase * it.quantity)}")
    lines += [
        "",
        f"Subtotal: {_usd(order.subtotal)}",
        "Delivery: FREE",
        f"{'Amount Paid' if is_deposit else 'Total'}: {_usd(order.amount_paid)}",
    ]
    if is_deposit:
        lines.append(f"Balance Due on Delivery: {_usd(order.balance_due)}")
        lines.append("We accept cash, card, Venmo, or Zelle")
    if order.delivery_date:
        where = f" - {order.delivery_borough}" if order.delivery_borough else ""
        lines += ["", f"Delivery: {order.delivery_date}{where}"]
    return "\n".join(lines)


class ResendEmailNotifier:
    def __init__(self, settings: EmailSettings, timeout: float = 10.0):
        self.settings = settings
        self.timeout = timeout

    def send_order_confirmation(
        self,
        order: Order,
        items: Sequence[OrderItem],
        recipient: Optional[str] = None,
        customer_name: Optional[str] = None,
    ) -> bool:
        """
        Envoie l'e-mail de confirmation.
        Retour: True si envoyé, False si ignoré (pas de clé API ou pas de destinataire).
        Erreurs: UpstreamError si Resend répond hors 2xx ou est injoignable.
        """
        to = recipient or order.guest_email
        if not self.settings.is_configured:
            logger.info("notifications.email skipped (RESEND_API_KEY absente) order=%s", order.order_number)
            return False
        if not to:
            logger.info("notifications.email skipped (pas de destinataire) order=%s", order.order_number)
            return False

        payload = {
            "from": self.settings.sender,
            "to": [to],
            "subject": f"Order Confirmed: {order.order_number}",
            "text": render_confirmation_text(order, items, customer_name or order.guest_name),
        }
        headers = {
            "Authorization": f"Bearer {self.settings.resend_api_key}",
            "Content-Type": "application/json",
        }
        try:
            resp = httpx.post(self.settings.api_url, json=payload, headers=headers, timeout=self.timeout)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Resend injoignable: {e}")
        if resp.status_code >= 300:
            raise UpstreamError(f"Resend a refusé l'e-mail ({resp.status_code}): {resp.text[:200]}")
        logger.info("notifications.email sent order=%s", order.order_number)
        return True
