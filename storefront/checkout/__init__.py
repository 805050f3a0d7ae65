"""
Module 'checkout' (feature-first): point d'entrée public.
Réunit logique panier, metadata Stripe, client Stripe et construction de session.
"""

from .cart import ChargeBreakdown, compute_charge, generate_order_number, to_line_items
from .metadata import CheckoutMetadata, extract_metadata, make_metadata
from .stripe_client import construct_event, create_session, require_stripe
from .service import CheckoutSessionBuilder

__all__ = [
    # cart
    "ChargeBreakdown",
    "compute_charge",
    "generate_order_number",
    "to_line_items",
    # metadata
    "CheckoutMetadata",
    "extract_metadata",
    "make_metadata",
    # stripe
    "construct_event",
    "create_session",
    "require_stripe",
    # service
    "CheckoutSessionBuilder",
]
