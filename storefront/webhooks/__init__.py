"""
Module 'webhooks': réception des événements Stripe et matérialisation des commandes.
"""
from .service import MaterializationResult, PaymentReconciler

__all__ = ["MaterializationResult", "PaymentReconciler"]
