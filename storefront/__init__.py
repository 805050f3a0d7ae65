"""
Boutique en ligne (pâtisserie): checkout Stripe, réconciliation des webhooks,
persistance des commandes (Supabase) et e-mails de confirmation (Resend).
"""

__version__ = "1.0.0"
