"""
Module 'payments' (feature-first): point d'entrée public.
Réunit préférence Mercado Pago, client REST, lecture des notifications, repository BD et services.
"""

from .models import PaymentStatus, CheckoutRequest, PreferenceResponse, WebhookNotification
from .preference import build_preference, callback_urls, map_gateway_status, preference_title
from .notification import parse_notification, verify_signature, InvalidNotification
from .mercado_pago import MercadoPagoError, create_preference, get_payment
from .service import create_payment_preference, reconcile_notification, grant_purchases, purge_dangling_payments

__all__ = [
    # models
    "PaymentStatus",
    "CheckoutRequest",
    "PreferenceResponse",
    "WebhookNotification",
    # preference
    "build_preference",
    "callback_urls",
    "map_gateway_status",
    "preference_title",
    # notifications
    "parse_notification",
    "verify_signature",
    "InvalidNotification",
    # mercado pago
    "MercadoPagoError",
    "create_preference",
    "get_payment",
    # services
    "create_payment_preference",
    "reconcile_notification",
    "grant_purchases",
    "purge_dangling_payments",
]
