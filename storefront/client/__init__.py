"""
Module 'client': point d'entrée public du parcours navigateur (panier, checkout, retours de paiement).
"""

from .api import ClientSettings, StorefrontAPI, StorefrontAPIError
from .callbacks import consume_payment_callback
from .cart import CartItem, CartStore
from .checkout import CartSummary, CheckoutInitiator, CheckoutResult, CheckoutState, Rejection
from .notifications import Notice, Notifier
from .session import StorefrontSession

__all__ = [
    "ClientSettings",
    "StorefrontAPI",
    "StorefrontAPIError",
    "consume_payment_callback",
    "CartItem",
    "CartStore",
    "CartSummary",
    "CheckoutInitiator",
    "CheckoutResult",
    "CheckoutState",
    "Rejection",
    "Notice",
    "Notifier",
    "StorefrontSession",
]
