"""
Construction de la préférence Mercado Pago (pas d’appel réseau, pas de DB).
"""
from typing import Any, Dict, Optional

from storefront import config
from .models import PaymentStatus

def preference_title(photo_count: int) -> str:
    return f"Fotos ({photo_count} {'foto' if photo_count == 1 else 'fotos'})"

def callback_urls(base_url: str) -> Dict[str, str]:
    """
    URLs de retour navigateur: toutes pointent vers la galerie avec ?payment=<issue>.
    """
    gallery = f"{base_url.rstrip('/')}{config.GALLERY_PATH}"
    return {
        "success": f"{gallery}?payment=success",
        "failure": f"{gallery}?payment=failure",
        "pending": f"{gallery}?payment=pending",
    }

def build_preference(
    *,
    payment_id: str,
    photo_count: int,
    total: float,
    base_url: str,
    notification_base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Sérialise la préférence associée à un paiement local.
    - Une seule ligne agrégée (quantité 1, prix = total), jamais une ligne par photo.
    - external_reference: id du paiement local, clé de jointure lue par le webhook.
    - notification_url: webhook exposé par ce serveur (PUBLIC_BASE_URL par défaut).
    """
    notify_base = (notification_base_url or config.PUBLIC_BASE_URL).rstrip("/")
    return {
        "items": [
            {
                "title": preference_title(photo_count),
                "quantity": 1,
                "unit_price": round(float(total), 2),
                "currency_id": config.PAYMENT_CURRENCY,
            }
        ],
        "back_urls": callback_urls(base_url),
        "auto_return": "approved",
        "external_reference": str(payment_id),
        "notification_url": f"{notify_base}{config.WEBHOOK_PATH}",
    }

def map_gateway_status(status: Optional[str]) -> PaymentStatus:
    """approved -> approved, rejected -> rejected, tout le reste (in_process, cancelled...) -> pending."""
    value = str(status or "").lower()
    if value == "approved":
        return PaymentStatus.APPROVED
    if value == "rejected":
        return PaymentStatus.REJECTED
    return PaymentStatus.PENDING
