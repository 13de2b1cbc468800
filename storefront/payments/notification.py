"""
Lecture des notifications Mercado Pago (webhook): type, identifiant de paiement, signature.
"""
import hashlib
import hmac
import json
from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import ValidationError

from .models import WebhookNotification

class InvalidNotification(Exception):
    """Corps ou signature de notification inexploitable."""

# module storefront.payments.notification
def parse_notification(body: bytes, query: Mapping[str, str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extrait (type, data.id) d’une notification.
    - Corps JSON {type, data: {id}} prioritaire.
    - Repli sur la query string: ?type=payment&data.id=... ou format IPN ?topic=payment&id=...
    - Corps vide toléré; corps non JSON -> InvalidNotification.
    """
    payload: Dict[str, Any] = {}
    if body and body.strip():
        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise InvalidNotification("Notification JSON invalide") from e
        if not isinstance(payload, dict):
            raise InvalidNotification("Notification JSON invalide")
    try:
        notification = WebhookNotification.model_validate(payload)
    except ValidationError as e:
        raise InvalidNotification("Notification mal formée") from e

    kind = notification.type or query.get("type") or query.get("topic")
    data_id = (notification.data.id if notification.data else None) or query.get("data.id") or query.get("id")
    return kind, data_id

def verify_signature(
    *,
    secret: str,
    signature_header: Optional[str],
    request_id: Optional[str],
    data_id: Optional[str],
) -> None:
    """
    Vérifie l’en-tête x-signature ("ts=...,v1=...") d’une notification.
    - Manifeste signé: "id:<data.id>;request-id:<x-request-id>;ts:<ts>;"
    - secret vide: vérification désactivée (dev, non sécurisé).
    - Soulève InvalidNotification si la signature est absente ou fausse.
    """
    if not secret:
        return
    parts: Dict[str, str] = {}
    for chunk in (signature_header or "").split(","):
        key, _, value = chunk.strip().partition("=")
        if key and value:
            parts[key] = value
    ts, v1 = parts.get("ts"), parts.get("v1")
    if not ts or not v1:
        raise InvalidNotification("Signature absente")

    manifest = ""
    if data_id:
        manifest += f"id:{str(data_id).lower()};"
    if request_id:
        manifest += f"request-id:{request_id};"
    manifest += f"ts:{ts};"
    expected = hmac.new(secret.encode("utf-8"), manifest.encode("utf-8"), hashlib.sha256).hexdigest()
    if not hmac.compare_digest(expected, v1):
        raise InvalidNotification("Signature invalide")
