"""
Adaptateur Mercado Pago: centralise les appels REST (httpx) et la configuration.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from storefront import config

logger = logging.getLogger(__name__)

class MercadoPagoError(Exception):
    """
    Échec d’un appel à Mercado Pago.
    - status_code: code HTTP renvoyé par l’API, None si la requête n’a pas abouti (timeout, DNS...).
    - transient: True pour les erreurs réseau et 5xx (à retenter plus tard, jamais une preuve de refus).
    """
    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def transient(self) -> bool:
        return self.status_code is None or self.status_code >= 500

# module storefront.payments.mercado_pago
def require_mercado_pago() -> str:
    """
    Retourne le jeton d’accès configuré.
    - Soulève MercadoPagoError si MERCADO_PAGO_ACCESS_TOKEN est absent.
    """
    token = config.MERCADO_PAGO_ACCESS_TOKEN
    if not token:
        raise MercadoPagoError("MERCADO_PAGO_ACCESS_TOKEN manquant")
    return token

def _headers(token: str, idempotency_key: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
    }
    if idempotency_key:
        headers["X-Idempotency-Key"] = idempotency_key
    return headers

def _send(method: str, path: str, **kwargs) -> Dict[str, Any]:
    url = f"{config.MERCADO_PAGO_API_URL}{path}"
    try:
        resp = httpx.request(method, url, timeout=config.MERCADO_PAGO_TIMEOUT, **kwargs)
    except httpx.HTTPError as e:
        raise MercadoPagoError(f"Mercado Pago injoignable: {e}") from e
    if not (200 <= resp.status_code < 300):
        logger.error("mercado_pago %s %s failed status=%s body=%s", method, path, resp.status_code, resp.text)
        raise MercadoPagoError(
            f"Mercado Pago a répondu {resp.status_code}",
            status_code=resp.status_code,
            body=resp.text,
        )
    try:
        return resp.json()
    except ValueError as e:
        raise MercadoPagoError("Réponse Mercado Pago illisible", status_code=resp.status_code, body=resp.text) from e

def create_preference(preference: Dict[str, Any], idempotency_key: Optional[str] = None) -> Dict[str, Any]:
    """
    Crée une préférence Checkout Pro.
    - preference: items, back_urls, auto_return, external_reference, notification_url
    Retour: dict incluant "id" et "init_point" (URL de paiement hébergée).
    """
    token = require_mercado_pago()
    return _send("POST", "/checkout/preferences", json=preference, headers=_headers(token, idempotency_key))

def get_payment(payment_id: str) -> Dict[str, Any]:
    """
    Lit un paiement par son identifiant passerelle (source de vérité du statut).
    Retour: dict incluant "status", "external_reference", "transaction_amount", etc.
    """
    token = require_mercado_pago()
    return _send("GET", f"/v1/payments/{payment_id}", headers=_headers(token))
