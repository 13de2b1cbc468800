"""
Client HTTP (httpx) de l’API storefront: résolution des photos, préférence de paiement, droits d’achat.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from storefront.payments.models import PreferenceResponse

logger = logging.getLogger(__name__)

class StorefrontAPIError(Exception):
    """
    Échec d’appel à l’API.
    - status_code None: erreur de transport (timeout, réseau), à retenter.
    """
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

@dataclass
class ClientSettings:
    base_url: str = "http://localhost:8000"
    access_token: Optional[str] = None
    timeout: float = 10.0

@dataclass
class ResolvedPhotos:
    photos: List[Dict[str, Any]] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

class StorefrontAPI:
    def __init__(self, settings: ClientSettings, transport: Optional[httpx.BaseTransport] = None):
        self.settings = settings
        self._http = httpx.Client(base_url=settings.base_url.rstrip("/"), timeout=settings.timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def _headers(self) -> Dict[str, str]:
        if self.settings.access_token:
            return {"Authorization": f"Bearer {self.settings.access_token}"}
        return {}

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise StorefrontAPIError(f"Serveur injoignable: {e}") from e
        if resp.status_code >= 400:
            raise StorefrontAPIError(_error_message(resp), status_code=resp.status_code)
        return resp

    def _json_object(self, resp: httpx.Response) -> Dict[str, Any]:
        """Corps 2xx attendu: un objet JSON. Page de proxy, liste ou corps vide -> StorefrontAPIError."""
        try:
            data = resp.json()
        except ValueError as e:
            raise StorefrontAPIError("Réponse du serveur illisible", status_code=resp.status_code) from e
        if not isinstance(data, dict):
            raise StorefrontAPIError("Réponse du serveur inattendue", status_code=resp.status_code)
        return data

    def resolve_photos(self, photo_ids: List[str]) -> ResolvedPhotos:
        if not photo_ids:
            return ResolvedPhotos()
        data = self._json_object(self._request("GET", "/api/v1/photos", params={"ids": ",".join(photo_ids)}))
        photos, missing = data.get("photos") or [], data.get("missing") or []
        if not isinstance(photos, list) or not isinstance(missing, list) or not all(isinstance(p, dict) for p in photos):
            raise StorefrontAPIError("Liste de photos invalide")
        return ResolvedPhotos(photos=photos, missing=[str(i) for i in missing])

    def create_preference(self, photo_ids: List[str], user_id: str) -> PreferenceResponse:
        resp = self._request("POST", "/api/v1/payments/preference", json={"photo_ids": photo_ids, "user_id": user_id})
        data = self._json_object(resp)
        try:
            return PreferenceResponse.model_validate(data)
        except ValidationError as e:
            raise StorefrontAPIError("Réponse de paiement invalide", status_code=resp.status_code) from e

    def list_purchases(self) -> List[str]:
        ids = self._json_object(self._request("GET", "/api/v1/photos/purchases")).get("photo_ids") or []
        if not isinstance(ids, list):
            raise StorefrontAPIError("Liste d'achats invalide")
        return [str(i) for i in ids]

def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or f"HTTP {resp.status_code}")
    return f"HTTP {resp.status_code}"
