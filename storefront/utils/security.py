"""
Dépendances FastAPI d’authentification: jeton Supabase en en-tête Bearer ou cookie sb_access.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import Depends, HTTPException, Request

from storefront.auth import service as auth_service

logger = logging.getLogger(__name__)

COOKIE_NAME = "sb_access"

def request_token(request: Request) -> Optional[str]:
    """Bearer prioritaire (client API), sinon cookie (navigateur)."""
    scheme, _, value = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and value.strip():
        return value.strip()
    return request.cookies.get(COOKIE_NAME) or None

def _session_expired() -> HTTPException:
    return HTTPException(status_code=401, detail="Session expirée, veuillez vous connecter")

def get_current_user(request: Request) -> Dict[str, Any]:
    token = request_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Non authentifié")
    try:
        user = auth_service.get_user_from_token(token)
    except Exception as e:
        # GoTrue refuse le jeton (expiré, révoqué) ou est injoignable
        logger.warning("security.get_current_user rejected path=%s error=%s", request.url.path, e)
        raise _session_expired()
    if not user.get("id"):
        raise _session_expired()
    return user

def require_user(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    return user

def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("role") != auth_service.ADMIN_ROLE:
        logger.warning("security.require_admin denied user_id=%s", user.get("id"))
        raise HTTPException(status_code=403, detail="Accès interdit")
    return user
