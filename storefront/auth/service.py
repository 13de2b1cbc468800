"""
Identité des acheteurs: un jeton Supabase (GoTrue) est résolu en utilisateur normalisé.
Aucune inscription ni connexion ici, le front les fait directement auprès de Supabase.
"""
import logging
from typing import Any, Dict, Optional

import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
BUYER_ROLE = "user"

def determine_role(metadata: Optional[Dict[str, Any]]) -> str:
    """user_metadata.role == "admin" (casse ignorée) ouvre les routes d’administration (purge)."""
    if str((metadata or {}).get("role", "")).lower() == ADMIN_ROLE:
        return ADMIN_ROLE
    return BUYER_ROLE

def _as_dict(user: Any) -> Dict[str, Any]:
    # supabase-py renvoie un objet User, les doubles de test un dict
    if isinstance(user, dict):
        return user
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "user_metadata": getattr(user, "user_metadata", None),
    }

def get_user_from_token(access_token: str) -> Dict[str, Any]:
    """
    Retourne {id, email, metadata, role, token}.
    - id None si le jeton est expiré ou inconnu (l’appelant répond 401).
    """
    res = supabase_client.get_supabase().auth.get_user(access_token)
    raw = _as_dict(getattr(res, "user", None) or {})
    metadata = raw.get("user_metadata") or {}
    if not raw.get("id"):
        logger.info("auth.get_user_from_token unknown token")
    return {
        "id": raw.get("id"),
        "email": raw.get("email"),
        "metadata": metadata,
        "role": determine_role(metadata),
        "token": access_token,
    }
