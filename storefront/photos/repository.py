"""
Accès aux données 'photos' (lecture seule) et aux droits d'achat 'photo_purchases'.
"""
from typing import Iterable, Dict, Any, List
import logging
import storefront.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

PHOTO_COLUMNS = "id, filename, original_name, storage_path, price, event_id, created_at"

class PhotoStorageError(Exception):
    """Échec de lecture de la table photos (réseau, PostgREST)."""

# module storefront.photos.repository
def fetch_photos_by_ids(ids: List[str]) -> List[dict]:
    """
    Récupère les photos par leurs IDs (table 'photos').
    - Retourne [] si ids vide.
    - Soulève PhotoStorageError en cas d’erreur: l’appelant choisit de dégrader ou d’échouer.
    """
    if not ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("photos")
            .select(PHOTO_COLUMNS)
            .in_("id", [str(i) for i in ids])
            .execute()
        )
        return res.data or []
    except Exception as e:
        logger.exception("photos.repository.fetch_photos_by_ids failed ids=%s", ids)
        raise PhotoStorageError(str(e)) from e

def get_photos_map(ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    """
    Retourne un dict {id: photo} à partir d’une liste d’IDs.
    """
    photos = fetch_photos_by_ids(list(ids))
    return {str(p.get("id")): p for p in photos}

def list_purchased_photo_ids(user_id: str, user_token: str) -> List[str]:
    """
    IDs des photos pour lesquelles l’utilisateur possède un droit d’achat.
    - Lecture au nom de l’utilisateur (client porteur de son jeton, RLS actif).
    - Retourne [] si user_id ou jeton vide, ou en cas d’erreur.
    """
    if not user_id or not user_token:
        return []
    try:
        res = (
            supabase_client.get_user_supabase(user_token)
            .table("photo_purchases")
            .select("photo_id")
            .eq("user_id", user_id)
            .execute()
        )
        return [str(r.get("photo_id")) for r in (res.data or []) if r.get("photo_id")]
    except Exception:
        logger.exception("photos.repository.list_purchased_photo_ids failed user_id=%s", user_id)
        return []

