import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from storefront.utils.security import require_user
from storefront.photos import service as photos_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/photos", tags=["Photos API"])

# module storefront.photos.views
@router.get("")
def get_photos_by_ids(ids: str = "") -> Dict[str, Any]:
    """
    Retourne les photos normalisées {id, filename, original_name, storage_path, price, event_id}
    pour hydrater le panier.
    - Paramètre: ids séparés par des virgules.
    - missing: IDs inconnus de la base (le client doit les retirer du panier).
    - Erreurs: 503 si la base est injoignable (le client affiche "prix inconnu").
    """
    id_list = [i.strip() for i in (ids or "").split(",") if i.strip()]
    resolution = photos_service.resolve_photos(id_list)
    if not resolution.ok:
        raise HTTPException(status_code=503, detail="Impossible de charger les photos")
    return {"photos": resolution.photos, "missing": resolution.stale_ids}

@router.get("/purchases")
def get_my_purchases(user: Dict[str, Any] = Depends(require_user)) -> Dict[str, Any]:
    """
    IDs des photos achetées par l’utilisateur courant (droits confirmés par webhook).
    """
    return {"photo_ids": photos_service.list_purchased_photo_ids(user.get("id") or "", user.get("token") or "")}
