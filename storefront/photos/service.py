"""
Résolution des photos du panier: prix et métadonnées font foi côté base, jamais côté client.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import repository

@dataclass
class PhotoResolution:
    """
    Résultat de la résolution d’une liste d’IDs:
    - photos: lignes trouvées, dans l’ordre des IDs demandés
    - stale_ids: IDs absents de la base (à retirer du panier)
    - error: message si la lecture a échoué (photos et stale_ids sont alors vides)
    """
    photos: List[Dict[str, Any]] = field(default_factory=list)
    stale_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

def price_from_photo(photo: Dict[str, Any]) -> float:
    """
    Prix d’une photo (float).
    - Autorise photo.get("price") à être str|float|int.
    - Retourne 0.0 si absent ou non interprétable.
    """
    try:
        return float(photo.get("price") or 0)
    except (TypeError, ValueError):
        return 0.0

def normalize_photo(photo: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(photo.get("id") or ""),
        "filename": photo.get("filename") or "",
        "original_name": photo.get("original_name") or "",
        "storage_path": photo.get("storage_path") or "",
        "price": price_from_photo(photo),
        "event_id": photo.get("event_id"),
    }

def _unique_ids(ids) -> List[str]:
    seen: List[str] = []
    for i in ids or []:
        sid = str(i or "").strip()
        if sid and sid not in seen:
            seen.append(sid)
    return seen

def resolve_photos(ids: List[str]) -> PhotoResolution:
    """
    Mappe des IDs de panier vers les photos de la base.
    - Une erreur de lecture ne lève jamais: elle est reportée dans PhotoResolution.error.
    """
    wanted = _unique_ids(ids)
    if not wanted:
        return PhotoResolution()
    try:
        by_id = repository.get_photos_map(wanted)
    except repository.PhotoStorageError as e:
        return PhotoResolution(error=str(e) or "Lecture des photos impossible")
    photos = [normalize_photo(by_id[i]) for i in wanted if i in by_id]
    stale = [i for i in wanted if i not in by_id]
    return PhotoResolution(photos=photos, stale_ids=stale)

def total_price(photos: List[Dict[str, Any]]) -> float:
    return round(sum(price_from_photo(p) for p in photos), 2)

def list_purchased_photo_ids(user_id: str, user_token: str) -> List[str]:
    return repository.list_purchased_photo_ids(user_id, user_token)

def can_download(photo: Dict[str, Any], purchased_ids: List[str]) -> bool:
    """Une photo est téléchargeable sans filigrane si elle est gratuite ou achetée."""
    return price_from_photo(photo) <= 0 or str(photo.get("id")) in set(purchased_ids or [])
