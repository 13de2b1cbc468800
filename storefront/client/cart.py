"""
Panier client: sélection de photos pour la durée d’une session de navigation.
Aucune persistance; l’identité de la photo (id) est la seule clé de dédoublonnage.
"""
from typing import Dict, Iterable, List

from pydantic import BaseModel, ConfigDict

from .notifications import Notifier

class CartItem(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    filename: str = ""
    original_name: str = ""
    storage_path: str = ""

class CartStore:
    """
    Sélection courante, ordonnée par insertion (affichage uniquement).
    Toutes les opérations sont synchrones et en mémoire.
    """
    def __init__(self, notifier: Notifier):
        self._notifier = notifier
        self._items: Dict[str, CartItem] = {}

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    @property
    def total_items(self) -> int:
        return len(self._items)

    def ids(self) -> List[str]:
        return list(self._items.keys())

    def is_in_cart(self, photo_id: str) -> bool:
        return photo_id in self._items

    def add_item(self, item: CartItem) -> bool:
        """Ajoute la photo si absente. Retourne False (et prévient) si elle y est déjà."""
        if item.id in self._items:
            self._notifier.info("Déjà dans le panier", "Cette photo est déjà dans votre panier")
            return False
        self._items[item.id] = item
        self._notifier.success("Ajoutée au panier", f"{item.original_name or item.filename} a été ajoutée")
        return True

    def remove_item(self, photo_id: str) -> bool:
        item = self._items.pop(photo_id, None)
        if item is None:
            return False
        self._notifier.info("Retirée du panier", f"{item.original_name or item.filename} a été retirée")
        return True

    def clear_cart(self) -> None:
        self._items.clear()
        self._notifier.info("Panier vidé", "Toutes les photos ont été retirées")

    def prune(self, photo_ids: Iterable[str]) -> List[str]:
        """Retire sans notice individuelle les photos devenues introuvables; retourne les ids retirés."""
        removed = [pid for pid in photo_ids if self._items.pop(pid, None) is not None]
        return removed
