"""
Contexte de session client: regroupe panier, notifications, API et droits d’achat.
Construit à l’ouverture de la session, détruit à sa fermeture; aucun état global.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Set

import httpx

from storefront.photos.service import can_download
from .api import ClientSettings, StorefrontAPI, StorefrontAPIError
from .callbacks import consume_payment_callback
from .cart import CartItem, CartStore
from .checkout import CartSummary, CheckoutInitiator, CheckoutResult
from .notifications import Notice, Notifier

logger = logging.getLogger(__name__)

class StorefrontSession:
    """
    Usage:
        with StorefrontSession(settings, user={"id": "..."}) as session:
            session.cart.add_item(CartItem(id="p1", original_name="IMG_1.jpg"))
            result = session.checkout()
    navigate: reçoit l’URL Mercado Pago (navigation complète); par défaut mémorisée dans last_redirect.
    """
    def __init__(
        self,
        settings: ClientSettings,
        user: Optional[Dict[str, Any]] = None,
        navigate: Optional[Callable[[str], None]] = None,
        listener: Optional[Callable[[Notice], None]] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.settings = settings
        self.user = user
        self.last_redirect: Optional[str] = None
        self._navigate = navigate
        self._listener = listener
        self._transport = transport
        self.notifier: Optional[Notifier] = None
        self.cart: Optional[CartStore] = None
        self.api: Optional[StorefrontAPI] = None
        self.checkout_flow: Optional[CheckoutInitiator] = None
        self.purchased_ids: Set[str] = set()

    # --- cycle de vie ---

    def open(self) -> "StorefrontSession":
        self.notifier = Notifier(self._listener)
        self.cart = CartStore(self.notifier)
        self.api = StorefrontAPI(self.settings, transport=self._transport)
        self.checkout_flow = CheckoutInitiator(
            cart=self.cart,
            api=self.api,
            notifier=self.notifier,
            current_user=lambda: self.user,
            navigate=self._go,
        )
        self.purchased_ids = set()
        return self

    def close(self) -> None:
        if self.api is not None:
            self.api.close()
        self.notifier = None
        self.cart = None
        self.api = None
        self.checkout_flow = None
        self.purchased_ids = set()

    @property
    def is_open(self) -> bool:
        return self.cart is not None

    def __enter__(self) -> "StorefrontSession":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_open(self) -> None:
        if not self.is_open:
            raise RuntimeError("Session storefront fermée")

    def _go(self, url: str) -> None:
        self.last_redirect = url
        if self._navigate:
            self._navigate(url)

    # --- cas d’usage ---

    def add_photo(self, photo: Dict[str, Any]) -> bool:
        self._require_open()
        return self.cart.add_item(CartItem.model_validate(photo))

    def summary(self) -> CartSummary:
        self._require_open()
        return self.checkout_flow.resolve_cart()

    def checkout(self) -> CheckoutResult:
        self._require_open()
        return self.checkout_flow.start()

    def refresh_purchases(self) -> List[str]:
        """Recharge les droits d’achat confirmés; conserve l’état précédent si l’appel échoue."""
        self._require_open()
        if not (self.user or {}).get("id"):
            self.purchased_ids = set()
            return []
        try:
            self.purchased_ids = set(self.api.list_purchases())
        except StorefrontAPIError as e:
            logger.warning("session.refresh_purchases failed status=%s error=%s", e.status_code, e)
        return sorted(self.purchased_ids)

    def is_purchased(self, photo_id: str) -> bool:
        return photo_id in self.purchased_ids

    def can_download(self, photo: Dict[str, Any]) -> bool:
        return can_download(photo, list(self.purchased_ids))

    def handle_gallery_url(self, url: str) -> str:
        """
        Traite un retour /gallery?payment=... une seule fois et retourne l’URL sans le paramètre.
        - success: notice + rechargement des droits (l’état définitif arrive par webhook, le retour n’est qu’un indice)
        - failure / pending: notice, panier conservé
        - tout chargement de la galerie ramène le checkout à IDLE (retour navigateur sans paramètre compris)
        """
        self._require_open()
        self.checkout_flow.reset()
        outcome, cleaned = consume_payment_callback(url)
        if outcome is None:
            return cleaned
        if outcome == "success":
            self.notifier.success("Paiement reçu", "Vos photos seront disponibles dès confirmation du paiement")
            self.refresh_purchases()
        elif outcome == "failure":
            self.notifier.error("Paiement refusé", "Le paiement n'a pas abouti, votre panier est conservé")
        else:
            self.notifier.info("Paiement en attente", "Le paiement est en cours de traitement")
        return cleaned
