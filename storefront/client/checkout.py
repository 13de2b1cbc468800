"""
Initiation du checkout côté client.

Machine à états:
    IDLE -> VALIDATING -> REQUESTING -> REDIRECTING   (succès, navigation vers Mercado Pago)
    IDLE -> VALIDATING -> ERROR -> IDLE               (refus ou échec, panier conservé)

Le panier n’est jamais vidé ici: le droit d’achat n’existe qu’après confirmation par webhook.
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from storefront.photos.service import total_price
from .api import StorefrontAPI, StorefrontAPIError
from .cart import CartStore
from .notifications import Notifier

logger = logging.getLogger(__name__)

class CheckoutState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    REQUESTING = "requesting"
    REDIRECTING = "redirecting"
    ERROR = "error"

class Rejection(str, Enum):
    NOT_SIGNED_IN = "not_signed_in"
    EMPTY_CART = "empty_cart"
    FREE_PHOTOS = "free_photos"
    PRICES_UNAVAILABLE = "prices_unavailable"
    REQUEST_FAILED = "request_failed"
    BUSY = "busy"

@dataclass
class CartSummary:
    """Photos du panier avec prix relus en base; loaded False si la lecture a échoué (prix inconnus)."""
    photos: List[Dict[str, Any]] = field(default_factory=list)
    loaded: bool = True

    @property
    def total(self) -> float:
        return total_price(self.photos)

    @property
    def photo_ids(self) -> List[str]:
        return [str(p.get("id")) for p in self.photos]

@dataclass
class CheckoutResult:
    ok: bool
    rejection: Optional[Rejection] = None
    redirect_url: Optional[str] = None
    payment_id: Optional[str] = None
    total: Optional[float] = None

class CheckoutInitiator:
    def __init__(
        self,
        cart: CartStore,
        api: StorefrontAPI,
        notifier: Notifier,
        current_user: Callable[[], Optional[Dict[str, Any]]],
        navigate: Callable[[str], None],
    ):
        self.cart = cart
        self.api = api
        self.notifier = notifier
        self.current_user = current_user
        self.navigate = navigate
        self.state = CheckoutState.IDLE

    def resolve_cart(self) -> CartSummary:
        """
        Relit les photos du panier en base et retire celles qui n’existent plus.
        - Échec de lecture: notice d’erreur, résumé loaded=False (prix inconnus), panier intact.
        """
        ids = self.cart.ids()
        if not ids:
            return CartSummary()
        try:
            resolved = self.api.resolve_photos(ids)
        except StorefrontAPIError as e:
            logger.warning("checkout.resolve_cart failed status=%s error=%s", e.status_code, e)
            self.notifier.error("Prix indisponibles", "Impossible de charger les photos du panier")
            return CartSummary(loaded=False)

        found = {str(p.get("id")) for p in resolved.photos}
        stale = [i for i in ids if i not in found]
        if stale:
            self.cart.prune(stale)
            self.notifier.info("Panier mis à jour", f"{len(stale)} photo(s) ne sont plus disponibles")
        return CartSummary(photos=resolved.photos)

    def _reject(self, rejection: Rejection, total: Optional[float] = None) -> CheckoutResult:
        self.state = CheckoutState.IDLE
        return CheckoutResult(ok=False, rejection=rejection, total=total)

    def start(self) -> CheckoutResult:
        if self.state is not CheckoutState.IDLE:
            return CheckoutResult(ok=False, rejection=Rejection.BUSY)
        try:
            return self._start()
        except Exception:
            # Toute issue imprévue ramène à IDLE: le bouton de paiement ne reste jamais bloqué
            logger.exception("checkout.start unexpected error state=%s", self.state.value)
            self.state = CheckoutState.ERROR
            self.notifier.error("Erreur de paiement", "Impossible de démarrer le paiement. Réessayez.")
            return self._reject(Rejection.REQUEST_FAILED)

    def _start(self) -> CheckoutResult:
        self.state = CheckoutState.VALIDATING
        user = self.current_user() or {}
        user_id = str(user.get("id") or "")
        if not user_id:
            self.state = CheckoutState.ERROR
            self.notifier.error("Erreur", "Vous devez être connecté pour acheter")
            return self._reject(Rejection.NOT_SIGNED_IN)

        if self.cart.total_items == 0:
            self.state = CheckoutState.ERROR
            self.notifier.info("Panier vide", "Ajoutez des photos au panier avant de payer")
            return self._reject(Rejection.EMPTY_CART)

        summary = self.resolve_cart()
        if not summary.loaded:
            self.state = CheckoutState.ERROR
            return self._reject(Rejection.PRICES_UNAVAILABLE)
        if not summary.photos:
            self.state = CheckoutState.ERROR
            self.notifier.info("Panier vide", "Ajoutez des photos au panier avant de payer")
            return self._reject(Rejection.EMPTY_CART)

        total = summary.total
        if total <= 0:
            self.state = CheckoutState.ERROR
            self.notifier.info("Photos gratuites", "Ces photos sont gratuites, aucun paiement nécessaire")
            return self._reject(Rejection.FREE_PHOTOS, total=total)

        self.state = CheckoutState.REQUESTING
        try:
            preference = self.api.create_preference(summary.photo_ids, user_id)
        except StorefrontAPIError as e:
            logger.warning("checkout.start failed status=%s error=%s", e.status_code, e)
            self.state = CheckoutState.ERROR
            self.notifier.error("Erreur de paiement", "Impossible de démarrer le paiement. Réessayez.")
            return self._reject(Rejection.REQUEST_FAILED, total=total)

        self.state = CheckoutState.REDIRECTING
        logger.info("checkout.redirect payment_id=%s total=%s photos=%s", preference.payment_id, total, len(summary.photo_ids))
        self.navigate(preference.init_point)
        return CheckoutResult(
            ok=True,
            redirect_url=preference.init_point,
            payment_id=preference.payment_id,
            total=total,
        )

    def reset(self) -> None:
        """Retour à IDLE (ex: retour navigateur depuis la passerelle)."""
        self.state = CheckoutState.IDLE
