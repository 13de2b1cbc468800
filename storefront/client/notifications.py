"""
Notifications non bloquantes côté client (équivalent des toasts navigateur).
"""
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

INFO = "info"
SUCCESS = "success"
ERROR = "error"

_LOG_LEVELS = {INFO: logging.INFO, SUCCESS: logging.INFO, ERROR: logging.WARNING}

@dataclass(frozen=True)
class Notice:
    level: str
    title: str
    message: str = ""

class Notifier:
    """
    Collecte les notices émises par le panier et le checkout.
    - listener: rappel optionnel (affichage), appelé pour chaque notice
    - notices: historique de la session, dans l’ordre d’émission
    """
    def __init__(self, listener: Optional[Callable[[Notice], None]] = None):
        self.listener = listener
        self.notices: List[Notice] = []

    def notify(self, level: str, title: str, message: str = "") -> Notice:
        notice = Notice(level=level, title=title, message=message)
        self.notices.append(notice)
        logger.log(_LOG_LEVELS.get(level, logging.INFO), "notice level=%s title=%s message=%s", level, title, message)
        if self.listener:
            self.listener(notice)
        return notice

    def info(self, title: str, message: str = "") -> Notice:
        return self.notify(INFO, title, message)

    def success(self, title: str, message: str = "") -> Notice:
        return self.notify(SUCCESS, title, message)

    def error(self, title: str, message: str = "") -> Notice:
        return self.notify(ERROR, title, message)

    @property
    def last(self) -> Optional[Notice]:
        return self.notices[-1] if self.notices else None

    def clear(self) -> None:
        self.notices.clear()
