"""
Retours navigateur de Mercado Pago: /gallery?payment=success|failure|pending.
Le paramètre est lu une seule fois puis retiré de l’URL pour ne pas être retraité au rafraîchissement.
"""
from typing import Optional, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

PAYMENT_PARAM = "payment"
OUTCOMES = ("success", "failure", "pending")

def consume_payment_callback(url: str) -> Tuple[Optional[str], str]:
    """
    Retourne (issue, url_nettoyée).
    - issue: "success" | "failure" | "pending", None si absente ou inconnue
    - url_nettoyée: même URL sans le paramètre payment (autres paramètres conservés, ex: event)
    """
    parts = urlsplit(url)
    params = parse_qsl(parts.query, keep_blank_values=True)
    outcome = None
    kept = []
    for key, value in params:
        if key == PAYMENT_PARAM:
            if outcome is None and value in OUTCOMES:
                outcome = value
            continue
        kept.append((key, value))
    if len(kept) == len(params):
        return None, url
    return outcome, urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(kept), parts.fragment))
