import logging
from typing import Any, Dict

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError

from storefront import config
from storefront.utils.security import require_user, require_admin
from storefront.utils.rate_limit import optional_rate_limit
from storefront.payments import notification as payments_notification
from storefront.payments import service as payments_service
from storefront.payments.models import CheckoutRequest

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})

def _callback_base_url(request: Request) -> str:
    # Les retours navigateur visent l’origine du front; repli sur l’URL publique configurée
    return (request.headers.get("origin") or config.PUBLIC_BASE_URL).rstrip("/")

# module storefront.payments.views
@router.post("/preference", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_preference(request: Request, user: dict = Depends(require_user)):
    """
    Crée le paiement pending et la préférence Mercado Pago pour le panier.
    - Entrée JSON: { "photo_ids": ["<photo_id>", ...], "user_id": "<uuid>" }
    - Sécurité: require_user + rate limit (10 req / 60s); user_id doit être celui de la session (403 sinon)
    - Sortie: { "preference_id", "init_point", "payment_id" }
    - Erreurs: { "error": "..." } en 400 (panier vide, total nul, JSON invalide) ou 500 (base/passerelle)
    """
    try:
        body = await request.json()
    except Exception:
        return _error(400, "JSON invalide")
    try:
        checkout = CheckoutRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError:
        return _error(400, "Requête de paiement invalide")

    current_user_id = str(user.get("id") or "")
    user_id = checkout.user_id or current_user_id
    if user_id != current_user_id:
        return _error(403, "Paiement pour un autre utilisateur")

    try:
        result = payments_service.create_payment_preference(
            photo_ids=checkout.photo_ids,
            user_id=user_id,
            base_url=_callback_base_url(request),
        )
        return JSONResponse(result)
    except HTTPException as e:
        return _error(e.status_code, str(e.detail))
    except Exception:
        logger.exception("Erreur create_preference")
        return _error(500, "Erreur interne")

@router.post("/webhook", include_in_schema=False)
async def webhook_mercado_pago(request: Request):
    """
    Webhook Mercado Pago: répercute le statut d’un paiement et crée les droits d’achat si approuvé.
    - Corps {type, data: {id}} (ou query ?type=&data.id= / ?topic=&id=)
    - Signature x-signature vérifiée si MERCADO_PAGO_WEBHOOK_SECRET est défini
    - Réponses: 200 "OK" (traité ou ignoré), 400/500 sinon pour déclencher un nouvel envoi
    """
    try:
        body = await request.body()
        kind, data_id = payments_notification.parse_notification(body, request.query_params)
        payments_notification.verify_signature(
            secret=config.MERCADO_PAGO_WEBHOOK_SECRET,
            signature_header=request.headers.get("x-signature"),
            request_id=request.headers.get("x-request-id"),
            data_id=data_id,
        )
        payments_service.reconcile_notification(kind, data_id)
        return PlainTextResponse("OK", status_code=200)
    except payments_notification.InvalidNotification as e:
        logger.error("payments.webhook rejected: %s", e)
        return PlainTextResponse("Error", status_code=400)
    except HTTPException as e:
        return PlainTextResponse("Error", status_code=e.status_code)
    except Exception:
        logger.exception("Erreur webhook_mercado_pago")
        return PlainTextResponse("Error", status_code=500)

@router.post("/admin/purge-dangling")
def purge_dangling(ttl_minutes: int | None = None, admin: Dict[str, Any] = Depends(require_admin)) -> Dict[str, Any]:
    """
    Purge les paiements pending restés sans préférence Mercado Pago (création passerelle échouée).
    - ttl_minutes: âge minimal, PENDING_PAYMENT_TTL_MINUTES par défaut.
    """
    ttl = config.PENDING_PAYMENT_TTL_MINUTES if ttl_minutes is None else ttl_minutes
    deleted = payments_service.purge_dangling_payments(ttl)
    return {"status": "ok", "deleted": deleted}
