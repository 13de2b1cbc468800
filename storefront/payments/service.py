"""
Cas d'usage 'payments': orchestre photos (prix), repository, préférence et Mercado Pago.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from storefront.photos import repository as photos_repository
from storefront.photos.service import price_from_photo
from . import mercado_pago
from . import preference as pref
from . import repository
from .models import PaymentStatus

logger = logging.getLogger(__name__)

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

def _unique_ids(photo_ids: List[str]) -> List[str]:
    ids: List[str] = []
    for pid in photo_ids or []:
        sid = str(pid or "").strip()
        if sid and sid not in ids:
            ids.append(sid)
    return ids

def create_payment_preference(
    *,
    photo_ids: List[str],
    user_id: str,
    base_url: str,
    notification_base_url: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Prépare le paiement d’un panier et retourne {preference_id, init_point, payment_id}.
    Étapes:
      1) 400 si photo_ids vide (aucune ligne créée)
      2) relit les photos en base: seule source de vérité du prix
      3) 400 si le total est nul
      4) insère le paiement 'pending' AVANT l’appel passerelle
      5) crée la préférence (une ligne agrégée, external_reference = id local)
      6) 500 si la passerelle refuse (la ligne pending reste, purgeable)
      7) mémorise preference_id sur le paiement; 500 si le lien échoue (aucun init_point rendu)
    Non idempotent: chaque appel crée un nouveau paiement pending.
    """
    ids = _unique_ids(photo_ids)
    if not ids:
        raise HTTPException(status_code=400, detail="Aucune photo sélectionnée")
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id manquant")

    try:
        photos_by_id = photos_repository.get_photos_map(ids)
    except photos_repository.PhotoStorageError:
        raise HTTPException(status_code=500, detail="Erreur de lecture des photos")

    # Les ids inconnus de la base ne sont ni facturés ni accordés
    priced_ids = [i for i in ids if i in photos_by_id]
    total = round(sum(price_from_photo(photos_by_id[i]) for i in priced_ids), 2)
    if total <= 0:
        raise HTTPException(status_code=400, detail="Les photos n'ont pas de prix")

    try:
        payment = repository.insert_pending_payment(user_id=user_id, photo_ids=priced_ids, total_amount=total)
    except repository.PaymentStorageError:
        raise HTTPException(status_code=500, detail="Erreur de création du paiement")
    payment_id = str(payment["id"])

    preference = pref.build_preference(
        payment_id=payment_id,
        photo_count=len(priced_ids),
        total=total,
        base_url=base_url,
        notification_base_url=notification_base_url,
    )
    try:
        created = mercado_pago.create_preference(preference)
    except mercado_pago.MercadoPagoError as e:
        logger.error("payments.preference gateway_error payment_id=%s status=%s error=%s", payment_id, e.status_code, e)
        raise HTTPException(status_code=500, detail="Erreur de création de la préférence de paiement")

    preference_id = str(created.get("id") or "")
    init_point = created.get("init_point") or ""
    if not preference_id or not init_point:
        logger.error("payments.preference incomplete payment_id=%s response=%s", payment_id, created)
        raise HTTPException(status_code=500, detail="Préférence de paiement incomplète")

    # Sans lien, la ligne reste purgeable: l’init_point n’est jamais rendu pour un paiement non rattaché
    try:
        repository.set_preference_id(payment_id, preference_id)
    except repository.PaymentStorageError:
        logger.error("payments.preference not_linked payment_id=%s preference_id=%s", payment_id, preference_id)
        raise HTTPException(status_code=500, detail="Erreur d'enregistrement de la préférence de paiement")

    logger.info("payments.preference created payment_id=%s preference_id=%s total=%s photos=%s user_id=%s",
                payment_id, preference_id, total, len(priced_ids), user_id)
    return {"preference_id": preference_id, "init_point": init_point, "payment_id": payment_id}

def reconcile_notification(notification_type: Optional[str], gateway_payment_id: Optional[str]) -> Dict[str, Any]:
    """
    Répercute une notification Mercado Pago sur l’état local.
    - Type autre que "payment": ignoré (acquitté sans effet).
    - Relit le paiement chez Mercado Pago (le corps de la notification n’est pas cru).
    - 400 si external_reference absent ou inconnu; 500 sur erreur passerelle/base (la passerelle rejouera).
    - Statut local écrasé puis, seulement si approuvé, droits d’achat upsertés sur (user_id, photo_id).
    Rejouer la même notification est sans effet supplémentaire.
    """
    if notification_type != "payment":
        logger.info("payments.webhook ignored type=%s id=%s", notification_type, gateway_payment_id)
        return {"status": "ignored"}
    if not gateway_payment_id:
        raise HTTPException(status_code=400, detail="data.id manquant")

    try:
        gateway_payment = mercado_pago.get_payment(gateway_payment_id)
    except mercado_pago.MercadoPagoError as e:
        logger.error("payments.webhook gateway_error mp_payment_id=%s status=%s transient=%s error=%s", gateway_payment_id, e.status_code, e.transient, e)
        raise HTTPException(status_code=500, detail="Paiement Mercado Pago illisible")

    external_reference = str(gateway_payment.get("external_reference") or "").strip()
    if not external_reference:
        logger.error("payments.webhook missing_external_reference mp_payment_id=%s", gateway_payment_id)
        raise HTTPException(status_code=400, detail="external_reference manquant")

    status = pref.map_gateway_status(gateway_payment.get("status"))
    approved_at = _utcnow().isoformat() if status is PaymentStatus.APPROVED else None
    try:
        updated = repository.update_payment_status(
            external_reference,
            status=status,
            mercado_pago_payment_id=str(gateway_payment_id),
            approved_at=approved_at,
        )
    except repository.PaymentStorageError:
        raise HTTPException(status_code=500, detail="Mise à jour du paiement impossible")
    if updated is None:
        logger.error("payments.webhook unknown_external_reference ref=%s mp_payment_id=%s", external_reference, gateway_payment_id)
        raise HTTPException(status_code=400, detail="Paiement local introuvable")

    entitled = 0
    if status is PaymentStatus.APPROVED:
        entitled = grant_purchases(external_reference)

    logger.info("payments.webhook reconciled payment_id=%s mp_payment_id=%s status=%s entitled=%s",
                external_reference, gateway_payment_id, status.value, entitled)
    return {"status": "ok", "payment_id": external_reference, "payment_status": status.value, "entitled": entitled}

def grant_purchases(payment_id: str) -> int:
    """
    Matérialise un droit d’achat par photo du paiement (déjà marqué approuvé).
    - L’achat couvre l’ensemble des photo_ids du paiement, y compris les photos gratuites.
    """
    try:
        payment = repository.get_payment(payment_id)
    except repository.PaymentStorageError:
        raise HTTPException(status_code=500, detail="Lecture du paiement impossible")
    if not payment:
        raise HTTPException(status_code=500, detail="Paiement approuvé introuvable")
    if payment.get("status") != PaymentStatus.APPROVED.value:
        # Un webhook concurrent a pu réécrire le statut entre-temps: aucun droit sans approbation
        logger.warning("payments.grant skipped payment_id=%s status=%s", payment_id, payment.get("status"))
        return 0

    user_id = payment.get("user_id")
    rows = [
        {"payment_id": payment_id, "photo_id": str(photo_id), "user_id": user_id}
        for photo_id in _unique_ids(payment.get("photo_ids") or [])
    ]
    try:
        return repository.upsert_photo_purchases(rows)
    except repository.PaymentStorageError:
        raise HTTPException(status_code=500, detail="Création des droits d'achat impossible")

def purge_dangling_payments(ttl_minutes: int) -> int:
    """
    Supprime les paiements pending restés sans préférence (échec passerelle) depuis plus de ttl_minutes.
    Ces lignes ne peuvent plus être approuvées: aucune préférence ne les référence.
    """
    cutoff = (_utcnow() - timedelta(minutes=max(int(ttl_minutes), 0))).isoformat()
    try:
        deleted = repository.delete_dangling_payments(cutoff)
    except repository.PaymentStorageError:
        raise HTTPException(status_code=500, detail="Purge des paiements impossible")
    logger.info("payments.purge deleted=%s before=%s", len(deleted), cutoff)
    return len(deleted)
