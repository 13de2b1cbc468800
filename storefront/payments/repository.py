"""
Accès aux données pour la feature 'payments' (tables payments et photo_purchases).
Toutes les écritures passent par le client service-role: le navigateur ne doit jamais
pouvoir marquer un paiement approuvé ni s’attribuer une photo.
"""
from typing import Any, Dict, List, Optional
import logging

from postgrest.exceptions import APIError

import storefront.infra.supabase_client as supabase_client
from .models import PaymentStatus

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"
NO_MATCHING_CONSTRAINT = "42P10"

class PaymentStorageError(Exception):
    """Échec d’écriture/lecture côté base: le webhook doit répondre non-200 pour être rejoué."""

def _first_row(res) -> Optional[dict]:
    rows = getattr(res, "data", None) or []
    if isinstance(rows, list):
        return rows[0] if rows else None
    return rows or None

# module storefront.payments.repository
def insert_pending_payment(*, user_id: str, photo_ids: List[str], total_amount: float) -> dict:
    """
    Crée la ligne 'payments' en statut pending, avant tout appel à la passerelle.
    - Retourne la ligne insérée (avec son id).
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .insert({
                "user_id": user_id,
                "photo_ids": list(photo_ids),
                "total_amount": total_amount,
                "status": PaymentStatus.PENDING.value,
            })
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.insert_pending_payment failed user_id=%s photo_ids=%s", user_id, photo_ids)
        raise PaymentStorageError(str(e)) from e
    row = _first_row(res)
    if not row or not row.get("id"):
        raise PaymentStorageError("Insertion du paiement sans ligne retournée")
    return row

def set_preference_id(payment_id: str, preference_id: str) -> None:
    """
    Rattache la préférence au paiement pending.
    - Soulève PaymentStorageError si l’écriture échoue ou ne touche aucune ligne: un paiement
      sans préférence est purgeable, l’acheteur ne doit donc pas être envoyé vers la passerelle.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .update({"mercado_pago_preference_id": preference_id})
            .eq("id", payment_id)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.set_preference_id failed id=%s preference_id=%s", payment_id, preference_id)
        raise PaymentStorageError(str(e)) from e
    if not _first_row(res):
        raise PaymentStorageError(f"Paiement {payment_id} introuvable pour la préférence {preference_id}")

def update_payment_status(
    payment_id: str,
    *,
    status: PaymentStatus,
    mercado_pago_payment_id: str,
    approved_at: Optional[str],
) -> Optional[dict]:
    """
    Écrase statut, id de paiement passerelle et date d’approbation (pas d’historique).
    - Retourne la ligne mise à jour, None si aucun paiement ne porte cet id.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .update({
                "status": status.value,
                "mercado_pago_payment_id": mercado_pago_payment_id,
                "approved_at": approved_at,
            })
            .eq("id", payment_id)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.update_payment_status failed id=%s status=%s", payment_id, status.value)
        raise PaymentStorageError(str(e)) from e
    return _first_row(res)

def get_payment(payment_id: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("id, user_id, photo_ids, total_amount, status, mercado_pago_preference_id, mercado_pago_payment_id, approved_at")
            .eq("id", payment_id)
            .limit(1)
            .execute()
        )
    except Exception as e:
        logger.exception("payments.repository.get_payment failed id=%s", payment_id)
        raise PaymentStorageError(str(e)) from e
    return _first_row(res)

def upsert_photo_purchases(rows: List[Dict[str, Any]]) -> int:
    """
    Crée les droits d’achat, idempotent sur (user_id, photo_id).
    - Upsert natif PostgREST (on_conflict).
    - Sans contrainte unique côté base (42P10): émulation insert + unique-violation ignorée.
    - Retourne le nombre de lignes demandées.
    """
    if not rows:
        return 0
    client = supabase_client.get_service_supabase()
    try:
        client.table("photo_purchases").upsert(rows, on_conflict="user_id,photo_id").execute()
        return len(rows)
    except APIError as e:
        if getattr(e, "code", None) != NO_MATCHING_CONSTRAINT:
            logger.exception("payments.repository.upsert_photo_purchases failed rows=%s", len(rows))
            raise PaymentStorageError(str(e)) from e
        logger.warning("photo_purchases sans contrainte unique (user_id, photo_id): insertion émulée")
    except Exception as e:
        logger.exception("payments.repository.upsert_photo_purchases failed rows=%s", len(rows))
        raise PaymentStorageError(str(e)) from e
    return _insert_ignoring_duplicates(client, rows)

def _insert_ignoring_duplicates(client, rows: List[Dict[str, Any]]) -> int:
    for row in rows:
        try:
            existing = (
                client.table("photo_purchases")
                .select("photo_id")
                .eq("user_id", row["user_id"])
                .eq("photo_id", row["photo_id"])
                .limit(1)
                .execute()
            )
            if getattr(existing, "data", None):
                continue
            client.table("photo_purchases").insert(row).execute()
        except APIError as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                continue
            logger.exception("payments.repository._insert_ignoring_duplicates failed photo_id=%s", row.get("photo_id"))
            raise PaymentStorageError(str(e)) from e
        except Exception as e:
            logger.exception("payments.repository._insert_ignoring_duplicates failed photo_id=%s", row.get("photo_id"))
            raise PaymentStorageError(str(e)) from e
    return len(rows)

def delete_dangling_payments(created_before: str) -> List[dict]:
    """
    Supprime les paiements pending jamais rattachés à une préférence (création passerelle échouée)
    créés avant created_before (ISO 8601). Retourne les lignes supprimées.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .delete()
            .eq("status", PaymentStatus.PENDING.value)
            .is_("mercado_pago_preference_id", "null")
            .lt("created_at", created_before)
            .execute()
        )
        return getattr(res, "data", None) or []
    except Exception as e:
        logger.exception("payments.repository.delete_dangling_payments failed before=%s", created_before)
        raise PaymentStorageError(str(e)) from e
