"""
Accès aux données pour la feature 'payments'.
"""
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import logging
import partyhub.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module partyhub.payments.repository
def get_user_booking_for_checkout(booking_id: str, user_id: str, user_token: Optional[str] = None) -> Optional[dict]:
    """
    Réservation de l'appelant avec le titre de l'offre (client utilisateur, RLS).
    - None si absente ou appartenant à un autre utilisateur.
    """
    if not booking_id or not user_id:
        return None
    try:
        res = (
            supabase_client.client_for(user_token)
            .table("bookings")
            .select("id, user_id, total_amount, guest_count, event_date, status, service_packages(title, description)")
            .eq("id", booking_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository.get_user_booking_for_checkout failed id=%s user_id=%s", booking_id, user_id)
        return None

def confirm_booking(booking_id: str) -> bool:
    """
    Passe la réservation à 'confirmed' via service-role (l'appelant est Stripe).
    - False si aucune ligne n'a été mise à jour ou en cas d'erreur.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .update({"status": "confirmed", "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", booking_id)
            .execute()
        )
        return bool(res.data)
    except Exception:
        logger.exception("payments.repository.confirm_booking failed id=%s", booking_id)
        return False

def upsert_payment(payload: Dict[str, Any]) -> Optional[dict]:
    """
    Enregistre le paiement, idempotent sur transaction_id (contrainte UNIQUE):
    une redélivrance du même événement met à jour la ligne existante.
    """
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .upsert(payload, on_conflict="transaction_id")
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("payments.repository.upsert_payment failed booking_id=%s", payload.get("booking_id"))
        return None
