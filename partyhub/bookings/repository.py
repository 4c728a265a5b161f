from typing import List, Dict, Any, Optional
import logging
import partyhub.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# Réservation + offre + paiement (jointures PostgREST)
USER_BOOKING_COLUMNS = "*, service_packages(title, description, price, duration), payments(status, amount, paid_at)"

def insert_booking(payload: Dict[str, Any], user_token: Optional[str] = None) -> Optional[Dict[str, Any]]:
    """Insère une réservation au nom de l'utilisateur (RLS). Retourne la ligne créée ou None."""
    try:
        res = supabase_client.client_for(user_token).table("bookings").insert(payload).execute()
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("bookings.repository.insert_booking failed user_id=%s", payload.get("user_id"))
        return None

def list_user_bookings(user_id: str, user_token: Optional[str] = None) -> List[dict]:
    try:
        res = (
            supabase_client.client_for(user_token)
            .table("bookings")
            .select(USER_BOOKING_COLUMNS)
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("bookings.repository.list_user_bookings failed user_id=%s", user_id)
        return []

def get_user_booking(booking_id: str, user_id: str, user_token: Optional[str] = None) -> Optional[dict]:
    """Réservation de l'utilisateur (filtre explicite user_id en plus de RLS)."""
    if not booking_id or not user_id:
        return None
    try:
        res = (
            supabase_client.client_for(user_token)
            .table("bookings")
            .select(USER_BOOKING_COLUMNS)
            .eq("id", booking_id)
            .eq("user_id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("bookings.repository.get_user_booking failed id=%s user_id=%s", booking_id, user_id)
        return None
