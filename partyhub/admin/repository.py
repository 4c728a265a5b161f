from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
import partyhub.infra.supabase_client as supabase_client
import logging

logger = logging.getLogger(__name__)

# module partyhub.admin.repository
ADMIN_BOOKING_COLUMNS = "*, service_packages(title, price), profiles(first_name, last_name, phone)"

def fetch_admin_bookings(limit: Optional[int] = 100) -> List[dict]:
    """
    Réservations pour l'admin (plus récentes d'abord), avec jointures sur l'offre et le profil client.
    limit=None: toutes les réservations (export).
    """
    try:
        query = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select(ADMIN_BOOKING_COLUMNS)
            .order("created_at", desc=True)
        )
        if limit is not None:
            query = query.limit(limit)
        res = query.execute()
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_admin_bookings failed")
        return []

def get_booking(booking_id: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select("id, status, user_id")
            .eq("id", booking_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("admin.repository.get_booking failed id=%s", booking_id)
        return None

def update_booking_status(booking_id: str, status: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", booking_id)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("admin.repository.update_booking_status failed id=%s status=%s", booking_id, status)
        return None

def count_table_rows(table_name: str) -> int:
    """
    Compte les lignes d'une table via Supabase.
    Utilise count='exact' si disponible, sinon fallback sur len(data).
    """
    try:
        res = supabase_client.get_service_supabase().table(table_name).select("id", count="exact").execute()
        if getattr(res, "count", None) is not None:
            return int(res.count)
        return len(res.data or [])
    except Exception:
        logger.exception("admin.repository.count_table_rows failed table=%s", table_name)
        return 0

# --- Analytics ---

def fetch_bookings_for_analytics() -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select("id, package_id, status, total_amount, created_at, service_packages(title)")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_bookings_for_analytics failed")
        return []

def fetch_completed_payments() -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("payments")
            .select("id, booking_id, amount, paid_at, created_at")
            .eq("status", "completed")
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("admin.repository.fetch_completed_payments failed")
        return []

def count_active_packages() -> int:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("service_packages")
            .select("id", count="exact")
            .eq("is_active", True)
            .execute()
        )
        if getattr(res, "count", None) is not None:
            return int(res.count)
        return len(res.data or [])
    except Exception:
        logger.exception("admin.repository.count_active_packages failed")
        return 0

def fetch_auth_emails() -> Dict[str, str]:
    """{user_id: email} via l'API admin GoTrue (les emails ne sont pas dans profiles)."""
    from partyhub.auth.repository import list_auth_users
    try:
        return {str(u.get("id")): u.get("email") or "" for u in list_auth_users()}
    except Exception:
        logger.exception("admin.repository.fetch_auth_emails failed")
        return {}
