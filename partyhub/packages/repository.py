"""Accès aux données du catalogue (tables service_packages, package_features).
Les lectures publiques passent par le client anonyme (RLS), les écritures admin par la clé service.
Les exceptions sont journalisées et converties en valeurs neutres ([], None, False).
"""
from typing import List, Optional, Dict, Any
import logging
import partyhub.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

def list_packages(active_only: bool = True) -> List[dict]:
    try:
        query = supabase_client.get_supabase().table("service_packages").select("*")
        if active_only:
            query = query.eq("is_active", True)
        res = query.order("price", desc=False).execute()
        return res.data or []
    except Exception:
        logger.exception("packages.repository.list_packages failed")
        return []

def list_all_packages() -> List[dict]:
    """Toutes les offres, actives ou non (back-office)."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("service_packages")
            .select("*")
            .order("created_at", desc=True)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("packages.repository.list_all_packages failed")
        return []

def get_package(
    package_id: str,
    active_only: bool = False,
    user_token: Optional[str] = None,
    privileged: bool = False,
) -> Optional[dict]:
    """Offre par id. privileged: clé service (back-office, offres inactives visibles)."""
    if not package_id:
        return None
    try:
        client = supabase_client.get_service_supabase() if privileged else supabase_client.client_for(user_token)
        query = (
            client
            .table("service_packages")
            .select("*")
            .eq("id", package_id)
        )
        if active_only:
            query = query.eq("is_active", True)
        res = query.limit(1).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("packages.repository.get_package failed id=%s", package_id)
        return None

def fetch_features(package_ids: List[str]) -> List[dict]:
    if not package_ids:
        return []
    try:
        res = (
            supabase_client.get_supabase()
            .table("package_features")
            .select("*")
            .in_("package_id", [str(i) for i in package_ids])
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("packages.repository.fetch_features failed ids=%s", package_ids)
        return []

def create_package(data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = supabase_client.get_service_supabase().table("service_packages").insert(data).execute()
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("packages.repository.create_package failed data=%s", data)
        return None

def update_package(package_id: str, data: Dict[str, Any]) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("service_packages")
            .update(data)
            .eq("id", package_id)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("packages.repository.update_package failed id=%s data=%s", package_id, data)
        return None

def delete_package(package_id: str) -> bool:
    try:
        supabase_client.get_service_supabase().table("service_packages").delete().eq("id", package_id).execute()
        return True
    except Exception:
        logger.exception("packages.repository.delete_package failed id=%s", package_id)
        return False

def replace_features(package_id: str, features: List[str]) -> bool:
    """Remplace la liste des caractéristiques (suppression puis insertion)."""
    try:
        client = supabase_client.get_service_supabase()
        client.table("package_features").delete().eq("package_id", package_id).execute()
        rows = [
            {"package_id": package_id, "feature_text": text, "is_included": True}
            for text in features
        ]
        if rows:
            client.table("package_features").insert(rows).execute()
        return True
    except Exception:
        logger.exception("packages.repository.replace_features failed id=%s", package_id)
        return False

def count_bookings_for_package(package_id: str) -> int:
    """Nombre de réservations référençant l'offre. -1 si la lecture échoue."""
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("bookings")
            .select("id", count="exact")
            .eq("package_id", package_id)
            .execute()
        )
        if getattr(res, "count", None) is not None:
            return int(res.count)
        return len(res.data or [])
    except Exception:
        logger.exception("packages.repository.count_bookings_for_package failed id=%s", package_id)
        return -1
