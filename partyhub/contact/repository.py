from typing import List, Dict, Any, Optional
import logging
from postgrest.types import ReturnMethod
import partyhub.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module partyhub.contact.repository
def insert_submission(payload: Dict[str, Any]) -> bool:
    """
    Enregistre une soumission (formulaire public: client anonyme).
    RLS insert-only pour anon: pas de relecture de la ligne (returning=minimal).
    """
    try:
        (
            supabase_client.get_supabase()
            .table("contact_submissions")
            .insert(payload, returning=ReturnMethod.minimal)
            .execute()
        )
        return True
    except Exception:
        logger.exception("contact.repository.insert_submission failed email=%s", payload.get("email"))
        return False

def list_submissions(limit: int = 100) -> List[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("contact_submissions")
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return res.data or []
    except Exception:
        logger.exception("contact.repository.list_submissions failed")
        return []

def update_status(submission_id: str, status: str) -> Optional[dict]:
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("contact_submissions")
            .update({"status": status})
            .eq("id", submission_id)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("contact.repository.update_status failed id=%s", submission_id)
        return None
