from typing import Dict, Any, Optional
import logging
import partyhub.infra.supabase_client as supabase_client

logger = logging.getLogger(__name__)

# module partyhub.profiles.repository
# profiles.id = id de l'utilisateur Supabase Auth

def get_profile(user_id: str, user_token: Optional[str] = None) -> Optional[dict]:
    if not user_id:
        return None
    try:
        res = (
            supabase_client.client_for(user_token)
            .table("profiles")
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        rows = res.data or []
        return rows[0] if rows else None
    except Exception:
        logger.exception("profiles.repository.get_profile failed user_id=%s", user_id)
        return None

def insert_profile(payload: Dict[str, Any], user_token: Optional[str] = None) -> Optional[dict]:
    try:
        res = supabase_client.client_for(user_token).table("profiles").insert(payload).execute()
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("profiles.repository.insert_profile failed user_id=%s", payload.get("id"))
        return None

def update_profile(user_id: str, data: Dict[str, Any], user_token: Optional[str] = None) -> Optional[dict]:
    try:
        res = (
            supabase_client.client_for(user_token)
            .table("profiles")
            .update(data)
            .eq("id", user_id)
            .execute()
        )
        return res.data[0] if res.data else None
    except Exception:
        logger.exception("profiles.repository.update_profile failed user_id=%s", user_id)
        return None
