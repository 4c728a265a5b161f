from typing import Optional, Dict, Any, List
import logging
import partyhub.infra.supabase_client as supabase_client
from .models import build_user_dict

logger = logging.getLogger(__name__)

# --- Auth (supabase.auth.*) ---

def get_user_from_access_token(access_token: str) -> Dict[str, Any]:
    """Récupère et normalise l’utilisateur depuis supabase.auth.get_user(access_token)."""
    res = supabase_client.get_supabase().auth.get_user(access_token)
    user = getattr(res, "user", None)
    if not user:
        return {}
    return build_user_dict(user)

def auth_sign_up_account(
    email: str,
    password: str,
    options_data: Optional[Dict[str, Any]] = None,
    email_redirect_to: Optional[str] = None,
):
    """Wrapper Supabase Auth: inscription d’un compte.
    - options.data: metadata (first_name, last_name, phone...)
    - options.email_redirect_to: URL de confirmation
    """
    credentials: Dict[str, Any] = {"email": email, "password": password}
    options: Dict[str, Any] = {}
    if options_data:
        options["data"] = options_data
    if email_redirect_to:
        options["email_redirect_to"] = email_redirect_to
    if options:
        credentials["options"] = options
    return supabase_client.get_supabase().auth.sign_up(credentials)

def auth_resend_signup(email: str, email_redirect_to: Optional[str] = None):
    """Wrapper Supabase Auth: renvoi de l'email de confirmation d'inscription."""
    payload: Dict[str, Any] = {"type": "signup", "email": email}
    if email_redirect_to:
        payload["options"] = {"email_redirect_to": email_redirect_to}
    return supabase_client.get_supabase().auth.resend(payload)

# --- API admin GoTrue (clé service) ---

def list_auth_users(per_page: int = 200) -> List[Dict[str, Any]]:
    """
    Liste tous les comptes Auth (pagination par pages de per_page).
    Lève l'exception du client: l'appelant décide du statut HTTP.
    """
    admin = supabase_client.get_service_supabase().auth.admin
    users: List[Dict[str, Any]] = []
    page = 1
    while True:
        batch = admin.list_users(page=page, per_page=per_page) or []
        users.extend(build_user_dict(u) for u in batch)
        if len(batch) < per_page:
            break
        page += 1
    return users

def find_auth_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    target = (email or "").strip().lower()
    for u in list_auth_users():
        if (u.get("email") or "").lower() == target:
            return u
    return None

# --- Rôles applicatifs (table user_roles) ---

def fetch_user_roles(user_id: str) -> List[str]:
    """
    Rôles de l'utilisateur (table user_roles), lus avec la clé service.
    - Retourne [] si absent ou en cas d’erreur.
    """
    if not user_id:
        return []
    try:
        res = (
            supabase_client.get_service_supabase()
            .table("user_roles")
            .select("role")
            .eq("user_id", user_id)
            .execute()
        )
        return [str(r.get("role") or "") for r in (res.data or [])]
    except Exception:
        logger.exception("auth.repository.fetch_user_roles failed user_id=%s", user_id)
        return []
