from typing import Optional, Dict, Any, Iterable
import logging
from partyhub.config import SIGNUP_REDIRECT_URL
from .models import AuthContext, SignupResult, build_user_dict
from . import repository

logger = logging.getLogger(__name__)

def determine_role(metadata: Dict[str, Any] | None, roles: Iterable[str] | None = None) -> str:
    """Rôle effectif: table user_roles en priorité, puis user_metadata.role."""
    normalized = {str(r).lower() for r in (roles or [])}
    if "admin" in normalized:
        return "admin"
    if str((metadata or {}).get("role", "")).lower() == "admin":
        return "admin"
    return "user"

# --- Intégration sécurité / profil ---

def get_user_from_token(access_token: str) -> AuthContext:
    """Construit le contexte d'authentification depuis supabase.auth.get_user(access_token):
    - id, email, metadata, rôle (user_roles > metadata) et token
    - Crée le profil applicatif s'il manque (best-effort)
    """
    raw = repository.get_user_from_access_token(access_token)
    uid = raw.get("id")
    if not uid:
        raise ValueError("Utilisateur introuvable pour ce token")
    metadata = raw.get("user_metadata") or {}
    role = determine_role(metadata, repository.fetch_user_roles(uid))

    try:
        from partyhub.profiles.service import ensure_profile
        ensure_profile(uid, metadata, user_token=access_token)
    except Exception:
        logger.exception("auth.service.get_user_from_token: ensure_profile failed user_id=%s", uid)

    return AuthContext(uid, email=raw.get("email"), role=role, token=access_token, metadata=metadata)

# --- Cas d’usage Auth exposés ---

def signup(email: str, password: str, user_data: Optional[Dict[str, Any]] = None) -> SignupResult:
    """Inscription:
    - Refuse un email déjà enregistré côté Auth (409 EMAIL_EXISTS)
    - Transmet user_data dans user_metadata et la redirection de confirmation
    - Message différent selon que l'email est déjà confirmé ou non
    """
    email = (email or "").strip()
    try:
        existing = repository.find_auth_user_by_email(email)
    except Exception:
        logger.exception("auth.service.signup: listing users failed")
        return SignupResult(False, error="Failed to validate email", status_code=500)
    if existing:
        return SignupResult(
            False,
            error="This email is already registered. Please login or use another email.",
            code="EMAIL_EXISTS",
            status_code=409,
        )

    try:
        res = repository.auth_sign_up_account(
            email=email,
            password=password,
            options_data=user_data or None,
            email_redirect_to=SIGNUP_REDIRECT_URL,
        )
    except Exception as e:
        logger.exception("auth.service.signup: sign_up failed")
        return SignupResult(False, error=str(e), status_code=400)

    user = getattr(res, "user", None)
    user_dict = build_user_dict(user) if user else None
    confirmed = bool((user_dict or {}).get("email_confirmed_at"))
    message = (
        "Account created and verified successfully"
        if confirmed
        else "Account created! Please check your email to verify your account."
    )
    logger.info("auth.signup ok email=%s", email)
    return SignupResult(True, user=user_dict, message=message)

def resend_confirmation(email: str) -> SignupResult:
    """Renvoi de l'email de confirmation:
    - 404 si aucun compte, 400 si déjà confirmé
    - 429 si le fournisseur signale un rate limit, 500 sinon
    """
    email = (email or "").strip()
    try:
        user = repository.find_auth_user_by_email(email)
    except Exception:
        logger.exception("auth.service.resend_confirmation: listing users failed")
        return SignupResult(False, error="Failed to check email status", status_code=500)

    if not user:
        return SignupResult(
            False,
            error="No account found with this email address. Please sign up first.",
            code="USER_NOT_FOUND",
            status_code=404,
        )
    if user.get("email_confirmed_at"):
        return SignupResult(
            False,
            error="This email is already verified. Please login.",
            code="EMAIL_ALREADY_CONFIRMED",
            status_code=400,
        )

    try:
        repository.auth_resend_signup(email, SIGNUP_REDIRECT_URL)
    except Exception as e:
        logger.exception("auth.service.resend_confirmation: resend failed")
        if "rate limit" in str(e).lower():
            return SignupResult(
                False,
                error="Too many requests. Please wait a few minutes before trying again.",
                code="RATE_LIMITED",
                status_code=429,
            )
        return SignupResult(
            False,
            error="Unable to send verification email. Please try again later.",
            code="SEND_FAILED",
            status_code=500,
        )

    logger.info("auth.resend_confirmation ok email=%s", email)
    return SignupResult(True, message="Verification email sent! Please check your inbox and spam folder.")
