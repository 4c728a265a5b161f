from typing import Optional, Dict, Any


class AuthContext:
    """
    Identité explicite de l'appelant, injectée dans les handlers par require_user/require_admin.
    Remplace tout accès implicite à une session globale.
    """
    def __init__(
        self,
        user_id: str,
        email: Optional[str] = None,
        role: str = "user",
        token: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.user_id = user_id
        self.email = email
        self.role = role
        self.token = token
        self.metadata = metadata or {}

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.user_id, "email": self.email, "role": self.role, "metadata": self.metadata}

    def __repr__(self) -> str:
        return f"AuthContext(user_id={self.user_id!r}, email={self.email!r}, role={self.role!r})"


class SignupResult:
    def __init__(
        self,
        success: bool,
        user: Optional[Dict[str, Any]] = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
        code: Optional[str] = None,
        status_code: int = 200,
    ):
        self.success = success
        self.user = user
        self.message = message
        self.error = error
        self.code = code
        self.status_code = status_code


def build_user_dict(user) -> Dict[str, Any]:
    if isinstance(user, dict):
        return {
            "id": user.get("id"),
            "email": user.get("email"),
            "email_confirmed_at": user.get("email_confirmed_at"),
            "user_metadata": user.get("user_metadata") or {},
        }
    return {
        "id": getattr(user, "id", None),
        "email": getattr(user, "email", None),
        "email_confirmed_at": getattr(user, "email_confirmed_at", None),
        "user_metadata": getattr(user, "user_metadata", None) or {},
    }
