from fastapi import Request, HTTPException, Depends
from typing import Optional
from partyhub.auth.models import AuthContext

def bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        token = auth_header[7:].strip()
        return token or None
    return None

def get_current_user(request: Request) -> AuthContext:
    """
    Résout le jeton Supabase (Authorization: Bearer) en AuthContext explicite.
    - 401 si absent, invalide ou expiré.
    """
    token = bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Missing Authorization header")

    try:
        # Délégué au service Auth
        from partyhub.auth.service import get_user_from_token as _svc_get_user_from_token
        ctx = _svc_get_user_from_token(token)
        if not ctx or not ctx.user_id:
            raise HTTPException(status_code=401, detail="User authentication failed")
        return ctx
    except HTTPException:
        raise
    except Exception:
        raise HTTPException(status_code=401, detail="User authentication failed")

def require_user(user: AuthContext = Depends(get_current_user)) -> AuthContext:
    return user

def require_admin(user: AuthContext = Depends(get_current_user)) -> AuthContext:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
