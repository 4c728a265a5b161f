from typing import Optional, Dict, Any
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, EmailStr, Field

from partyhub.utils.rate_limit import optional_rate_limit
from .service import signup as svc_signup, resend_confirmation as svc_resend_confirmation
from .models import SignupResult

# --- API Router (/api/v1/auth) ---
# Connexion/déconnexion restent côté Supabase Auth (client); le backend ne gère que l'inscription.

api_router = APIRouter(prefix="/api/v1/auth", tags=["Auth API"])

class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    user_data: Optional[Dict[str, Any]] = Field(default=None, alias="userData")

    model_config = {"populate_by_name": True}

class ResendConfirmationRequest(BaseModel):
    email: EmailStr

def _to_response(result: SignupResult) -> JSONResponse:
    if not result.success:
        body: Dict[str, Any] = {"error": result.error}
        if result.code:
            body["code"] = result.code
        return JSONResponse(body, status_code=result.status_code)
    body = {"success": True, "message": result.message}
    if result.user is not None:
        user = dict(result.user)
        if user.get("email_confirmed_at") is not None:
            user["email_confirmed_at"] = str(user["email_confirmed_at"])
        body["user"] = user
    return JSONResponse(body, status_code=200)

@api_router.post("/signup", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_signup(req: SignupRequest):
    """Inscription (API JSON).
    - 409 EMAIL_EXISTS si le compte existe déjà
    - Sinon délègue à Supabase Auth (email de confirmation)
    """
    return _to_response(svc_signup(req.email, req.password, req.user_data))

@api_router.post("/resend-confirmation", dependencies=[Depends(optional_rate_limit(times=3, seconds=60))])
def api_resend_confirmation(req: ResendConfirmationRequest):
    """Renvoie l'email de vérification d'un compte non confirmé."""
    return _to_response(svc_resend_confirmation(req.email))
