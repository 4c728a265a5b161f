# module partyhub.profiles.views

"""Endpoints de l'espace utilisateur (authentifiés).
- /api/v1/profile: lecture et mise à jour du profil
- /api/v1/dashboard: réservations, événements à venir/passés, total dépensé
"""
from typing import Optional
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from partyhub.auth.models import AuthContext
from partyhub.utils.security import require_user
from . import service as profiles_service

router = APIRouter(prefix="/api/v1", tags=["Profile API"])

class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

@router.get("/profile")
def api_get_profile(user: AuthContext = Depends(require_user)):
    return JSONResponse(profiles_service.get_profile(user))

@router.put("/profile")
def api_update_profile(req: ProfileUpdate, user: AuthContext = Depends(require_user)):
    updated = profiles_service.update_profile(user, req.model_dump(exclude_unset=True))
    return JSONResponse(updated)

@router.get("/dashboard")
def api_dashboard(user: AuthContext = Depends(require_user)):
    return JSONResponse(profiles_service.get_dashboard(user))
