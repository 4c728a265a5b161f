"""Couche service du domaine Profils.
- Création paresseuse du profil applicatif depuis les métadonnées Auth.
- Lecture/mise à jour du profil de l'appelant.
- Données du tableau de bord utilisateur (réservations à venir/passées, total dépensé).
"""
from typing import Any, Dict, Optional, List
from datetime import date
from decimal import Decimal
import logging
from fastapi import HTTPException

from partyhub.auth.models import AuthContext
from partyhub.bookings import service as bookings_service
from . import repository

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "phone")

def ensure_profile(user_id: str, metadata: Optional[Dict[str, Any]] = None, user_token: Optional[str] = None) -> Optional[dict]:
    """Insère le profil s'il n'existe pas (first_name/last_name/phone issus de user_metadata)."""
    existing = repository.get_profile(user_id, user_token=user_token)
    if existing:
        return existing
    md = metadata or {}
    payload = {"id": user_id}
    payload.update({k: md.get(k) for k in PROFILE_FIELDS})
    created = repository.insert_profile(payload, user_token=user_token)
    if created:
        logger.info("profiles.ensure_profile created user_id=%s", user_id)
    return created

def get_profile(ctx: AuthContext) -> dict:
    profile = repository.get_profile(ctx.user_id, user_token=ctx.token)
    if not profile:
        raise HTTPException(status_code=404, detail="Profile not found")
    return profile

def update_profile(ctx: AuthContext, data: Dict[str, Any]) -> dict:
    clean = {}
    for k in PROFILE_FIELDS:
        if k in data:
            value = (data.get(k) or "").strip()
            clean[k] = value or None
    if not clean:
        raise HTTPException(status_code=400, detail="No profile fields to update")
    if not repository.get_profile(ctx.user_id, user_token=ctx.token):
        ensure_profile(ctx.user_id, ctx.metadata, user_token=ctx.token)
    updated = repository.update_profile(ctx.user_id, clean, user_token=ctx.token)
    if not updated:
        raise HTTPException(status_code=400, detail="Failed to update profile")
    return updated

def split_bookings(bookings: List[dict], today: date) -> Dict[str, List[dict]]:
    """À venir: event_date strictement après aujourd'hui; le reste est passé."""
    upcoming, past = [], []
    for b in bookings:
        try:
            event_day = date.fromisoformat(str(b.get("event_date") or "")[:10])
        except ValueError:
            past.append(b)
            continue
        (upcoming if event_day > today else past).append(b)
    return {"upcoming": upcoming, "past": past}

def total_spent(bookings: List[dict]) -> float:
    total = sum((Decimal(str(b.get("total_amount") or 0)) for b in bookings), Decimal("0"))
    return float(total.quantize(Decimal("0.01")))

def get_dashboard(ctx: AuthContext, today: Optional[date] = None) -> Dict[str, Any]:
    bookings = bookings_service.list_user_bookings(ctx)
    split = split_bookings(bookings, today or bookings_service.today_utc())
    return {
        "profile": repository.get_profile(ctx.user_id, user_token=ctx.token),
        "bookings": bookings,
        "upcoming": split["upcoming"],
        "past": split["past"],
        "total_spent": total_spent(bookings),
    }
