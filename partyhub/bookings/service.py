"""Couche service des réservations.
Rôles:
- Calculer le montant total (prix de l'offre x nombre d'invités), figé à la création.
- Créer une réservation « pending » pour une offre active, au nom de l'appelant.
- Lire les réservations de l'appelant (tableau de bord, pages succès/annulation).
Hors périmètre: contrôle de capacité et de double réservation, expiration des « pending ».
"""
from typing import Optional, Dict, Any, List, Union
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
import logging
from fastapi import HTTPException

from partyhub.auth.models import AuthContext
from partyhub.packages import service as packages_service
from . import repository

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

def compute_total_amount(price: Union[int, float, str, Decimal], guest_count: int) -> Decimal:
    """price x max(guest_count, 1), arrondi au centime."""
    guests = max(int(guest_count or 0), 1)
    return (Decimal(str(price)) * guests).quantize(CENTS, rounding=ROUND_HALF_UP)

def normalize_guest_count(guest_count: Optional[int]) -> int:
    """Absent ou 0 -> 1; négatif -> 400."""
    if guest_count is None:
        return 1
    try:
        value = int(guest_count)
    except (TypeError, ValueError):
        raise HTTPException(status_code=400, detail="guest_count must be an integer")
    if value < 0:
        raise HTTPException(status_code=400, detail="guest_count must be at least 1")
    return value or 1

def parse_event_date(event_date: Union[str, date, None]) -> date:
    if isinstance(event_date, datetime):
        return event_date.date()
    if isinstance(event_date, date):
        return event_date
    raw = (event_date or "").strip()
    if not raw:
        raise HTTPException(status_code=400, detail="Missing required fields")
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        raise HTTPException(status_code=400, detail="event_date must be an ISO date (YYYY-MM-DD)")

def today_utc() -> date:
    return datetime.now(timezone.utc).date()

def create_booking(
    ctx: Optional[AuthContext],
    package_id: Optional[str],
    event_date: Union[str, date, None],
    guest_count: Optional[int] = None,
    special_requests: Optional[str] = None,
) -> Dict[str, Any]:
    """Crée une réservation « pending ».
    - 401 sans contexte d'authentification
    - 400 si package_id/event_date manquent ou si l'offre est absente/inactive (aucune ligne écrite)
    - total_amount = price x guest_count, figé
    """
    if ctx is None or not ctx.user_id:
        raise HTTPException(status_code=401, detail="User not authenticated")
    if not package_id or not event_date:
        raise HTTPException(status_code=400, detail="Missing required fields")

    guests = normalize_guest_count(guest_count)
    event_day = parse_event_date(event_date)

    package = packages_service.get_active_package(package_id, user_token=ctx.token)
    if not package:
        raise HTTPException(status_code=400, detail="Package not found or inactive")

    total = compute_total_amount(package.get("price") or 0, guests)
    payload = {
        "user_id": ctx.user_id,
        "package_id": package_id,
        "event_date": event_day.isoformat(),
        "guest_count": guests,
        "special_requests": (special_requests or "").strip() or None,
        "total_amount": float(total),
        "status": "pending",
        "booking_date": today_utc().isoformat(),
    }
    booking = repository.insert_booking(payload, user_token=ctx.token)
    if not booking:
        raise HTTPException(status_code=400, detail="Failed to create booking")

    logger.info("bookings.create ok id=%s user_id=%s total=%s", booking.get("id"), ctx.user_id, total)
    return booking

def list_user_bookings(ctx: AuthContext) -> List[dict]:
    return repository.list_user_bookings(ctx.user_id, user_token=ctx.token)

def get_user_booking(ctx: AuthContext, booking_id: str) -> dict:
    booking = repository.get_user_booking(booking_id, ctx.user_id, user_token=ctx.token)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return booking
