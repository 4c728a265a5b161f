# module partyhub.bookings.views

"""Endpoints Réservations (/api/v1/bookings).
- POST: crée une réservation « pending » (authentifié, rate-limité).
- GET: réservations de l'appelant; GET /{id}: une réservation (pages succès/annulation).
"""
from typing import Optional
from datetime import date
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from partyhub.auth.models import AuthContext
from partyhub.utils.security import require_user
from partyhub.utils.rate_limit import optional_rate_limit
from . import service as bookings_service

router = APIRouter(prefix="/api/v1/bookings", tags=["Bookings API"])

class CreateBookingRequest(BaseModel):
    package_id: Optional[str] = None
    event_date: Optional[date] = None
    guest_count: Optional[int] = None
    special_requests: Optional[str] = None

@router.post("", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def api_create_booking(req: CreateBookingRequest, user: AuthContext = Depends(require_user)):
    booking = bookings_service.create_booking(
        user,
        req.package_id,
        req.event_date,
        guest_count=req.guest_count,
        special_requests=req.special_requests,
    )
    return JSONResponse({"success": True, "booking": booking})

@router.get("")
def api_list_bookings(user: AuthContext = Depends(require_user)):
    return JSONResponse({"items": bookings_service.list_user_bookings(user)})

@router.get("/{booking_id}")
def api_get_booking(booking_id: str, user: AuthContext = Depends(require_user)):
    return JSONResponse(bookings_service.get_user_booking(user, booking_id))
