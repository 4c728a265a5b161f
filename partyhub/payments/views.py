import logging
from typing import Optional
from datetime import date

from fastapi import APIRouter, Request, Depends, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import stripe

from partyhub.auth.models import AuthContext
from partyhub.utils.security import require_user
from partyhub.utils.rate_limit import optional_rate_limit
from partyhub.payments import stripe_client

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/payments", tags=["Payments API"])

class CheckoutRequest(BaseModel):
    booking_id: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

class BookingCheckoutRequest(BaseModel):
    package_id: Optional[str] = None
    event_date: Optional[date] = None
    guest_count: Optional[int] = None
    special_requests: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None

def _origin(request: Request) -> Optional[str]:
    return request.headers.get("origin") or None

# module partyhub.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_checkout_session(req: CheckoutRequest, request: Request, user: AuthContext = Depends(require_user)):
    """
    Crée une session Checkout Stripe pour une réservation existante de l'appelant.
    - Entrée JSON: {"booking_id": "...", "success_url"?: "...", "cancel_url"?: "..."}
    - Sortie: {"url": "...", "session_id": "cs_..."}
    """
    from partyhub.payments import service as payments_service
    result = payments_service.create_checkout_for_booking(
        user, req.booking_id, req.success_url, req.cancel_url, origin=_origin(request)
    )
    return JSONResponse(result)

@router.post("/booking-checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
def create_booking_checkout(req: BookingCheckoutRequest, request: Request, user: AuthContext = Depends(require_user)):
    """Crée la réservation puis la session Checkout: {"url", "session_id", "booking_id"}."""
    from partyhub.payments import service as payments_service
    result = payments_service.create_booking_with_checkout(
        user,
        req.package_id,
        req.event_date,
        guest_count=req.guest_count,
        special_requests=req.special_requests,
        success_url=req.success_url,
        cancel_url=req.cancel_url,
        origin=_origin(request),
    )
    return JSONResponse(result)

@router.post("/webhook", include_in_schema=False)
async def webhook_stripe(request: Request):
    """
    Webhook Stripe (Checkout): consomme checkout.session.completed pour confirmer la réservation.
    - Signature: en-tête Stripe-Signature + STRIPE_WEBHOOK_SECRET, 400 si absente ou invalide
    - Réponses: {"status": "ok"} ou {"status": "ignored"}; 500 si l'écriture en base échoue
    """
    sig_header = request.headers.get("stripe-signature")
    if not sig_header:
        raise HTTPException(status_code=400, detail="No signature")

    payload = await request.body()
    try:
        event = stripe_client.parse_event(payload, sig_header)
    except stripe.SignatureVerificationError:
        logger.warning("payments.webhook signature verification failed")
        raise HTTPException(status_code=400, detail="Webhook signature verification failed")
    except ValueError:
        logger.warning("payments.webhook invalid payload")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")

    from partyhub.payments import service as payments_service
    # écritures Supabase synchrones: hors de la boucle d'événements
    return JSONResponse(await run_in_threadpool(payments_service.handle_event, event))
