"""
Cas d'usage 'payments': orchestre réservation, Stripe Checkout et réconciliation webhook.
"""
from typing import Optional, Dict, Any
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode
import logging
import stripe
from fastapi import HTTPException

from partyhub.auth.models import AuthContext
from partyhub.config import BASE_URL, STRIPE_CURRENCY, CHECKOUT_SUCCESS_PATH, CHECKOUT_CANCEL_PATH
from partyhub.bookings import service as bookings_service
from . import repository
from . import stripe_client
from . import metadata as meta

logger = logging.getLogger(__name__)

COMPLETED_EVENT = "checkout.session.completed"

def with_booking_id(url: str, booking_id: str) -> str:
    """Ajoute booking_id en query string (en conservant les paramètres existants)."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "booking_id"]
    query.append(("booking_id", str(booking_id)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

def redirect_urls(
    booking_id: str,
    origin: Optional[str],
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
) -> Dict[str, str]:
    base = (origin or BASE_URL).rstrip("/")
    success = success_url or f"{base}{CHECKOUT_SUCCESS_PATH}"
    cancel = cancel_url or f"{base}{CHECKOUT_CANCEL_PATH}"
    return {"success_url": with_booking_id(success, booking_id), "cancel_url": with_booking_id(cancel, booking_id)}

def to_minor_units(amount: Any) -> int:
    return int((Decimal(str(amount or 0)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def _format_event_date(value: Any) -> str:
    try:
        return date.fromisoformat(str(value)[:10]).strftime("%m/%d/%Y")
    except ValueError:
        return str(value or "")

def build_line_item(booking: Dict[str, Any]) -> Dict[str, Any]:
    package = booking.get("service_packages") or {}
    guests = booking.get("guest_count") or 1
    return {
        "price_data": {
            "currency": STRIPE_CURRENCY,
            "product_data": {
                "name": package.get("title") or "Party Package",
                "description": f"{guests} guests • {_format_event_date(booking.get('event_date'))}",
            },
            "unit_amount": to_minor_units(booking.get("total_amount")),
        },
        "quantity": 1,
    }

def create_checkout_for_booking(
    ctx: Optional[AuthContext],
    booking_id: Optional[str],
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    origin: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée la session Checkout pour une réservation de l'appelant.
    - 401 sans identité/email, 400 si booking_id manque
    - 400 « Booking not found or unauthorized » sans appel Stripe si la réservation n'est pas à lui
    - 400 sans appel Stripe si la réservation n'est plus « pending » (déjà payée, annulée...)
    - Erreurs Stripe remontées en 400 avec le message du fournisseur (pas de retry)
    """
    if ctx is None or not ctx.user_id or not ctx.email:
        raise HTTPException(status_code=401, detail="User not authenticated or email not available")
    if not booking_id:
        raise HTTPException(status_code=400, detail="booking_id is required")

    booking = repository.get_user_booking_for_checkout(booking_id, ctx.user_id, user_token=ctx.token)
    if not booking:
        raise HTTPException(status_code=400, detail="Booking not found or unauthorized")
    if booking.get("status") != "pending":
        raise HTTPException(status_code=400, detail=f"Booking is not awaiting payment (status: {booking.get('status')})")

    urls = redirect_urls(booking_id, origin, success_url, cancel_url)
    try:
        customer_id = stripe_client.find_or_create_customer(ctx.email)
        session = stripe_client.create_session(
            line_items=[build_line_item(booking)],
            mode="payment",
            success_url=urls["success_url"],
            cancel_url=urls["cancel_url"],
            metadata=meta.make_metadata(booking_id, ctx.user_id),
            customer=customer_id,
        )
    except stripe.StripeError as e:
        logger.exception("payments.service.create_checkout_for_booking stripe failed booking_id=%s", booking_id)
        raise HTTPException(status_code=400, detail=getattr(e, "user_message", None) or str(e))

    logger.info("payments.checkout ok booking_id=%s session_id=%s", booking_id, session.get("id"))
    return {"url": session.get("url"), "session_id": session.get("id")}

def create_booking_with_checkout(
    ctx: Optional[AuthContext],
    package_id: Optional[str],
    event_date: Any,
    guest_count: Optional[int] = None,
    special_requests: Optional[str] = None,
    success_url: Optional[str] = None,
    cancel_url: Optional[str] = None,
    origin: Optional[str] = None,
) -> Dict[str, Any]:
    """Réservation « pending » puis session Checkout en un appel: {url, session_id, booking_id}."""
    booking = bookings_service.create_booking(ctx, package_id, event_date, guest_count, special_requests)
    booking_id = str(booking["id"])
    result = create_checkout_for_booking(ctx, booking_id, success_url, cancel_url, origin)
    result["booking_id"] = booking_id
    return result

# --- Webhook ---

def handle_event(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Réconcilie un événement Stripe déjà vérifié.
    - Autre type que checkout.session.completed: {"status": "ignored"}
    - 400 si metadata.booking_id manque
    - 500 si la réservation n'est pas confirmée ou si le paiement n'est pas enregistré
      (Stripe redélivre; l'upsert sur transaction_id évite un second paiement)
    """
    event_type = (event or {}).get("type")
    if event_type != COMPLETED_EVENT:
        logger.info("payments.webhook ignored type=%s", event_type)
        return {"status": "ignored"}

    session = meta.session_from_event(event)
    booking_id, user_id = meta.extract_metadata(event)
    if not booking_id:
        raise HTTPException(status_code=400, detail="No booking_id in session metadata")

    if not repository.confirm_booking(booking_id):
        raise HTTPException(status_code=500, detail="Failed to update booking")

    amount = (Decimal(str(session.get("amount_total") or 0)) / 100).quantize(Decimal("0.01"))
    payment = repository.upsert_payment({
        "booking_id": booking_id,
        "amount": float(amount),
        "status": "completed",
        "transaction_id": session.get("payment_intent") or session.get("id"),
        "payment_method": "stripe",
        "paid_at": datetime.now(timezone.utc).isoformat(),
    })
    if not payment:
        raise HTTPException(status_code=500, detail="Failed to create payment record")

    logger.info("payments.webhook confirmed booking_id=%s user_id=%s amount=%s", booking_id, user_id, amount)
    return {"status": "ok", "booking_id": booking_id}
