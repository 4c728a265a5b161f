"""
Module 'payments' (feature-first): point d'entrée public.
Réunit client Stripe, metadata de session, repository BD et cas d'usage checkout/webhook.
"""

from .metadata import make_metadata, extract_metadata, session_from_event
from .stripe_client import require_stripe, find_or_create_customer, create_session, parse_event
from .repository import get_user_booking_for_checkout, confirm_booking, upsert_payment
from .service import create_checkout_for_booking, create_booking_with_checkout, handle_event

__all__ = [
    # metadata
    "make_metadata",
    "extract_metadata",
    "session_from_event",
    # stripe
    "require_stripe",
    "find_or_create_customer",
    "create_session",
    "parse_event",
    # repository
    "get_user_booking_for_checkout",
    "confirm_booking",
    "upsert_payment",
    # services
    "create_checkout_for_booking",
    "create_booking_with_checkout",
    "handle_event",
]
