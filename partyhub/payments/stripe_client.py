"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
"""
import json
import stripe
from typing import Any, Dict, List, Optional
from partyhub.config import STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET

# module partyhub.payments.stripe_client
def require_stripe():
    """
    Prépare et retourne le module stripe prêt à l’emploi.
    - Configure stripe.api_key via STRIPE_SECRET_KEY si disponible.
    - En absence de clé, les appels Stripe échoueront côté SDK (ex: No API key provided).
    """
    if STRIPE_SECRET_KEY:
        stripe.api_key = STRIPE_SECRET_KEY
    return stripe

def find_or_create_customer(email: str) -> str:
    """Client Stripe pour cet email: le premier existant, sinon un nouveau."""
    require_stripe()
    customers = stripe.Customer.list(email=email, limit=1)
    data = list(getattr(customers, "data", None) or [])
    if data:
        return data[0]["id"]
    customer = stripe.Customer.create(email=email)
    return customer["id"]

def create_session(
    *,
    line_items: List[Dict[str, Any]],
    mode: str,
    success_url: str,
    cancel_url: str,
    metadata: Dict[str, Any],
    customer: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Crée une session Stripe Checkout.
    - line_items: lignes Stripe (price_data/quantity)
    - metadata: {"booking_id": "...", "user_id": "..."}, seule corrélation exploitée par le webhook
    Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
    """
    require_stripe()
    params: Dict[str, Any] = {
        "line_items": line_items,
        "mode": mode,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata,
    }
    if customer:
        params["customer"] = customer
    session = stripe.checkout.Session.create(**params)
    # stripe retourne un objet; on le traite comme dict-compatible
    return dict(session)

def parse_event(payload: bytes, sig_header: Optional[str], secret: Optional[str] = None) -> Dict[str, Any]:
    """
    Valide un événement Stripe signé (webhook) et le retourne en dict.
    - Vérifie l'en-tête Stripe-Signature (HMAC SHA-256, horodatage limité à DEFAULT_TOLERANCE)
    - Lève stripe.SignatureVerificationError si la signature est invalide
    """
    body = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    stripe.WebhookSignature.verify_header(
        body,
        sig_header or "",
        secret if secret is not None else STRIPE_WEBHOOK_SECRET,
        tolerance=stripe.Webhook.DEFAULT_TOLERANCE,
    )
    return json.loads(body)
