"""
Métadonnées Stripe d'une session Checkout (booking_id, user_id).
"""
from typing import Any, Dict, Optional, Tuple

# module partyhub.payments.metadata
def make_metadata(booking_id: str, user_id: str) -> Dict[str, str]:
    return {"booking_id": str(booking_id), "user_id": str(user_id)}

def session_from_event(event: Dict[str, Any]) -> Dict[str, Any]:
    data_obj = (event or {}).get("data", {}).get("object", {}) if isinstance(event, dict) else {}
    return data_obj or {}

def extract_metadata(event: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extrait (booking_id, user_id) depuis un event Stripe (webhook).
    - Attend event.data.object.metadata.{booking_id, user_id}
    - Valeurs vides normalisées en None.
    """
    meta = session_from_event(event).get("metadata") or {}
    booking_id = (meta.get("booking_id") or "").strip() or None
    user_id = (meta.get("user_id") or "").strip() or None
    return booking_id, user_id
