from typing import Dict, Any, Optional, List
import logging
from fastapi import HTTPException
from . import repository
from . import mailer

logger = logging.getLogger(__name__)

SUBMISSION_STATUSES = ("new", "in_progress", "resolved", "closed")

def submit_contact(name: str, email: str, subject: str, message: str, phone: Optional[str] = None) -> Dict[str, Any]:
    """
    Formulaire de contact:
    - stocke la soumission (status 'new')
    - envoie l'email à la boîte du site; 500 avec le message si configuration absente ou envoi en échec
    """
    payload = {
        "name": name.strip(),
        "email": email.strip(),
        "phone": (phone or "").strip() or None,
        "subject": subject.strip(),
        "message": message.strip(),
        "status": "new",
    }
    if not all(payload[k] for k in ("name", "email", "subject", "message")):
        raise HTTPException(status_code=400, detail="Missing required fields")

    if not repository.insert_submission(payload):
        logger.warning("contact.submit: submission not stored email=%s", payload["email"])

    try:
        mailer.send_contact_email(payload)
    except (mailer.EmailConfigError, mailer.EmailDeliveryError) as e:
        raise HTTPException(status_code=500, detail=str(e))

    return {"success": True, "message": "Email sent successfully"}

def list_submissions(limit: int = 100) -> List[dict]:
    return repository.list_submissions(limit=limit)

def update_submission_status(submission_id: str, status: str) -> dict:
    status = (status or "").strip()
    if status not in SUBMISSION_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status or '(empty)'}")
    updated = repository.update_status(submission_id, status)
    if not updated:
        raise HTTPException(status_code=404, detail="Contact submission not found")
    return updated
