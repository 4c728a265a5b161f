# module partyhub.admin.service

from typing import List, Dict, Any, Optional
from collections import Counter, defaultdict
from decimal import Decimal
from fastapi import HTTPException
from partyhub.admin import repository as admin_repository
import logging

logger = logging.getLogger(__name__)

# Transitions autorisées depuis le back-office (confirmed n'est posé que par le webhook)
ALLOWED_TRANSITIONS = {
    "pending": {"cancelled"},
    "confirmed": {"completed", "cancelled"},
}

def get_stats() -> Dict[str, int]:
    return {
        "bookings_count": admin_repository.count_table_rows("bookings"),
        "packages_count": admin_repository.count_table_rows("service_packages"),
        "payments_count": admin_repository.count_table_rows("payments"),
        "contacts_count": admin_repository.count_table_rows("contact_submissions"),
    }

def list_bookings(limit: int = 100) -> List[dict]:
    return admin_repository.fetch_admin_bookings(limit=limit)

def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())

def change_booking_status(booking_id: str, status: str) -> dict:
    target = (status or "").strip().lower()
    booking = admin_repository.get_booking(booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    current = booking.get("status") or ""
    if not can_transition(current, target):
        raise HTTPException(status_code=400, detail=f"Invalid status transition: {current} -> {target or '(empty)'}")
    updated = admin_repository.update_booking_status(booking_id, target)
    if not updated:
        raise HTTPException(status_code=400, detail="Failed to update booking status")
    logger.info("admin.booking_status id=%s %s -> %s", booking_id, current, target)
    return updated

# --- Analytics ---

def _month(value: Any) -> Optional[str]:
    raw = str(value or "")
    return raw[:7] if len(raw) >= 7 else None

def compute_analytics(
    bookings: List[dict],
    payments: List[dict],
    active_packages: int,
    top: int = 5,
) -> Dict[str, Any]:
    """
    Agrégats du tableau de bord admin:
    - revenue_generated: somme des paiements 'completed'
    - monthly_trend: [{month: YYYY-MM, bookings, revenue}] trié par mois
    - popular_packages: top N par nombre de réservations
    """
    revenue = sum((Decimal(str(p.get("amount") or 0)) for p in payments), Decimal("0"))

    trend: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"bookings": 0, "revenue": Decimal("0")})
    for b in bookings:
        month = _month(b.get("created_at"))
        if month:
            trend[month]["bookings"] += 1
    for p in payments:
        month = _month(p.get("paid_at") or p.get("created_at"))
        if month:
            trend[month]["revenue"] += Decimal(str(p.get("amount") or 0))

    counts: Counter = Counter()
    titles: Dict[str, str] = {}
    for b in bookings:
        pid = str(b.get("package_id") or "")
        if not pid:
            continue
        counts[pid] += 1
        titles.setdefault(pid, ((b.get("service_packages") or {}).get("title")) or "Unknown package")

    return {
        "total_bookings": len(bookings),
        "active_packages": active_packages,
        "revenue_generated": float(revenue.quantize(Decimal("0.01"))),
        "monthly_trend": [
            {"month": m, "bookings": v["bookings"], "revenue": float(v["revenue"].quantize(Decimal("0.01")))}
            for m, v in sorted(trend.items())
        ],
        "popular_packages": [
            {"package_id": pid, "title": titles[pid], "bookings": n}
            for pid, n in counts.most_common(top)
        ],
    }

def get_analytics() -> Dict[str, Any]:
    return compute_analytics(
        admin_repository.fetch_bookings_for_analytics(),
        admin_repository.fetch_completed_payments(),
        admin_repository.count_active_packages(),
    )

def export_bookings() -> Dict[str, Any]:
    """Toutes les réservations en .xlsx: {"content": bytes, "filename": "..."}."""
    from partyhub.admin.export import build_bookings_workbook, export_filename
    bookings = admin_repository.fetch_admin_bookings(limit=None)
    emails = admin_repository.fetch_auth_emails()
    logger.info("admin.export bookings=%s", len(bookings))
    return {"content": build_bookings_workbook(bookings, emails), "filename": export_filename()}
