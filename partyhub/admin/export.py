"""Export des réservations au format .xlsx (openpyxl)."""
from typing import List, Dict, Any, Optional
from datetime import date
from io import BytesIO
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill

EXPORT_HEADERS = [
    "Booking ID",
    "Customer Name",
    "Email",
    "Phone",
    "Package",
    "Booking Date",
    "Event Date",
    "Guest Count",
    "Total Amount",
    "Status",
    "Special Requests",
]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
MAX_COLUMN_WIDTH = 50

# Préfixes interprétés comme formule par les tableurs (injection CSV/xlsx)
FORMULA_PREFIXES = ("=", "+", "-", "@")

def export_filename(today: Optional[date] = None) -> str:
    return f"bookings-export-{(today or date.today()).isoformat()}.xlsx"

def safe_text(value: Any) -> Any:
    """Texte saisi par un client: préfixé d'une apostrophe s'il commence comme une formule."""
    if isinstance(value, str) and value.startswith(FORMULA_PREFIXES):
        return "'" + value
    return value

def booking_row(booking: Dict[str, Any], emails: Dict[str, str]) -> List[Any]:
    profile = booking.get("profiles") or {}
    package = booking.get("service_packages") or {}
    name = f"{profile.get('first_name') or ''} {profile.get('last_name') or ''}".strip() or "Guest"
    return [
        booking.get("id"),
        safe_text(name),
        safe_text(emails.get(str(booking.get("user_id")), "")),
        safe_text(profile.get("phone") or ""),
        safe_text(package.get("title") or "Custom Package"),
        str(booking.get("booking_date") or "")[:10],
        str(booking.get("event_date") or "")[:10],
        booking.get("guest_count") or "",
        float(booking.get("total_amount") or 0),
        booking.get("status"),
        safe_text(booking.get("special_requests") or ""),
    ]

def build_bookings_workbook(bookings: List[Dict[str, Any]], emails: Dict[str, str]) -> bytes:
    workbook = Workbook()
    worksheet = workbook.active
    worksheet.title = "Bookings"

    worksheet.append(EXPORT_HEADERS)
    header_fill = PatternFill(fill_type="solid", fgColor="FFE6F3FF")
    for cell in worksheet[1]:
        cell.font = Font(bold=True)
        cell.fill = header_fill

    for booking in bookings:
        worksheet.append(booking_row(booking, emails))

    for column in worksheet.columns:
        max_length = 0
        column_letter = column[0].column_letter
        for cell in column:
            length = len(str(cell.value)) if cell.value not in (None, "") else 10
            max_length = max(max_length, length)
        worksheet.column_dimensions[column_letter].width = min(max_length + 2, MAX_COLUMN_WIDTH)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
