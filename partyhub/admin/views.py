from typing import Optional, List
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from partyhub.auth.models import AuthContext
from partyhub.utils.security import require_admin
from partyhub.admin import service as admin_service
from partyhub.admin.export import XLSX_MEDIA_TYPE
from partyhub.packages import service as packages_service
from partyhub.contact import service as contact_service

# module partyhub.admin.views
router = APIRouter(prefix="/admin", tags=["Admin"])

class StatusChange(BaseModel):
    status: str

class PackageIn(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    duration: Optional[str] = None
    capacity: Optional[int] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    features: Optional[List[str]] = None

    def fields(self) -> dict:
        return self.model_dump(exclude_unset=True, exclude={"features"})

# API JSON: stats dashboard (comptes simples)
@router.get("/api/stats")
def admin_stats(user: AuthContext = Depends(require_admin)):
    return JSONResponse(admin_service.get_stats())

@router.get("/api/analytics")
def admin_analytics(user: AuthContext = Depends(require_admin)):
    return JSONResponse(admin_service.get_analytics())

# --- Réservations ---
@router.get("/api/bookings")
def admin_list_bookings(limit: int = Query(default=100, ge=1, le=1000), user: AuthContext = Depends(require_admin)):
    return JSONResponse({"items": admin_service.list_bookings(limit=limit)})

@router.get("/api/bookings/export")
def admin_export_bookings(user: AuthContext = Depends(require_admin)):
    export = admin_service.export_bookings()
    return Response(
        content=export["content"],
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{export["filename"]}"'},
    )

@router.post("/api/bookings/{booking_id}/status")
def admin_change_booking_status(booking_id: str, body: StatusChange, user: AuthContext = Depends(require_admin)):
    updated = admin_service.change_booking_status(booking_id, body.status)
    return JSONResponse({"ok": True, "item": updated})

# --- Offres ---
@router.get("/api/packages")
def admin_list_packages(user: AuthContext = Depends(require_admin)):
    return JSONResponse({"items": packages_service.list_all_packages()})

@router.post("/api/packages")
def admin_create_package(body: PackageIn, user: AuthContext = Depends(require_admin)):
    created = packages_service.create_package(body.fields(), body.features)
    return JSONResponse({"ok": True, "item": created}, status_code=201)

@router.put("/api/packages/{package_id}")
def admin_update_package(package_id: str, body: PackageIn, user: AuthContext = Depends(require_admin)):
    updated = packages_service.update_package(package_id, body.fields(), body.features)
    return JSONResponse({"ok": True, "item": updated})

@router.delete("/api/packages/{package_id}")
def admin_delete_package(package_id: str, user: AuthContext = Depends(require_admin)):
    return JSONResponse(packages_service.delete_package(package_id))

# --- Messages de contact ---
@router.get("/api/contacts")
def admin_list_contacts(limit: int = Query(default=100, ge=1, le=1000), user: AuthContext = Depends(require_admin)):
    return JSONResponse({"items": contact_service.list_submissions(limit=limit)})

@router.post("/api/contacts/{submission_id}/status")
def admin_change_contact_status(submission_id: str, body: StatusChange, user: AuthContext = Depends(require_admin)):
    updated = contact_service.update_submission_status(submission_id, body.status)
    return JSONResponse({"ok": True, "item": updated})
