from fastapi import APIRouter
from fastapi.responses import JSONResponse
from . import service as packages_service

# module partyhub.packages.views
router = APIRouter(prefix="/api/v1/packages", tags=["Packages API"])

@router.get("")
def api_list_packages():
    return JSONResponse({"items": packages_service.list_active_packages()})

@router.get("/{package_id}")
def api_get_package(package_id: str):
    return JSONResponse(packages_service.get_package(package_id))
