# module partyhub.packages.service

from typing import List, Optional, Dict, Any
from decimal import Decimal, InvalidOperation
import logging
from fastapi import HTTPException
from . import repository

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "description", "price", "duration", "capacity", "rating", "review_count", "image_url", "is_active")

def _attach_features(packages: List[dict]) -> List[dict]:
    ids = [p.get("id") for p in packages if p.get("id")]
    by_package: Dict[str, List[dict]] = {}
    for f in repository.fetch_features(ids):
        if f.get("is_included", True) is False:
            continue
        by_package.setdefault(str(f.get("package_id")), []).append(f)
    out = []
    for p in packages:
        item = dict(p)
        item["features"] = [f.get("feature_text") for f in by_package.get(str(p.get("id")), [])]
        out.append(item)
    return out

def list_active_packages() -> List[dict]:
    return _attach_features(repository.list_packages(active_only=True))

def get_package(package_id: str) -> dict:
    pkg = repository.get_package(package_id)
    if not pkg:
        raise HTTPException(status_code=404, detail="Package not found")
    return _attach_features([pkg])[0]

def get_active_package(package_id: str, user_token: Optional[str] = None) -> Optional[dict]:
    """Offre réservable: existe et is_active = true, sinon None."""
    return repository.get_package(package_id, active_only=True, user_token=user_token)

# --- Back-office ---

def validate_package_data(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Filtre et valide les champs d'une offre:
    - title obligatoire (sauf mise à jour partielle)
    - price > 0, capacity >= 1 si fourni
    """
    clean = {k: data[k] for k in _EDITABLE_FIELDS if k in data}

    if "title" in clean or not partial:
        title = (clean.get("title") or "").strip()
        if not title:
            raise HTTPException(status_code=400, detail="title is required")
        clean["title"] = title

    if "price" in clean or not partial:
        try:
            price = Decimal(str(clean.get("price")))
        except (InvalidOperation, ValueError):
            raise HTTPException(status_code=400, detail="price must be a number")
        if not price.is_finite() or price <= 0:
            raise HTTPException(status_code=400, detail="price must be greater than 0")
        clean["price"] = float(price.quantize(Decimal("0.01")))

    if clean.get("capacity") is not None:
        try:
            capacity = int(clean["capacity"])
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="capacity must be an integer")
        if capacity < 1:
            raise HTTPException(status_code=400, detail="capacity must be at least 1")
        clean["capacity"] = capacity

    return clean

def list_all_packages() -> List[dict]:
    return _attach_features(repository.list_all_packages())

def create_package(data: Dict[str, Any], features: Optional[List[str]] = None) -> dict:
    payload = validate_package_data(data)
    payload.setdefault("is_active", True)
    created = repository.create_package(payload)
    if not created:
        raise HTTPException(status_code=400, detail="Failed to create package")
    if features is not None and not repository.replace_features(created["id"], _clean_features(features)):
        # offre sans ses caractéristiques: on annule la création
        repository.delete_package(created["id"])
        raise HTTPException(status_code=400, detail="Failed to update package features")
    logger.info("packages.create ok id=%s", created.get("id"))
    return _attach_features([created])[0]

def update_package(package_id: str, data: Dict[str, Any], features: Optional[List[str]] = None) -> dict:
    if not repository.get_package(package_id, privileged=True):
        raise HTTPException(status_code=404, detail="Package not found")
    payload = validate_package_data(data, partial=True)
    updated = repository.update_package(package_id, payload) if payload else repository.get_package(package_id, privileged=True)
    if not updated:
        raise HTTPException(status_code=400, detail="Failed to update package")
    if features is not None:
        if not repository.replace_features(package_id, _clean_features(features)):
            raise HTTPException(status_code=400, detail="Failed to update package features")
    return _attach_features([updated])[0]

def delete_package(package_id: str) -> Dict[str, Any]:
    """
    Suppression d'une offre:
    - référencée par au moins une réservation: désactivation (is_active = false)
    - sinon suppression définitive
    """
    if not repository.get_package(package_id, privileged=True):
        raise HTTPException(status_code=404, detail="Package not found")
    bookings_count = repository.count_bookings_for_package(package_id)
    if bookings_count < 0:
        raise HTTPException(status_code=500, detail="Failed to check package bookings")
    if bookings_count > 0:
        if not repository.update_package(package_id, {"is_active": False}):
            raise HTTPException(status_code=400, detail="Failed to deactivate package")
        logger.info("packages.delete soft id=%s bookings=%s", package_id, bookings_count)
        return {"ok": True, "deleted": False, "deactivated": True}
    # package_features suivent via on delete cascade
    if not repository.delete_package(package_id):
        raise HTTPException(status_code=400, detail="Failed to delete package")
    return {"ok": True, "deleted": True, "deactivated": False}

def _clean_features(features: List[str]) -> List[str]:
    return [str(f).strip() for f in features if str(f or "").strip()]
