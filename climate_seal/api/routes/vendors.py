"""
Vendor API Routes
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from climate_seal.api.dependencies import get_current_user, http_error
from climate_seal.core.exceptions import AppError, ValidationError
from climate_seal.database import get_db
from climate_seal.schemas.vendor import StatusUpdate, VendorCreate, VendorUpdate
from climate_seal.services import vendor_service

router = APIRouter()


@router.get("/")
async def list_vendors(
    search: Optional[str] = None,
    status: Optional[str] = None,
    db: Session = Depends(get_db),
) -> List[Dict[str, Any]]:
    return vendor_service.list_vendors(db, search=search, status=status)


@router.get("/export")
async def export_vendors(db: Session = Depends(get_db)) -> StreamingResponse:
    content = vendor_service.export_vendors_csv(db)
    return StreamingResponse(
        iter([content.encode("utf-8")]),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="vendors.csv"'},
    )


@router.get("/imports")
async def import_records(limit: int = 50, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return vendor_service.list_import_records(db, limit=limit)


@router.post("/import")
async def import_vendors(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    raw = await file.read()
    try:
        content = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise http_error(ValidationError("CSV file must be UTF-8 encoded"))
    try:
        return vendor_service.import_vendors(db, file.filename or "vendors.csv", content, user["email"])
    except AppError as exc:
        raise http_error(exc)


@router.get("/{vendor_id}")
async def get_vendor(vendor_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        return vendor_service.get_vendor(db, vendor_id)
    except AppError as exc:
        raise http_error(exc)


@router.post("/")
async def create_vendor(
    payload: VendorCreate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return vendor_service.create_vendor(db, payload.model_dump(), user["email"])
    except AppError as exc:
        raise http_error(exc)


@router.put("/{vendor_id}")
async def update_vendor(
    vendor_id: int,
    payload: VendorUpdate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return vendor_service.update_vendor(db, vendor_id, payload.model_dump(exclude_none=True), user["email"])
    except AppError as exc:
        raise http_error(exc)


@router.patch("/{vendor_id}/status")
async def set_status(
    vendor_id: int,
    payload: StatusUpdate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return vendor_service.set_vendor_status(db, vendor_id, payload.status, user["email"])
    except AppError as exc:
        raise http_error(exc)


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: int,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        vendor_service.delete_vendor(db, vendor_id)
    except AppError as exc:
        raise http_error(exc)
    return {"success": True, "id": vendor_id}
