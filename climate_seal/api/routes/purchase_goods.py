"""
Purchase Goods API Routes
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from climate_seal.api.dependencies import get_current_user, http_error
from climate_seal.core.exceptions import AppError
from climate_seal.database import get_db
from climate_seal.schemas.vendor import PurchaseGoodCreate, PurchaseGoodUpdate, VendorLink
from climate_seal.services import vendor_service

router = APIRouter()


@router.get("/")
async def list_purchase_goods(vendor_id: Optional[int] = None, db: Session = Depends(get_db)) -> List[Dict[str, Any]]:
    return vendor_service.list_purchase_goods(db, vendor_id=vendor_id)


@router.get("/lookup")
async def find_purchase_good(code: str, name: str, db: Session = Depends(get_db)) -> Dict[str, Any]:
    row = vendor_service.find_purchase_good(db, code, name)
    if not row:
        raise HTTPException(status_code=404, detail="Purchase good not found")
    return vendor_service.serialize_purchase_good(row)


@router.get("/{purchase_good_id}")
async def get_purchase_good(purchase_good_id: int, db: Session = Depends(get_db)) -> Dict[str, Any]:
    try:
        return vendor_service.get_purchase_good(db, purchase_good_id)
    except AppError as exc:
        raise http_error(exc)


@router.post("/")
async def create_purchase_good(
    payload: PurchaseGoodCreate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    data = payload.model_dump(exclude={"vendor_ids"})
    try:
        return vendor_service.create_purchase_good(db, data, user["email"], payload.vendor_ids)
    except AppError as exc:
        raise http_error(exc)


@router.put("/{purchase_good_id}")
async def update_purchase_good(
    purchase_good_id: int,
    payload: PurchaseGoodUpdate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    data = payload.model_dump(exclude={"vendor_ids"}, exclude_none=True)
    try:
        return vendor_service.update_purchase_good(db, purchase_good_id, data, user["email"], payload.vendor_ids)
    except AppError as exc:
        raise http_error(exc)


@router.delete("/{purchase_good_id}")
async def delete_purchase_good(
    purchase_good_id: int,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        vendor_service.delete_purchase_good(db, purchase_good_id)
    except AppError as exc:
        raise http_error(exc)
    return {"success": True, "id": purchase_good_id}


@router.post("/{purchase_good_id}/vendors")
async def link_vendor(
    purchase_good_id: int,
    payload: VendorLink,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return vendor_service.link_vendor(db, purchase_good_id, payload.vendor_id)
    except AppError as exc:
        raise http_error(exc)


@router.delete("/{purchase_good_id}/vendors/{vendor_id}")
async def unlink_vendor(
    purchase_good_id: int,
    vendor_id: int,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return vendor_service.unlink_vendor(db, purchase_good_id, vendor_id)
    except AppError as exc:
        raise http_error(exc)
