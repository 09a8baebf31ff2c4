"""
Vendors, purchase goods, and the CSV import/export between them.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.models import (
    VENDOR_STATUS_DISABLED,
    VENDOR_STATUS_ENABLED,
    PurchaseGood,
    Vendor,
    VendorImportRecord,
    VendorPurchaseGood,
)

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^[0-9+-]{5,20}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
STATUSES = (VENDOR_STATUS_ENABLED, VENDOR_STATUS_DISABLED)

IMPORT_SUCCESS = "导入成功"
IMPORT_FAILED = "导入失败"

IMPORT_COLUMNS = [
    "vendorName",
    "contactPerson",
    "phone",
    "email",
    "address",
    "purchaseGoodCode",
    "purchaseGoodName",
    "remarks",
]

EXPORT_HEADERS = ["供应商名称", "联系人", "联系电话", "邮箱", "地址", "采购产品", "备注", "状态", "最后更新人", "最后更新时间"]


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _check_length(errors: List[str], value: str, label: str, max_len: int, required: bool = True) -> None:
    if required and not value:
        errors.append(f"{label}不能为空")
    elif len(value) > max_len:
        errors.append(f"{label}最多{max_len}个字符")


def validate_vendor(payload: Dict[str, Any]) -> List[str]:
    """Return the list of problems with a vendor payload; empty means valid."""
    errors: List[str] = []
    _check_length(errors, _text(payload.get("name")), "供应商名称", 50)
    _check_length(errors, _text(payload.get("contact_person")), "联系人", 20)

    phone = _text(payload.get("phone"))
    if not phone:
        errors.append("联系电话不能为空")
    elif not PHONE_RE.match(phone):
        errors.append("联系电话格式不正确")

    email = _text(payload.get("email"))
    if not email:
        errors.append("邮箱不能为空")
    elif not EMAIL_RE.match(email):
        errors.append("邮箱格式不正确")

    _check_length(errors, _text(payload.get("address")), "地址", 200, required=False)
    _check_length(errors, _text(payload.get("remarks")), "备注", 500, required=False)

    status = payload.get("status") or VENDOR_STATUS_ENABLED
    if status not in STATUSES:
        errors.append("状态必须为启用或禁用")
    return errors


def validate_purchase_good(payload: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    _check_length(errors, _text(payload.get("code")), "采购产品代码", 50)
    _check_length(errors, _text(payload.get("name")), "采购产品名称", 100)
    _check_length(errors, _text(payload.get("remarks")), "备注", 500, required=False)
    status = payload.get("status") or VENDOR_STATUS_ENABLED
    if status not in STATUSES:
        errors.append("状态必须为启用或禁用")
    return errors


def serialize_vendor(row: Vendor, include_goods: bool = False) -> Dict[str, Any]:
    item = {
        "id": row.id,
        "name": row.name,
        "contactPerson": row.contact_person,
        "phone": row.phone,
        "email": row.email,
        "address": row.address or "",
        "remarks": row.remarks or "",
        "status": row.status,
        "updatedBy": row.updated_by,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }
    if include_goods:
        item["purchaseGoods"] = [
            {"id": good.id, "code": good.code, "name": good.name} for good in row.purchase_goods
        ]
    return item


def serialize_purchase_good(row: PurchaseGood) -> Dict[str, Any]:
    return {
        "id": row.id,
        "code": row.code,
        "name": row.name,
        "remarks": row.remarks or "",
        "status": row.status,
        "updatedBy": row.updated_by,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        "vendorIds": [vendor.id for vendor in row.vendors],
    }


def _vendor_or_404(db: Session, vendor_id: int) -> Vendor:
    row = db.query(Vendor).filter(Vendor.id == vendor_id).first()
    if not row:
        raise NotFoundError("Vendor not found")
    return row


def _purchase_good_or_404(db: Session, purchase_good_id: int) -> PurchaseGood:
    row = db.query(PurchaseGood).filter(PurchaseGood.id == purchase_good_id).first()
    if not row:
        raise NotFoundError("Purchase good not found")
    return row


# Vendors


def list_vendors(db: Session, search: Optional[str] = None, status: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.query(Vendor)
    if search:
        query = query.filter(Vendor.name.ilike(f"%{search}%"))
    if status:
        query = query.filter(Vendor.status == status)
    return [serialize_vendor(row, include_goods=True) for row in query.order_by(Vendor.id.asc()).all()]


def get_vendor(db: Session, vendor_id: int) -> Dict[str, Any]:
    return serialize_vendor(_vendor_or_404(db, vendor_id), include_goods=True)


def find_vendor_by_name(db: Session, name: str) -> Optional[Vendor]:
    return db.query(Vendor).filter(Vendor.name == name.strip()).first()


def create_vendor(db: Session, payload: Dict[str, Any], user_email: str) -> Dict[str, Any]:
    errors = validate_vendor(payload)
    if errors:
        raise ValidationError("; ".join(errors))
    name = _text(payload["name"])
    if find_vendor_by_name(db, name):
        raise ValidationError(f"供应商名称已存在: {name}")

    row = Vendor(
        name=name,
        contact_person=_text(payload["contact_person"]),
        phone=_text(payload["phone"]),
        email=_text(payload["email"]),
        address=_text(payload.get("address")),
        remarks=_text(payload.get("remarks")),
        status=payload.get("status") or VENDOR_STATUS_ENABLED,
        updated_by=user_email,
        updated_at=date.today(),
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"Vendor {row.id} created by {user_email}")
    return serialize_vendor(row, include_goods=True)


def update_vendor(db: Session, vendor_id: int, payload: Dict[str, Any], user_email: str) -> Dict[str, Any]:
    row = _vendor_or_404(db, vendor_id)
    merged = {
        "name": row.name,
        "contact_person": row.contact_person,
        "phone": row.phone,
        "email": row.email,
        "address": row.address,
        "remarks": row.remarks,
        "status": row.status,
    }
    merged.update({key: value for key, value in payload.items() if value is not None})
    errors = validate_vendor(merged)
    if errors:
        raise ValidationError("; ".join(errors))

    name = _text(merged["name"])
    existing = find_vendor_by_name(db, name)
    if existing and existing.id != row.id:
        raise ValidationError(f"供应商名称已存在: {name}")

    row.name = name
    row.contact_person = _text(merged["contact_person"])
    row.phone = _text(merged["phone"])
    row.email = _text(merged["email"])
    row.address = _text(merged["address"])
    row.remarks = _text(merged["remarks"])
    row.status = merged["status"]
    row.updated_by = user_email
    row.updated_at = date.today()
    db.commit()
    db.refresh(row)
    return serialize_vendor(row, include_goods=True)


def set_vendor_status(db: Session, vendor_id: int, status: str, user_email: str) -> Dict[str, Any]:
    if status not in STATUSES:
        raise ValidationError("状态必须为启用或禁用")
    row = _vendor_or_404(db, vendor_id)
    row.status = status
    row.updated_by = user_email
    row.updated_at = date.today()
    db.commit()
    return {"success": True, "id": vendor_id, "status": status}


def delete_vendor(db: Session, vendor_id: int) -> bool:
    row = _vendor_or_404(db, vendor_id)
    db.delete(row)
    db.commit()
    return True


# Purchase goods


def list_purchase_goods(db: Session, vendor_id: Optional[int] = None) -> List[Dict[str, Any]]:
    query = db.query(PurchaseGood)
    if vendor_id is not None:
        query = query.join(VendorPurchaseGood, VendorPurchaseGood.purchase_good_id == PurchaseGood.id).filter(
            VendorPurchaseGood.vendor_id == vendor_id
        )
    return [serialize_purchase_good(row) for row in query.order_by(PurchaseGood.id.asc()).all()]


def get_purchase_good(db: Session, purchase_good_id: int) -> Dict[str, Any]:
    return serialize_purchase_good(_purchase_good_or_404(db, purchase_good_id))


def find_purchase_good(db: Session, code: str, name: str) -> Optional[PurchaseGood]:
    return (
        db.query(PurchaseGood)
        .filter(PurchaseGood.code == code.strip(), PurchaseGood.name == name.strip())
        .first()
    )


def _link(db: Session, purchase_good_id: int, vendor_id: int) -> None:
    exists = (
        db.query(VendorPurchaseGood)
        .filter(
            VendorPurchaseGood.vendor_id == vendor_id,
            VendorPurchaseGood.purchase_good_id == purchase_good_id,
        )
        .first()
    )
    if not exists:
        db.add(VendorPurchaseGood(vendor_id=vendor_id, purchase_good_id=purchase_good_id))


def _set_vendor_links(db: Session, row: PurchaseGood, vendor_ids: Iterable[int]) -> None:
    vendors = []
    for vendor_id in vendor_ids:
        vendors.append(_vendor_or_404(db, int(vendor_id)))
    row.vendors = vendors


def create_purchase_good(
    db: Session, payload: Dict[str, Any], user_email: str, vendor_ids: Optional[List[int]] = None
) -> Dict[str, Any]:
    errors = validate_purchase_good(payload)
    if errors:
        raise ValidationError("; ".join(errors))
    row = PurchaseGood(
        code=_text(payload["code"]),
        name=_text(payload["name"]),
        remarks=_text(payload.get("remarks")),
        status=payload.get("status") or VENDOR_STATUS_ENABLED,
        updated_by=user_email,
        updated_at=date.today(),
    )
    db.add(row)
    if vendor_ids:
        _set_vendor_links(db, row, vendor_ids)
    db.commit()
    db.refresh(row)
    return serialize_purchase_good(row)


def update_purchase_good(
    db: Session,
    purchase_good_id: int,
    payload: Dict[str, Any],
    user_email: str,
    vendor_ids: Optional[List[int]] = None,
) -> Dict[str, Any]:
    row = _purchase_good_or_404(db, purchase_good_id)
    merged = {"code": row.code, "name": row.name, "remarks": row.remarks, "status": row.status}
    merged.update({key: value for key, value in payload.items() if value is not None})
    errors = validate_purchase_good(merged)
    if errors:
        raise ValidationError("; ".join(errors))

    row.code = _text(merged["code"])
    row.name = _text(merged["name"])
    row.remarks = _text(merged["remarks"])
    row.status = merged["status"]
    row.updated_by = user_email
    row.updated_at = date.today()
    if vendor_ids is not None:
        _set_vendor_links(db, row, vendor_ids)
    db.commit()
    db.refresh(row)
    return serialize_purchase_good(row)


def delete_purchase_good(db: Session, purchase_good_id: int) -> bool:
    row = _purchase_good_or_404(db, purchase_good_id)
    db.delete(row)
    db.commit()
    return True


def link_vendor(db: Session, purchase_good_id: int, vendor_id: int) -> Dict[str, Any]:
    _purchase_good_or_404(db, purchase_good_id)
    _vendor_or_404(db, vendor_id)
    _link(db, purchase_good_id, vendor_id)
    db.commit()
    return {"success": True, "purchaseGoodId": purchase_good_id, "vendorId": vendor_id}


def unlink_vendor(db: Session, purchase_good_id: int, vendor_id: int) -> Dict[str, Any]:
    deleted = (
        db.query(VendorPurchaseGood)
        .filter(
            VendorPurchaseGood.vendor_id == vendor_id,
            VendorPurchaseGood.purchase_good_id == purchase_good_id,
        )
        .delete()
    )
    db.commit()
    if not deleted:
        raise NotFoundError("Vendor link not found")
    return {"success": True, "purchaseGoodId": purchase_good_id, "vendorId": vendor_id}


# Import / export


def parse_import_csv(content: str) -> List[Dict[str, str]]:
    """Read import rows keyed by the expected column names; a BOM is tolerated."""
    reader = csv.DictReader(io.StringIO(content.lstrip("\ufeff")))
    if not reader.fieldnames:
        raise ValidationError("CSV file is empty")
    missing = [column for column in IMPORT_COLUMNS if column not in reader.fieldnames]
    if missing:
        raise ValidationError(f"CSV is missing columns: {', '.join(missing)}")
    return [
        {column: _text(row.get(column)) for column in IMPORT_COLUMNS}
        for row in reader
        if any(_text(value) for value in row.values())
    ]


def validate_import_row(row: Dict[str, str]) -> List[str]:
    errors: List[str] = []
    required = {
        "vendorName": "供应商名称",
        "contactPerson": "联系人",
        "phone": "联系电话",
        "email": "邮箱",
        "purchaseGoodCode": "采购产品代码",
        "purchaseGoodName": "采购产品名称",
    }
    for column, label in required.items():
        if not row.get(column):
            errors.append(f"{label}不能为空")
    if row.get("email") and not EMAIL_RE.match(row["email"]):
        errors.append("邮箱格式不正确")
    return errors


def _import_row(db: Session, row: Dict[str, str], user_email: str) -> None:
    vendor = find_vendor_by_name(db, row["vendorName"])
    if vendor is None:
        payload = {
            "name": row["vendorName"],
            "contact_person": row["contactPerson"],
            "phone": row["phone"],
            "email": row["email"],
            "address": row.get("address"),
            "remarks": row.get("remarks"),
        }
        errors = validate_vendor(payload)
        if errors:
            raise ValidationError(f"创建供应商失败: {'; '.join(errors)}")
        vendor = Vendor(
            name=row["vendorName"],
            contact_person=row["contactPerson"],
            phone=row["phone"],
            email=row["email"],
            address=row.get("address") or "",
            remarks=row.get("remarks") or "",
            status=VENDOR_STATUS_ENABLED,
            updated_by=user_email,
            updated_at=date.today(),
        )
        db.add(vendor)
        db.flush()

    good = find_purchase_good(db, row["purchaseGoodCode"], row["purchaseGoodName"])
    if good is None:
        errors = validate_purchase_good({"code": row["purchaseGoodCode"], "name": row["purchaseGoodName"]})
        if errors:
            raise ValidationError(f"创建采购产品失败: {'; '.join(errors)}")
        good = PurchaseGood(
            code=row["purchaseGoodCode"],
            name=row["purchaseGoodName"],
            remarks=row.get("remarks") or "",
            status=VENDOR_STATUS_ENABLED,
            updated_by=user_email,
            updated_at=date.today(),
        )
        db.add(good)
        db.flush()

    _link(db, good.id, vendor.id)


def import_vendors(db: Session, file_name: str, content: str, user_email: str) -> Dict[str, Any]:
    rows = parse_import_csv(content)
    results: List[Dict[str, Any]] = []
    success_count = 0
    failure_count = 0

    for index, row in enumerate(rows, start=1):
        errors = validate_import_row(row)
        if errors:
            failure_count += 1
            results.append({"row": index, "data": row, "success": False, "errorMessage": "; ".join(errors)})
            continue
        try:
            with db.begin_nested():
                _import_row(db, row, user_email)
        except (ValidationError, SQLAlchemyError) as exc:
            failure_count += 1
            results.append({"row": index, "data": row, "success": False, "errorMessage": str(exc)})
            logger.warning(f"Vendor import row {index} failed: {exc}")
            continue
        success_count += 1
        results.append({"row": index, "data": row, "success": True})

    status = IMPORT_SUCCESS if failure_count == 0 and success_count > 0 else IMPORT_FAILED
    record = VendorImportRecord(
        file_name=file_name,
        success_count=success_count,
        failure_count=failure_count,
        status=status,
        errors=[item for item in results if not item["success"]],
        created_by=user_email,
    )
    db.add(record)
    db.commit()
    logger.info(f"Vendor import {file_name}: {success_count} ok, {failure_count} failed")
    return {
        "recordId": record.id,
        "successCount": success_count,
        "failureCount": failure_count,
        "status": status,
        "results": results,
    }


def list_import_records(db: Session, limit: int = 50) -> List[Dict[str, Any]]:
    rows = db.query(VendorImportRecord).order_by(VendorImportRecord.created_at.desc()).limit(limit).all()
    return [
        {
            "id": row.id,
            "fileName": row.file_name,
            "successCount": row.success_count,
            "failureCount": row.failure_count,
            "status": row.status,
            "errors": row.errors or [],
            "createdBy": row.created_by,
            "createdAt": row.created_at.isoformat() if row.created_at else None,
        }
        for row in rows
    ]


def vendors_to_csv(vendors: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for vendor in vendors:
        goods = ", ".join(f"{good['code']} {good['name']}" for good in vendor.get("purchaseGoods", []))
        writer.writerow(
            [
                vendor["name"],
                vendor["contactPerson"],
                vendor["phone"],
                vendor["email"],
                vendor["address"],
                goods,
                vendor["remarks"],
                vendor["status"],
                vendor.get("updatedBy") or "",
                vendor.get("updatedAt") or "",
            ]
        )
    # BOM so spreadsheet apps pick up UTF-8.
    return "\ufeff" + buffer.getvalue()


def export_vendors_csv(db: Session) -> str:
    return vendors_to_csv(list_vendors(db))
