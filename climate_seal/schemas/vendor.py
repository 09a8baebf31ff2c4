from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class VendorCreate(BaseModel):
    name: str
    contact_person: str = Field(alias="contactPerson")
    phone: str
    email: str
    address: str = ""
    remarks: str = ""
    status: str = "启用"

    model_config = {"populate_by_name": True}


class VendorUpdate(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = Field(default=None, alias="contactPerson")
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    remarks: Optional[str] = None
    status: Optional[str] = None

    model_config = {"populate_by_name": True}


class StatusUpdate(BaseModel):
    status: str


class PurchaseGoodCreate(BaseModel):
    code: str
    name: str
    remarks: str = ""
    status: str = "启用"
    vendor_ids: list[int] = Field(default_factory=list, alias="vendorIds")

    model_config = {"populate_by_name": True}


class PurchaseGoodUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    remarks: Optional[str] = None
    status: Optional[str] = None
    vendor_ids: Optional[list[int]] = Field(default=None, alias="vendorIds")

    model_config = {"populate_by_name": True}


class VendorLink(BaseModel):
    vendor_id: int = Field(alias="vendorId")

    model_config = {"populate_by_name": True}
