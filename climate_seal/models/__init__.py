"""
SQLAlchemy models for Climate Seal.
"""
from __future__ import annotations

import uuid

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere so the models also run on SQLite.
JSONType = JSON().with_variant(JSONB, "postgresql")

VENDOR_STATUS_ENABLED = "启用"
VENDOR_STATUS_DISABLED = "禁用"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(Text, nullable=False, unique=True)
    name = Column(Text)
    password_hash = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)
    contact_person = Column(Text, nullable=False)
    phone = Column(Text, nullable=False)
    email = Column(Text, nullable=False)
    address = Column(Text, nullable=False)
    remarks = Column(Text)
    status = Column(Text, default=VENDOR_STATUS_ENABLED)
    updated_by = Column(Text)
    updated_at = Column(Date)

    purchase_goods = relationship(
        "PurchaseGood",
        secondary="vendor_purchase_goods",
        back_populates="vendors",
    )


class PurchaseGood(Base):
    __tablename__ = "purchase_goods"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    remarks = Column(Text)
    status = Column(Text, default=VENDOR_STATUS_ENABLED)
    updated_by = Column(Text)
    updated_at = Column(Date)

    vendors = relationship(
        "Vendor",
        secondary="vendor_purchase_goods",
        back_populates="purchase_goods",
    )


class VendorPurchaseGood(Base):
    __tablename__ = "vendor_purchase_goods"
    __table_args__ = (UniqueConstraint("vendor_id", "purchase_good_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False)
    purchase_good_id = Column(
        Integer, ForeignKey("purchase_goods.id", ondelete="CASCADE"), nullable=False
    )


class VendorImportRecord(Base):
    __tablename__ = "vendor_import_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_name = Column(Text, nullable=False)
    success_count = Column(Integer, default=0)
    failure_count = Column(Integer, default=0)
    status = Column(Text)
    errors = Column(JSONType, default=list)
    created_by = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Workflow(Base):
    __tablename__ = "workflows"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"))
    name = Column(Text, nullable=False)
    description = Column(Text)
    status = Column(Text, default="draft")
    is_public = Column(Boolean, default=False)
    scene_info = Column(JSONType, default=dict)
    nodes = Column(JSONType, default=list)
    edges = Column(JSONType, default=list)
    ai_summary = Column(JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class Checkpoint(Base):
    __tablename__ = "workflow_checkpoints"
    __table_args__ = (UniqueConstraint("workflow_id", "name"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    workflow_id = Column(
        Uuid(as_uuid=True), ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False
    )
    name = Column(Text, nullable=False)
    description = Column(Text)
    tags = Column(JSONType, default=list)
    version = Column(Text, default="1.0")
    timestamp_ms = Column(BigInteger, nullable=False)
    data = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AgentLog(Base):
    __tablename__ = "agent_logs"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    agent_name = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    status = Column(Text)
    message = Column(Text)
    error_details = Column(Text)
    execution_time_ms = Column(Integer)
    meta = Column("metadata", JSONType, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
