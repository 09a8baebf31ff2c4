"""
Named snapshots of a workflow graph.

Each workflow keeps at most ``settings.max_checkpoints`` checkpoints; saving a
new name beyond that limit drops the oldest one.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from climate_seal.config import settings
from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.models import Checkpoint

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def serialize_checkpoint(row: Checkpoint) -> Dict[str, Any]:
    return {
        "name": row.name,
        "timestamp": row.timestamp_ms,
        "description": row.description or "",
        "tags": row.tags or [],
        "version": row.version or "1.0",
    }


def _get(db: Session, workflow_id: str, name: str) -> Optional[Checkpoint]:
    return (
        db.query(Checkpoint)
        .filter(Checkpoint.workflow_id == workflow_id, Checkpoint.name == name)
        .first()
    )


def list_checkpoints(db: Session, workflow_id: str) -> List[Dict[str, Any]]:
    rows = (
        db.query(Checkpoint)
        .filter(Checkpoint.workflow_id == workflow_id)
        .order_by(Checkpoint.timestamp_ms.desc())
        .all()
    )
    return [serialize_checkpoint(row) for row in rows]


def save_checkpoint(
    db: Session,
    workflow_id: str,
    name: str,
    data: Dict[str, Any],
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Checkpoint name cannot be empty")
    if not isinstance(data, dict):
        raise ValidationError("Checkpoint data must be an object")
    metadata = metadata or {}

    row = _get(db, workflow_id, name)
    is_new = row is None
    if is_new:
        row = Checkpoint(workflow_id=workflow_id, name=name)
        db.add(row)
    row.timestamp_ms = _now_ms()
    row.description = metadata.get("description") or ""
    row.tags = metadata.get("tags") or []
    row.version = metadata.get("version") or "1.0"
    row.data = {**data, "name": name}
    db.flush()

    removed = None
    if is_new:
        rows = (
            db.query(Checkpoint)
            .filter(Checkpoint.workflow_id == workflow_id)
            .order_by(Checkpoint.timestamp_ms.desc())
            .all()
        )
        if len(rows) > settings.max_checkpoints:
            oldest = rows[-1]
            removed = oldest.name
            db.delete(oldest)
            logger.info(f"Removed oldest checkpoint '{removed}' of workflow {workflow_id} due to limit")

    db.commit()
    db.refresh(row)
    logger.info(f"Checkpoint '{name}' saved for workflow {workflow_id}")
    return {"checkpoint": serialize_checkpoint(row), "removed": removed}


def restore_checkpoint(db: Session, workflow_id: str, name: str) -> Dict[str, Any]:
    row = _get(db, workflow_id, name)
    if not row:
        raise NotFoundError(f"Checkpoint '{name}' not found")
    return row.data or {}


def delete_checkpoint(db: Session, workflow_id: str, name: str) -> bool:
    row = _get(db, workflow_id, name)
    if not row:
        raise NotFoundError(f"Checkpoint '{name}' not found")
    db.delete(row)
    db.commit()
    return True


def clear_checkpoints(db: Session, workflow_id: str) -> int:
    count = db.query(Checkpoint).filter(Checkpoint.workflow_id == workflow_id).delete()
    db.commit()
    logger.info(f"Cleared {count} checkpoints for workflow {workflow_id}")
    return count


def export_checkpoint(db: Session, workflow_id: str, name: str) -> str:
    row = _get(db, workflow_id, name)
    if not row:
        raise NotFoundError(f"Checkpoint '{name}' not found")
    document = {
        "name": row.name,
        "timestamp": row.timestamp_ms,
        "data": row.data or {},
        "metadata": {
            "description": row.description or "",
            "tags": row.tags or [],
            "version": row.version or "1.0",
        },
    }
    return json.dumps(document, ensure_ascii=False, indent=2)


def parse_checkpoint_document(json_string: str) -> Dict[str, Any]:
    """Validate an exported checkpoint document and return it as a dict."""
    try:
        document = json.loads(json_string)
    except (TypeError, ValueError) as exc:
        raise ValidationError("Invalid JSON file") from exc
    if not isinstance(document, dict):
        raise ValidationError("Invalid checkpoint file format: Missing required fields.")

    name = document.get("name")
    timestamp = document.get("timestamp")
    data = document.get("data")
    if not name or not timestamp or not data:
        raise ValidationError("Invalid checkpoint file format: Missing required fields.")
    if (
        not isinstance(name, str)
        or isinstance(timestamp, bool)
        or not isinstance(timestamp, (int, float))
        or not isinstance(data, dict)
    ):
        raise ValidationError("Invalid checkpoint file format: Incorrect field types.")

    metadata = document.get("metadata")
    document["metadata"] = (
        {key: metadata.get(key) for key in ("description", "tags", "version")}
        if isinstance(metadata, dict)
        else {}
    )
    return document


def import_checkpoint(db: Session, workflow_id: str, json_string: str) -> Dict[str, Any]:
    document = parse_checkpoint_document(json_string)
    return save_checkpoint(db, workflow_id, document["name"], document["data"], document["metadata"])
