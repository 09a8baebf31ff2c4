from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.models import Workflow

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {
    "name": "name",
    "description": "description",
    "status": "status",
    "is_public": "is_public",
    "scene_info": "scene_info",
}


def serialize_workflow(row: Workflow, include_graph: bool = True) -> Dict[str, Any]:
    item = {
        "id": str(row.id),
        "userId": str(row.user_id) if row.user_id else None,
        "name": row.name,
        "description": row.description or "",
        "status": row.status,
        "isPublic": bool(row.is_public),
        "sceneInfo": row.scene_info or {},
        "aiSummary": row.ai_summary or {},
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }
    if include_graph:
        item["nodes"] = row.nodes or []
        item["edges"] = row.edges or []
    else:
        item["nodeCount"] = len(row.nodes or [])
    return item


def get_workflow_row(db: Session, workflow_id: str, user_id: str, require_owner: bool = False) -> Workflow:
    """
    Workflows are visible to their owner, or to anyone when public.
    Write paths pass ``require_owner`` so public workflows stay read-only
    for everyone else.
    """
    try:
        key = workflow_id if isinstance(workflow_id, uuid.UUID) else uuid.UUID(str(workflow_id))
    except ValueError as exc:
        raise NotFoundError("Workflow not found") from exc
    row = db.query(Workflow).filter(Workflow.id == key).first()
    if not row:
        raise NotFoundError("Workflow not found")
    is_owner = str(row.user_id) == str(user_id)
    if not is_owner and (require_owner or not row.is_public):
        raise NotFoundError("Workflow not found")
    return row


def list_workflows(db: Session, user_id: str) -> List[Dict[str, Any]]:
    rows = (
        db.query(Workflow)
        .filter(Workflow.user_id == user_id)
        .order_by(Workflow.updated_at.desc())
        .all()
    )
    return [serialize_workflow(row, include_graph=False) for row in rows]


def get_workflow(db: Session, workflow_id: str, user_id: str) -> Dict[str, Any]:
    return serialize_workflow(get_workflow_row(db, workflow_id, user_id))


def create_workflow(db: Session, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    name = (payload.get("name") or "").strip()
    if not name:
        raise ValidationError("Workflow name is required")
    row = Workflow(
        user_id=user_id,
        name=name,
        description=payload.get("description") or "",
        status=payload.get("status") or "draft",
        is_public=bool(payload.get("is_public", False)),
        scene_info=payload.get("scene_info") or {},
        nodes=payload.get("nodes") or [],
        edges=payload.get("edges") or [],
        ai_summary={},
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info(f"Workflow {row.id} created for user {user_id}")
    return serialize_workflow(row)


def update_workflow(db: Session, workflow_id: str, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    row = get_workflow_row(db, workflow_id, user_id, require_owner=True)
    for key, column in EDITABLE_FIELDS.items():
        if payload.get(key) is not None:
            setattr(row, column, payload[key])
    if not (row.name or "").strip():
        raise ValidationError("Workflow name is required")
    db.commit()
    db.refresh(row)
    return serialize_workflow(row)


def delete_workflow(db: Session, workflow_id: str, user_id: str) -> bool:
    row = get_workflow_row(db, workflow_id, user_id, require_owner=True)
    db.delete(row)
    db.commit()
    return True


def save_graph(
    db: Session,
    row: Workflow,
    nodes: List[Dict[str, Any]],
    edges: List[Dict[str, Any]],
    scene_info: Optional[Dict[str, Any]] = None,
    ai_summary: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Replace the stored graph. Last write wins."""
    row.nodes = nodes
    row.edges = edges
    if scene_info is not None:
        row.scene_info = scene_info
    if ai_summary is not None:
        row.ai_summary = ai_summary
    db.commit()
    db.refresh(row)
    return serialize_workflow(row)
