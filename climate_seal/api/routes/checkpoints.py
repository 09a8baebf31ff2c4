"""
Checkpoint API Routes
Mounted under /workflows/{workflow_id}/checkpoints.
"""
from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from climate_seal.api.dependencies import get_current_user, http_error
from climate_seal.core.exceptions import AppError
from climate_seal.database import get_db
from climate_seal.schemas.workflow import CheckpointImport, CheckpointSave
from climate_seal.services import checkpoint_service, workflow_service

router = APIRouter()


def _workflow(db: Session, workflow_id: str, user: Dict[str, Any], require_owner: bool = False):
    try:
        return workflow_service.get_workflow_row(db, workflow_id, user["id"], require_owner=require_owner)
    except AppError as exc:
        raise http_error(exc)


@router.get("/{workflow_id}/checkpoints")
async def list_checkpoints(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    row = _workflow(db, workflow_id, user)
    return checkpoint_service.list_checkpoints(db, row.id)


@router.post("/{workflow_id}/checkpoints")
async def save_checkpoint(
    workflow_id: str,
    payload: CheckpointSave,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    row = _workflow(db, workflow_id, user, require_owner=True)
    data = payload.data or {
        "nodes": row.nodes or [],
        "edges": row.edges or [],
        "aiSummary": row.ai_summary or None,
        "settings": payload.settings,
    }
    if payload.chat_history is not None:
        data["chatHistory"] = payload.chat_history
    metadata = {"description": payload.description, "tags": payload.tags, "version": payload.version}
    try:
        return checkpoint_service.save_checkpoint(db, row.id, payload.name, data, metadata)
    except AppError as exc:
        raise http_error(exc)


@router.post("/{workflow_id}/checkpoints/import")
async def import_checkpoint(
    workflow_id: str,
    payload: CheckpointImport,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    row = _workflow(db, workflow_id, user, require_owner=True)
    try:
        return checkpoint_service.import_checkpoint(db, row.id, payload.document)
    except AppError as exc:
        raise http_error(exc)


@router.delete("/{workflow_id}/checkpoints")
async def clear_checkpoints(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    row = _workflow(db, workflow_id, user, require_owner=True)
    return {"success": True, "deleted": checkpoint_service.clear_checkpoints(db, row.id)}


@router.get("/{workflow_id}/checkpoints/{name}")
async def restore_checkpoint(
    workflow_id: str,
    name: str,
    apply: bool = False,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    """Return a checkpoint's data; with ``apply=true`` the workflow graph is replaced by it."""
    row = _workflow(db, workflow_id, user, require_owner=apply)
    try:
        data = checkpoint_service.restore_checkpoint(db, row.id, name)
    except AppError as exc:
        raise http_error(exc)
    if apply:
        workflow_service.save_graph(
            db, row, data.get("nodes") or [], data.get("edges") or [], ai_summary=data.get("aiSummary") or {}
        )
    return data


@router.get("/{workflow_id}/checkpoints/{name}/export")
async def export_checkpoint(
    workflow_id: str,
    name: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Response:
    row = _workflow(db, workflow_id, user)
    try:
        document = checkpoint_service.export_checkpoint(db, row.id, name)
    except AppError as exc:
        raise http_error(exc)
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="checkpoint-{workflow_id}.json"'},
    )


@router.delete("/{workflow_id}/checkpoints/{name}")
async def delete_checkpoint(
    workflow_id: str,
    name: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    row = _workflow(db, workflow_id, user, require_owner=True)
    try:
        checkpoint_service.delete_checkpoint(db, row.id, name)
    except AppError as exc:
        raise http_error(exc)
    return {"success": True, "name": name}
