"""
Workflow API Routes
CRUD plus the graph operations on a workflow's nodes and edges.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sse_starlette.sse import EventSourceResponse

from climate_seal.api.dependencies import get_current_user, http_error
from climate_seal.core.exceptions import AppError
from climate_seal.database import SessionLocal, get_db
from climate_seal.schemas.workflow import (
    ActionRequest,
    FactorMatchRequest,
    GraphUpdate,
    LayoutRequest,
    TransportAutofillRequest,
    WorkflowCreate,
    WorkflowUpdate,
)
from climate_seal.services import workflow_service
from climate_seal.services.action_dispatcher import dispatch_action
from climate_seal.services.ai_summary import calculate_ai_summary
from climate_seal.services.carbon_calculator import summarize_by_stage
from climate_seal.services.factor_matching import FactorMatcher
from climate_seal.services.lca_validation import lca_modeling_recommendations, validate_lca_model

router = APIRouter()


async def _run_action(db: Session, workflow_id: str, user: Dict[str, Any], action: Dict[str, Any]) -> Dict[str, Any]:
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"], require_owner=True)
        outcome = await dispatch_action(workflow_service.serialize_workflow(row), action)
    except AppError as exc:
        raise http_error(exc)
    workflow = workflow_service.save_graph(db, row, outcome["nodes"], outcome["edges"], scene_info=outcome["sceneInfo"])
    return {"success": True, "result": outcome["result"], "workflow": workflow}


@router.get("/")
async def list_workflows(
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> List[Dict[str, Any]]:
    return workflow_service.list_workflows(db, user["id"])


@router.post("/")
async def create_workflow(
    payload: WorkflowCreate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return workflow_service.create_workflow(db, user["id"], payload.model_dump())
    except AppError as exc:
        raise http_error(exc)


@router.get("/{workflow_id}")
async def workflow_detail(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return workflow_service.get_workflow(db, workflow_id, user["id"])
    except AppError as exc:
        raise http_error(exc)


@router.patch("/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    payload: WorkflowUpdate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        return workflow_service.update_workflow(db, workflow_id, user["id"], payload.model_dump(exclude_none=True))
    except AppError as exc:
        raise http_error(exc)


@router.delete("/{workflow_id}")
async def delete_workflow(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        workflow_service.delete_workflow(db, workflow_id, user["id"])
    except AppError as exc:
        raise http_error(exc)
    return {"success": True, "id": workflow_id}


@router.put("/{workflow_id}/graph")
async def replace_graph(
    workflow_id: str,
    payload: GraphUpdate,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"], require_owner=True)
    except AppError as exc:
        raise http_error(exc)
    return workflow_service.save_graph(db, row, payload.nodes, payload.edges)


@router.post("/{workflow_id}/actions")
async def run_action(
    workflow_id: str,
    payload: ActionRequest,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    return await _run_action(db, workflow_id, user, payload.to_action())


@router.post("/{workflow_id}/calculate")
async def calculate(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    return await _run_action(db, workflow_id, user, {"operation": "calculate"})


@router.post("/{workflow_id}/layout")
async def layout(
    workflow_id: str,
    payload: LayoutRequest,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    return await _run_action(db, workflow_id, user, {"operation": "layout", "layoutType": payload.layout_type})


@router.get("/{workflow_id}/footprint")
async def footprint(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"])
    except AppError as exc:
        raise http_error(exc)
    return summarize_by_stage(row.nodes or [])


@router.get("/{workflow_id}/validation")
async def validation(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    """LCA model checks plus suggestions for lifecycle stages still missing."""
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"])
    except AppError as exc:
        raise http_error(exc)
    nodes = row.nodes or []
    report = validate_lca_model(nodes, row.edges or [])
    report["modelingRecommendations"] = lca_modeling_recommendations(nodes)
    return report


@router.post("/{workflow_id}/ai-summary")
async def ai_summary(
    workflow_id: str,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"], require_owner=True)
    except AppError as exc:
        raise http_error(exc)
    summary = calculate_ai_summary(row.nodes or [])
    workflow_service.save_graph(db, row, row.nodes or [], row.edges or [], ai_summary=summary)
    return summary


@router.post("/{workflow_id}/factor-match")
async def factor_match(
    workflow_id: str,
    payload: FactorMatchRequest,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    operation = "carbon_factor_match_with_ai" if payload.use_ai else "carbon_factor_match"
    return await _run_action(db, workflow_id, user, {"operation": operation, "nodeId": payload.node_ids})


@router.get("/{workflow_id}/factor-match/stream")
async def factor_match_stream(
    workflow_id: str,
    use_ai: bool = False,
    node_ids: str | None = None,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
):
    """Server-sent progress for a matching pass; the graph is saved when it completes."""
    try:
        row = workflow_service.get_workflow_row(db, workflow_id, user["id"], require_owner=True)
    except AppError as exc:
        raise http_error(exc)
    nodes = list(row.nodes or [])

    async def event_generator():
        matcher = FactorMatcher()
        try:
            async for event in matcher.iter_matches(nodes, node_ids, use_ai=use_ai):
                if event["event"] != "complete":
                    yield {"event": "progress", "data": json.dumps(event, ensure_ascii=False)}
                    continue
                session = SessionLocal()
                try:
                    fresh = workflow_service.get_workflow_row(session, workflow_id, user["id"], require_owner=True)
                    workflow_service.save_graph(session, fresh, event["nodes"], fresh.edges or [])
                finally:
                    session.close()
                yield {"event": "complete", "data": json.dumps(event["results"], ensure_ascii=False)}
        except AppError as exc:
            yield {"event": "error", "data": json.dumps({"error": str(exc)}, ensure_ascii=False)}

    return EventSourceResponse(event_generator())


@router.post("/{workflow_id}/transport-autofill")
async def transport_autofill(
    workflow_id: str,
    payload: TransportAutofillRequest,
    db: Session = Depends(get_db),
    user: Dict[str, Any] = Depends(get_current_user),
) -> Dict[str, Any]:
    return await _run_action(
        db, workflow_id, user, {"operation": "ai_autofill_transport_data", "nodeId": payload.node_ids}
    )
