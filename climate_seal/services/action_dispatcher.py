"""
Runs a single graph action against a workflow's nodes and edges.

An action is a dict such as ``{"operation": "create", "content": {...}}``.
``dispatch_action`` never touches the database: it takes the workflow as a
plain dict and returns the new graph plus an operation-specific result.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

from climate_seal.agents.csv_parser import CsvParserAgent
from climate_seal.core.exceptions import ValidationError
from climate_seal.services import node_operations
from climate_seal.services.carbon_calculator import recalculate_nodes, summarize_by_stage
from climate_seal.services.factor_matching import FactorMatcher, match_carbon_factors
from climate_seal.services.graph_layout import apply_layout
from climate_seal.services.transport import autofill_transport

logger = logging.getLogger(__name__)

Handler = Callable[[Dict[str, Any], Dict[str, Any], Dict[str, Any]], Awaitable[Dict[str, Any]]]


def _graph(workflow: Dict[str, Any], nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]], result: Any) -> Dict[str, Any]:
    return {"nodes": nodes, "edges": edges, "sceneInfo": workflow.get("sceneInfo") or {}, "result": result}


def _content_dict(content: Any) -> Dict[str, Any]:
    if isinstance(content, dict):
        return content
    if isinstance(content, str) and content.strip():
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


async def _create(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    content = action.get("content") if action.get("content") is not None else action.get("data")
    nodes, node = node_operations.create_node(workflow["nodes"], content, str(workflow["id"]))
    return _graph(workflow, nodes, workflow["edges"], {"node": node, "created": node is not None})


async def _update(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    content = action.get("content") if action.get("content") is not None else action.get("data")
    content = _content_dict(content) or content
    if isinstance(content, dict) and not content.get("nodeId") and action.get("nodeId"):
        content = {**content, "nodeId": action["nodeId"]}
    nodes, node = node_operations.update_node(workflow["nodes"], content)
    return _graph(workflow, nodes, workflow["edges"], {"node": node})


async def _delete(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    nodes, edges = node_operations.delete_node(workflow["nodes"], workflow["edges"], action.get("nodeId") or "")
    return _graph(workflow, nodes, edges, {"deleted": action.get("nodeId")})


async def _connect(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    edges, edge = node_operations.connect_nodes(
        workflow["nodes"],
        workflow["edges"],
        action.get("source") or "",
        action.get("target") or "",
        action.get("content"),
    )
    return _graph(workflow, workflow["nodes"], edges, {"edge": edge})


async def _layout(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    layout_type = action.get("layoutType") or _content_dict(action.get("content")).get("layoutType") or "normal"
    nodes, edges = apply_layout(workflow["nodes"], workflow["edges"], layout_type)
    return _graph(workflow, nodes, edges, {"layoutType": layout_type})


async def _calculate(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    nodes = recalculate_nodes(workflow["nodes"])
    return _graph(workflow, nodes, workflow["edges"], summarize_by_stage(nodes))


def _factor_match(use_ai: bool) -> Handler:
    async def handler(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
        matcher: Optional[FactorMatcher] = deps.get("matcher")
        outcome = await match_carbon_factors(workflow["nodes"], action.get("nodeId"), use_ai=use_ai, matcher=matcher)
        return _graph(workflow, outcome["nodes"], workflow["edges"], outcome["results"])

    return handler


async def _autofill_transport(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    outcome = await autofill_transport(workflow["nodes"], action.get("nodeId"), agent=deps.get("transport_agent"))
    return _graph(workflow, outcome["nodes"], workflow["edges"], {"updated": outcome["updated"], "items": outcome["items"]})


async def _file_parser(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    csv_content = action.get("content") or action.get("data") or ""
    if not isinstance(csv_content, str):
        raise ValidationError("file_parser content must be CSV text")
    agent = deps.get("csv_parser") or CsvParserAgent()
    parsed = await agent.execute(csv_content=csv_content)

    nodes = list(workflow["nodes"])
    created: List[str] = []
    skipped: List[Dict[str, Any]] = []
    for row in parsed["data"]:
        data = dict(row["data"])
        if action.get("fileName"):
            data.setdefault("parse_from_file_name", action["fileName"])
        try:
            nodes, node = node_operations.create_node(nodes, data, str(workflow["id"]))
        except ValidationError as exc:
            skipped.append({"label": data.get("label"), "error": str(exc)})
            logger.warning(f"Skipping parsed row '{data.get('label')}': {exc}")
            continue
        if node is not None:
            created.append(node["id"])
    return _graph(workflow, nodes, workflow["edges"], {"created": created, "skipped": skipped})


async def _scene(workflow: Dict[str, Any], action: Dict[str, Any], deps: Dict[str, Any]) -> Dict[str, Any]:
    scene = _content_dict(action.get("content")) or _content_dict(action.get("data"))
    if not scene:
        raise ValidationError("scene content must be a JSON object")
    merged = {**(workflow.get("sceneInfo") or {}), **scene}
    return {"nodes": workflow["nodes"], "edges": workflow["edges"], "sceneInfo": merged, "result": {"sceneInfo": merged}}


OPERATIONS: Dict[str, Handler] = {
    "create": _create,
    "update": _update,
    "delete": _delete,
    "connect": _connect,
    "layout": _layout,
    "calculate": _calculate,
    "carbon_factor_match": _factor_match(False),
    "carbon_factor_match_with_ai": _factor_match(True),
    "ai_autofill_transport_data": _autofill_transport,
    "file_parser": _file_parser,
    "scene": _scene,
}


async def dispatch_action(
    workflow: Dict[str, Any],
    action: Dict[str, Any],
    *,
    matcher: Optional[FactorMatcher] = None,
    csv_parser: Optional[CsvParserAgent] = None,
    transport_agent: Any = None,
) -> Dict[str, Any]:
    """
    Apply ``action`` to ``workflow`` (``{id, nodes, edges, sceneInfo}``).

    Returns ``{nodes, edges, sceneInfo, result}``. Unknown operations raise
    ``ValidationError``; node lookups that fail raise ``NotFoundError``.
    The keyword arguments replace the default matcher and agents.
    """
    deps = {"matcher": matcher, "csv_parser": csv_parser, "transport_agent": transport_agent}
    operation = action.get("operation")
    handler = OPERATIONS.get(operation or "")
    if handler is None:
        raise ValidationError(f"Unsupported operation '{operation}'")

    workflow = {
        **workflow,
        "nodes": list(workflow.get("nodes") or []),
        "edges": list(workflow.get("edges") or []),
    }
    logger.info(f"Dispatching {operation} on workflow {workflow.get('id')}")
    return await handler(workflow, action, deps)
