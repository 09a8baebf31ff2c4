"""
AI summary report: completeness and credibility scores for an LCA graph.
"""
from __future__ import annotations

import math
from typing import Any, Dict, List, Optional

from climate_seal.services.lifecycle import (
    DISTRIBUTION,
    MANUFACTURING,
    NODE_TYPE_TO_STAGE,
    PRODUCT,
    STAGE_NODE_TYPES,
    resolve_node_type,
)
from climate_seal.services.number_utils import to_number

LIFECYCLE_STAGES: List[str] = [NODE_TYPE_TO_STAGE[node_type] for node_type in STAGE_NODE_TYPES]

# (field, label, numeric) checked per node type; numeric fields must be non-zero.
REQUIRED_FIELDS: Dict[str, List[tuple]] = {
    PRODUCT: [
        ("carbonFactor", "碳足迹因子", True),
        ("quantity", "数量", True),
    ],
    MANUFACTURING: [
        ("carbonFactor", "碳足迹因子", True),
        ("energyConsumption", "能源消耗", True),
        ("energyType", "能源类型", False),
    ],
    DISTRIBUTION: [
        ("carbonFactor", "碳足迹因子", True),
        ("distributionStartPoint", "分销起点", False),
        ("distributionEndPoint", "分销终点", False),
        ("transportationMode", "运输方式", False),
        ("transportationDistance", "运输距离", True),
    ],
}


def js_round(value: float) -> int:
    """Round half up, matching Math.round."""
    return int(math.floor(value + 0.5))


def _clamp_score(value: float) -> int:
    return js_round(max(0.0, min(100.0, value)))


def _label(node: Dict[str, Any]) -> str:
    return (node.get("data") or {}).get("label") or f"Node {node.get('id')}"


def _stage_of(data: Dict[str, Any]) -> Optional[str]:
    node_type = resolve_node_type(data.get("lifecycleStage"))
    return NODE_TYPE_TO_STAGE.get(node_type) if node_type else None


def _is_filled(value: Any, numeric: bool) -> bool:
    if not value:
        return False
    if numeric:
        number = to_number(value)
        # NaN is kept as filled, like Number(x) === 0 in the browser.
        return number != 0
    return True


def _incomplete(node: Dict[str, Any], missing: List[str]) -> Dict[str, Any]:
    return {"id": node.get("id"), "label": _label(node), "missingFields": missing}


def calculate_ai_summary(nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    nodes = [node for node in nodes if node.get("data")]

    existing = {_stage_of(node["data"]) for node in nodes}
    missing_stages = [stage for stage in LIFECYCLE_STAGES if stage not in existing]
    lifecycle_score = (len(LIFECYCLE_STAGES) - len(missing_stages)) / len(LIFECYCLE_STAGES) * 100

    total_fields = 0
    completed_fields = 0
    completeness_gaps: List[Dict[str, Any]] = []
    for node in nodes:
        data = node["data"]
        node_type = resolve_node_type(data.get("lifecycleStage"))
        missing: List[str] = []
        for field, label, numeric in REQUIRED_FIELDS.get(node_type, []):
            total_fields += 1
            if _is_filled(data.get(field), numeric):
                completed_fields += 1
            else:
                missing.append(label)
        if missing:
            completeness_gaps.append(_incomplete(node, missing))

    node_score = js_round(completed_fields / total_fields * 100) if total_fields else 0
    model_score = js_round(0.25 * node_score + 0.75 * lifecycle_score)

    input_mass = 0.0
    output_mass = 0.0
    mass_gaps: List[Dict[str, Any]] = []
    for node in nodes:
        if node.get("type") != PRODUCT:
            continue
        data = node["data"]
        quantity = to_number(data.get("quantity"))
        if math.isnan(quantity):
            quantity = 0.0
        if quantity == 0:
            mass_gaps.append(_incomplete(node, ["数量"]))
        if isinstance(data.get("finalProductName"), str) and data["finalProductName"]:
            output_mass += quantity
        else:
            input_mass += quantity
    mass_score = min(100, js_round(output_mass / input_mass * 100)) if input_mass > 0 else 0

    traceable = 0
    trace_gaps: List[Dict[str, Any]] = []
    verified = 0
    validation_gaps: List[Dict[str, Any]] = []
    for node in nodes:
        data = node["data"]
        evidence = data.get("evidenceFiles") or []
        factor = to_number(data.get("carbonFactor")) if data.get("carbonFactor") else 0.0
        if evidence or factor > 0:
            traceable += 1
        else:
            trace_gaps.append(_incomplete(node, ["上传证据文件或配置数据库来源"]))
        if any(isinstance(item, dict) and item.get("status") == "verified" for item in evidence):
            verified += 1
        else:
            validation_gaps.append(_incomplete(node, ["上传已验证的证据文件"]))

    traceability_score = traceable / len(nodes) * 100 if nodes else 0
    validation_score = js_round(verified / len(nodes) * 100) if nodes else 0

    lifecycle_100 = _clamp_score(lifecycle_score)
    node_100 = _clamp_score(node_score)
    mass_100 = _clamp_score(mass_score)
    traceability_100 = _clamp_score(traceability_score)
    validation_100 = _clamp_score(validation_score)

    credibility = js_round(
        0.1 * lifecycle_100
        + 0.3 * node_100
        + 0.1 * mass_100
        + 0.35 * traceability_100
        + 0.15 * validation_100
    )

    return {
        "credibilityScore": credibility,
        "missingLifecycleStages": missing_stages,
        "modelCompleteness": {
            "score": model_score,
            "lifecycleCompleteness": lifecycle_score,
            "nodeCompleteness": node_score,
            "incompleteNodes": completeness_gaps,
        },
        "massBalance": {
            "score": mass_100,
            "ratio": output_mass / input_mass if input_mass > 0 else 0,
            "incompleteNodes": mass_gaps,
        },
        "dataTraceability": {
            "score": traceability_100,
            "coverage": traceability_100,
            "incompleteNodes": trace_gaps,
        },
        "validation": {
            "score": validation_100,
            "consistency": validation_100,
            "incompleteNodes": validation_gaps,
        },
    }
