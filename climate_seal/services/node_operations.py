"""
Create, update, delete and connect nodes on a workflow graph.

Content for these operations usually comes from an LLM or a parsed file, so it
may be a dict or a JSON string (sometimes cut off mid-property).
"""
from __future__ import annotations

import json
import logging
import re
import secrets
import time
from typing import Any, Dict, List, Optional, Tuple

from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.services.lifecycle import (
    DISPOSAL,
    DISTRIBUTION,
    FINAL_PRODUCT,
    MANUFACTURING,
    PRODUCT,
    USAGE,
    resolve_node_type,
)
from climate_seal.services.number_utils import number_to_str, to_number

logger = logging.getLogger(__name__)

Node = Dict[str, Any]
Edge = Dict[str, Any]

COMMON_FIELDS: List[Tuple[str, Any]] = [
    ("emissionType", "unknown"),
    ("quantity", ""),
    ("activityUnit", ""),
    ("carbonFactor", "0"),
    ("activitydataSource", "unknown"),
    ("activityScore", 0),
    ("carbonFootprint", "0"),
    ("verificationStatus", "pending"),
    ("dataSources", None),
]

STAGE_FIELDS: Dict[str, List[Tuple[str, Any]]] = {
    PRODUCT: [
        ("carbonFactorName", ""),
        ("unitConversion", "0"),
        ("carbonFactordataSource", ""),
        ("material", ""),
        ("weight_per_unit", ""),
        ("isRecycled", False),
        ("recycledContent", ""),
        ("recycledContentPercentage", 0),
        ("sourcingRegion", ""),
        ("SourceLocation", ""),
        ("Destination", ""),
        ("SupplierName", ""),
        ("SupplierAddress", ""),
        ("ProcessingPlantAddress", ""),
        ("RefrigeratedTransport", False),
        ("weight", 0),
        ("supplier", ""),
        ("certaintyPercentage", 0),
    ],
    MANUFACTURING: [
        ("ElectricityAccountingMethod", ""),
        ("ElectricityAllocationMethod", ""),
        ("EnergyConsumptionMethodology", ""),
        ("EnergyConsumptionAllocationMethod", ""),
        ("energyConsumption", 0),
        ("energyType", ""),
        ("chemicalsMaterial", ""),
        ("MaterialAllocationMethod", ""),
        ("WaterUseMethodology", ""),
        ("WaterAllocationMethod", ""),
        ("waterConsumption", 0),
        ("packagingMaterial", ""),
        ("direct_emission", ""),
        ("WasteGasTreatment", ""),
        ("WasteDisposalMethod", ""),
        ("WastewaterTreatment", ""),
        ("productionMethod", ""),
        ("processEfficiency", 0),
        ("wasteGeneration", 0),
        ("recycledMaterialPercentage", 0),
        ("productionCapacity", 0),
        ("machineUtilization", 0),
        ("qualityDefectRate", 0),
        ("processTechnology", ""),
        ("manufacturingStandard", ""),
        ("automationLevel", ""),
        ("manufacturingLocation", ""),
        ("byproducts", ""),
        ("emissionControlMeasures", ""),
        ("productionMethodDataSource", ""),
        ("productionMethodVerificationStatus", ""),
        ("productionMethodApplicableStandard", ""),
        ("productionMethodCompletionStatus", ""),
    ],
    DISTRIBUTION: [
        ("transportationMode", ""),
        ("transportationDistance", 0),
        ("startPoint", ""),
        ("endPoint", ""),
        ("vehicleType", ""),
        ("fuelType", ""),
        ("fuelEfficiency", 0),
        ("loadFactor", 0),
        ("refrigeration", False),
        ("packagingMaterial", ""),
        ("packagingWeight", 0),
        ("warehouseEnergy", 0),
        ("storageTime", 0),
        ("storageConditions", ""),
        ("distributionNetwork", ""),
        ("aiRecommendation", ""),
        ("returnLogistics", False),
        ("packagingRecyclability", 0),
        ("lastMileDelivery", ""),
        ("distributionMode", ""),
        ("distributionDistance", 0),
        ("distributionStartPoint", ""),
        ("distributionEndPoint", ""),
        ("distributionTransportationMode", ""),
        ("distributionTransportationDistance", 0),
    ],
    USAGE: [
        ("lifespan", 0),
        ("energyConsumptionPerUse", 0),
        ("waterConsumptionPerUse", 0),
        ("consumablesUsed", ""),
        ("consumablesWeight", 0),
        ("usageFrequency", 0),
        ("maintenanceFrequency", 0),
        ("repairRate", 0),
        ("userBehaviorImpact", 0),
        ("efficiencyDegradation", 0),
        ("standbyEnergyConsumption", 0),
        ("usageLocation", ""),
        ("usagePattern", ""),
        ("userInstructions", ""),
        ("upgradeability", 0),
        ("secondHandMarket", False),
    ],
    DISPOSAL: [
        ("recyclingRate", 0),
        ("landfillPercentage", 0),
        ("incinerationPercentage", 0),
        ("compostPercentage", 0),
        ("reusePercentage", 0),
        ("hazardousWasteContent", 0),
        ("biodegradability", 0),
        ("disposalEnergyRecovery", 0),
        ("transportToDisposal", 0),
        ("disposalMethod", ""),
        ("endOfLifeTreatment", ""),
        ("recyclingEfficiency", 0),
        ("dismantlingDifficulty", ""),
        ("wasteRegulations", ""),
        ("takeback", False),
        ("circularEconomyPotential", 0),
    ],
    FINAL_PRODUCT: [
        ("totalCarbonFootprint", 0),
        ("certificationStatus", "pending"),
        ("environmentalImpact", ""),
        ("sustainabilityScore", 0),
        ("productCategory", ""),
        ("marketSegment", ""),
        ("marketCategory", ""),
        ("targetRegion", ""),
        ("complianceStatus", "pending"),
        ("carbonLabel", ""),
    ],
}

FINAL_PRODUCT_OVERRIDES = {"emissionType": "total", "activitydataSource": "calculated"}


def safe_get(source: Optional[Dict[str, Any]], key: str, default: Any) -> Any:
    """Read ``key`` from ``source``, coercing to the default's type when it is numeric or boolean."""
    if not isinstance(source, dict) or source.get(key) is None:
        return default
    value = source[key]
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        return str(value).lower() == "true" or value == 1
    if isinstance(default, (int, float)):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value
        number = to_number(value)
        return default if number != number else number
    return value


def _as_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_to_str(float(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def _coerce(value: Any, default: Any) -> Any:
    if default is None:
        return value
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, (int, float)):
        number = to_number(value)
        if number != number:
            return 0
        return int(number) if float(number).is_integer() else number
    return _as_text(value)


def repair_incomplete_json(text: str) -> str:
    """Cut a truncated JSON object back to its last complete property and close it."""
    trimmed = text.strip()
    if trimmed.endswith("}"):
        return trimmed

    last_comma = trimmed.rfind(",")
    last_colon = trimmed.rfind(":")
    if last_colon > last_comma:
        if last_comma != -1:
            return trimmed[:last_comma] + "}"
        first_comma = trimmed.find(",")
        if first_comma != -1:
            return trimmed[:first_comma] + "}"
    return trimmed + "}"


def extract_basic_info(text: str) -> Dict[str, Any]:
    """Salvage the handful of fields a transport node needs from unparseable content."""

    def grab(key: str, default: str) -> str:
        match = re.search(rf'"{key}":\s*"([^"]*)"', text)
        return match.group(1) if match and match.group(1) else default

    distance = re.search(r'"transportationDistance":\s*(\d+)', text)
    return {
        "nodeId": grab("nodeId", ""),
        "label": grab("label", "解析失败的节点"),
        "lifecycleStage": grab("lifecycleStage", "分销运输阶段"),
        "emissionType": grab("emissionType", "分销运输"),
        "transportationMode": grab("transportationMode", ""),
        "transportationDistance": int(distance.group(1)) if distance else 0,
    }


def parse_content(content: Any) -> Dict[str, Any]:
    """Parse node content from a dict or a possibly truncated JSON string."""
    if isinstance(content, dict):
        return content
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("Node content is required")
    try:
        parsed = json.loads(repair_incomplete_json(content))
    except json.JSONDecodeError as exc:
        logger.warning(f"Node content is not valid JSON ({exc}), extracting basic fields")
        return extract_basic_info(content)
    if not isinstance(parsed, dict):
        raise ValidationError("Node content must be a JSON object")
    return parsed


def _position_from(input_data: Dict[str, Any]) -> Optional[Dict[str, float]]:
    def is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    if is_number(input_data.get("positionX")) and is_number(input_data.get("positionY")):
        return {"x": input_data["positionX"], "y": input_data["positionY"]}
    position = input_data.get("position")
    if isinstance(position, dict) and is_number(position.get("x")) and is_number(position.get("y")):
        return {"x": position["x"], "y": position["y"]}
    return None


def generate_node_id(stage: str) -> str:
    return f"{stage}-{int(time.time() * 1000)}-{secrets.token_hex(3)}"


def build_node(input_data: Dict[str, Any], workflow_id: str) -> Node:
    """Build a node dict with the full field set for its lifecycle stage."""
    stage = input_data.get("lifecycleStage")
    node_type = resolve_node_type(stage)
    if node_type is None:
        raise ValidationError(f"Unknown lifecycle stage '{stage}'")

    node_id = str(input_data.get("nodeId") or generate_node_id(str(stage)))
    default_label = f"{stage}_{node_id}"

    data: Dict[str, Any] = {
        "id": node_id,
        "workflowId": str(input_data.get("workflowId") or workflow_id),
        "label": _as_text(safe_get(input_data, "label", default_label)),
        "nodeId": _as_text(safe_get(input_data, "nodeId", node_id)),
        "lifecycleStage": _as_text(safe_get(input_data, "lifecycleStage", "unknown")),
        "nodeType": node_type,
    }
    for key, default in COMMON_FIELDS + STAGE_FIELDS[node_type]:
        if node_type == FINAL_PRODUCT and key in FINAL_PRODUCT_OVERRIDES:
            default = FINAL_PRODUCT_OVERRIDES[key]
        value = safe_get(input_data, key, default)
        if default is None and value is None:
            continue
        data[key] = _coerce(value, default)
    if node_type == FINAL_PRODUCT:
        data["finalProductName"] = _as_text(safe_get(input_data, "finalProductName", data["label"]))
    data["parse_from_file_name"] = _as_text(safe_get(input_data, "parse_from_file_name", ""))

    return {
        "id": node_id,
        "type": node_type,
        "position": _position_from(input_data) or {"x": 100, "y": 100},
        "data": data,
    }


def find_node_index(nodes: List[Node], key: str, *, match_label: bool = False) -> int:
    """Index of the node whose id, label (optionally) or data.nodeId equals ``key``; -1 when absent."""
    for index, node in enumerate(nodes):
        if node.get("id") == key:
            return index
    if match_label:
        for index, node in enumerate(nodes):
            if (node.get("data") or {}).get("label") == key:
                return index
    for index, node in enumerate(nodes):
        if (node.get("data") or {}).get("nodeId") == key:
            return index
    return -1


def create_node(nodes: List[Node], content: Any, workflow_id: str) -> Tuple[List[Node], Optional[Node]]:
    """Append a node built from ``content``. An id that already exists is skipped and None returned."""
    input_data = parse_content(content)
    node = build_node(input_data, workflow_id)
    if any(existing.get("id") == node["id"] for existing in nodes):
        logger.warning(f"Node with ID {node['id']} already exists. Skipping creation.")
        return list(nodes), None
    logger.info(f"Created node {node['id']} ({node['data']['label']})")
    return list(nodes) + [node], node


def update_node(nodes: List[Node], content: Any) -> Tuple[List[Node], Node]:
    """Merge ``content`` into the data of the node it names by id, label or nodeId."""
    if isinstance(content, str):
        try:
            input_data = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Update content is not valid JSON: {exc}") from exc
    else:
        input_data = content
    if not isinstance(input_data, dict):
        raise ValidationError("Update content must be a JSON object")

    key = input_data.get("nodeId")
    if not key:
        raise ValidationError("Update content is missing nodeId")

    index = find_node_index(nodes, str(key), match_label=True)
    if index == -1:
        raise NotFoundError(f"Node '{key}' not found")

    old = nodes[index]
    updated = {
        **old,
        "data": {**(old.get("data") or {}), **input_data},
        "position": _position_from(input_data) or old.get("position") or {"x": 100, "y": 100},
    }
    result = list(nodes)
    result[index] = updated
    return result, updated


def delete_node(nodes: List[Node], edges: List[Edge], node_key: str) -> Tuple[List[Node], List[Edge]]:
    """Remove the node matched by id or data.nodeId along with every edge touching it."""
    if not node_key:
        raise ValidationError("nodeId is required")
    index = find_node_index(nodes, node_key)
    if index == -1:
        raise NotFoundError(f"Node '{node_key}' not found")
    node_id = nodes[index]["id"]
    remaining_nodes = [n for n in nodes if n.get("id") != node_id]
    remaining_edges = [e for e in edges if e.get("source") != node_id and e.get("target") != node_id]
    logger.info(f"Deleted node {node_id} and {len(edges) - len(remaining_edges)} edges")
    return remaining_nodes, remaining_edges


def connect_nodes(
    nodes: List[Node], edges: List[Edge], source: str, target: str, content: Any = None
) -> Tuple[List[Edge], Edge]:
    if not source or not target:
        raise ValidationError("source and target are required")

    source_index = find_node_index(nodes, source)
    target_index = find_node_index(nodes, target)
    if source_index == -1 or target_index == -1:
        raise NotFoundError(f"Source or target node not found: {source}, {target}")

    edge_data: Dict[str, Any] = {}
    if isinstance(content, dict):
        edge_data = content
    elif isinstance(content, str) and content.strip():
        try:
            parsed = json.loads(content)
            edge_data = parsed if isinstance(parsed, dict) else {}
        except json.JSONDecodeError:
            edge_data = {}

    source_id = nodes[source_index]["id"]
    target_id = nodes[target_index]["id"]
    edge = {
        "id": f"e-{source_id}-{target_id}-{int(time.time() * 1000)}",
        "source": source_id,
        "target": target_id,
        "label": edge_data.get("label") or "",
        "data": edge_data,
    }
    return list(edges) + [edge], edge
