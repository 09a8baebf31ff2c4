"""
Footprint recompute for a workflow graph.

Every node's footprint is ``carbonFactor * quantity * unitConversion``; final
product nodes carry the sum of everything else.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Dict, List

from climate_seal.services.lifecycle import FINAL_PRODUCT, NODE_TYPES
from climate_seal.services.number_utils import number_or, number_to_str, parse_float
from climate_seal.services.unit_conversion import get_conversion_factor

logger = logging.getLogger(__name__)


def node_footprint(node: Dict[str, Any]) -> float:
    """Parsed footprint of a node, 0 when blank or unparseable."""
    value = parse_float((node.get("data") or {}).get("carbonFootprint"))
    return 0.0 if math.isnan(value) else value


def calculate_node(data: Dict[str, Any]) -> Dict[str, str]:
    """Return the recomputed ``carbonFootprint`` and ``unitConversion`` strings for node data."""
    activity_unit = data.get("activityUnit")
    factor_unit = data.get("carbonFactorUnit")

    if activity_unit and factor_unit:
        unit_conversion = get_conversion_factor(str(activity_unit), str(factor_unit))
    else:
        unit_conversion = number_or(data.get("unitConversion"), 1.0)

    carbon_factor = number_or(data.get("carbonFactor"), 0.0)
    # A quantity of 0 counts as 1, the same as a missing one.
    quantity = number_or(data.get("quantity"), 1.0)

    return {
        "carbonFootprint": number_to_str(carbon_factor * quantity * unit_conversion),
        "unitConversion": number_to_str(unit_conversion),
    }


def recalculate_nodes(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Recompute every node's footprint, then roll the total up onto final product nodes."""
    updated: List[Dict[str, Any]] = []
    for node in nodes:
        data = dict(node.get("data") or {})
        # final products only carry the rolled-up total
        if node.get("type") != FINAL_PRODUCT:
            data.update(calculate_node(data))
        updated.append({**node, "data": data})

    total = sum(node_footprint(node) for node in updated if node.get("type") != FINAL_PRODUCT)
    for node in updated:
        if node.get("type") == FINAL_PRODUCT:
            node["data"]["totalCarbonFootprint"] = total
            node["data"]["carbonFootprint"] = number_to_str(total)

    logger.info(f"Recalculated {len(updated)} nodes, total footprint {total}")
    return updated


def summarize_by_stage(nodes: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Footprint totals per node type, excluding final products, plus the grand total."""
    by_stage: Dict[str, float] = {node_type: 0.0 for node_type in NODE_TYPES if node_type != FINAL_PRODUCT}
    counts: Dict[str, int] = {node_type: 0 for node_type in by_stage}
    for node in nodes:
        node_type = node.get("type") or "unknown"
        if node_type == FINAL_PRODUCT:
            continue
        by_stage.setdefault(node_type, 0.0)
        counts.setdefault(node_type, 0)
        by_stage[node_type] += node_footprint(node)
        counts[node_type] += 1

    total = sum(by_stage.values())
    return {
        "total": total,
        "unit": "kgCO2e",
        "stages": [
            {
                "type": node_type,
                "nodeCount": counts[node_type],
                "carbonFootprint": value,
                "share": (value / total) if total else 0.0,
            }
            for node_type, value in by_stage.items()
        ],
    }
