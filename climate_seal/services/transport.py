"""Applies LLM transport suggestions to distribution nodes."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from climate_seal.agents.transport_autofill import TransportAutofillAgent
from climate_seal.services.factor_matching import has_carbon_factor, split_node_ids
from climate_seal.services.lifecycle import DISTRIBUTION
from climate_seal.services.number_utils import number_to_str

logger = logging.getLogger(__name__)


def is_transport_node(node: Dict[str, Any]) -> bool:
    data = node.get("data") or {}
    return node.get("type") == DISTRIBUTION or "运输" in str(data.get("emissionType") or "")


def build_transport_requests(nodes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    requests = []
    for node in nodes:
        data = node.get("data") or {}
        requests.append(
            {
                "nodeId": node.get("id"),
                "startPoint": data.get("distributionStartPoint") or data.get("startPoint") or "",
                "endPoint": data.get("distributionEndPoint") or data.get("endPoint") or "",
                "name": data.get("label") or "",
            }
        )
    return requests


def apply_transport_autofill(
    nodes: List[Dict[str, Any]], items: List[Dict[str, Any]]
) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Return the updated nodes and the ids that received a suggestion."""
    by_id = {item["nodeId"]: item for item in items if item.get("nodeId")}
    updated_ids: List[str] = []
    result = []
    for node in nodes:
        item = by_id.get(node.get("id"))
        if item is None or not is_transport_node(node):
            result.append(node)
            continue

        data = dict(node.get("data") or {})
        data["transportationMode"] = item["transportType"]
        data["transportationDistance"] = item["distance"]
        data["distanceUnit"] = item["distanceUnit"]
        data["activityData_aiGenerated"] = True
        if item.get("notes"):
            data["aiRecommendation"] = item["notes"]
        factor = item.get("emissionFactor")
        if isinstance(factor, (int, float)) and not isinstance(factor, bool) and not has_carbon_factor(data):
            data["carbonFactor"] = number_to_str(float(factor))
            data["carbonFactor_aiGenerated"] = True

        result.append({**node, "data": data})
        updated_ids.append(node["id"])
    return result, updated_ids


async def autofill_transport(
    nodes: List[Dict[str, Any]],
    node_ids: Union[str, Sequence[str], None] = None,
    agent: Optional[TransportAutofillAgent] = None,
) -> Dict[str, Any]:
    ids = split_node_ids(node_ids)
    targets = [
        node
        for node in nodes
        if is_transport_node(node) and (ids is None or node.get("id") in ids)
    ]
    if not targets:
        return {"nodes": nodes, "updated": [], "items": []}

    agent = agent or TransportAutofillAgent()
    response = await agent.execute(nodes=build_transport_requests(targets))
    items = response["data"]
    updated_nodes, updated_ids = apply_transport_autofill(nodes, items)
    logger.info(f"Transport autofill updated {len(updated_ids)} of {len(targets)} nodes")
    return {"nodes": updated_nodes, "updated": updated_ids, "items": items}
