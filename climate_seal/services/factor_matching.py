"""
Emission-factor matching for workflow nodes.

Nodes without a carbon factor are looked up against the Climateseal match API.
The AI variant rewrites the query first and lets an LLM pick among more
candidates.
"""
from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Union

from climate_seal.agents.result_reranker import ResultRerankerAgent
from climate_seal.agents.search_optimizer import SearchOptimizerAgent
from climate_seal.core.exceptions import AppError
from climate_seal.integrations.climateseal import ClimatesealClient
from climate_seal.services.number_utils import number_to_str, parse_float

logger = logging.getLogger(__name__)

MATCH_SUCCESS = "AI匹配成功"
MATCH_FAILED = "AI匹配失败"


def split_node_ids(node_ids: Union[str, Sequence[str], None]) -> Optional[List[str]]:
    if node_ids is None:
        return None
    if isinstance(node_ids, str):
        parts = node_ids.split(",")
    else:
        parts = list(node_ids)
    ids = [str(part).strip() for part in parts if str(part).strip()]
    return ids or None


def has_carbon_factor(data: Dict[str, Any]) -> bool:
    """A blank or zero factor needs matching; anything else, even junk text, is kept."""
    value = data.get("carbonFactor")
    if value in (None, "", 0, False):
        return False
    return parse_float(value) != 0


def _context_data(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "material": data.get("material"),
        "weight": data.get("weight"),
        "energyType": data.get("energyType"),
        "transportationMode": data.get("transportationMode"),
    }


def apply_factor(data: Dict[str, Any], match: Dict[str, Any]) -> Dict[str, Any]:
    factor = match.get("factor")
    if isinstance(factor, (int, float)) and not isinstance(factor, bool):
        factor_text = number_to_str(float(factor))
    else:
        factor_text = str(factor)
    return {
        **data,
        "carbonFactor": factor_text,
        "carbonFactorName": match.get("activityName") or "Unknown Activity",
        "carbonFactorUnit": match.get("unit") or "unit",
        "emissionFactorGeographicalRepresentativeness": match.get("geography"),
        "activityUUID": match.get("activityUUID"),
        "carbonFactordataSource": match.get("dataSource"),
        "emissionFactorTemporalRepresentativeness": match.get("importDate"),
    }


class FactorMatcher:
    """Runs one matching pass over a node list, reporting progress per node."""

    def __init__(
        self,
        client: Optional[ClimatesealClient] = None,
        optimizer: Optional[SearchOptimizerAgent] = None,
        reranker: Optional[ResultRerankerAgent] = None,
    ):
        self.client = client
        self.optimizer = optimizer
        self.reranker = reranker

    async def _best_match(self, node: Dict[str, Any], use_ai: bool) -> Optional[Dict[str, Any]]:
        data = node.get("data") or {}
        label = str(data.get("label") or "").strip()
        if not label:
            return None

        if not use_ai:
            candidates = await self.client.match([label, str(node.get("type") or "")], top_k=3, min_score=0.3)
            return candidates[0] if candidates else None

        node_info = {
            "nodeLabel": label,
            "nodeType": node.get("type"),
            "lifecycleStage": data.get("lifecycleStage"),
            "emissionType": data.get("emissionType"),
            "contextData": _context_data(data),
        }
        optimization = await self.optimizer.optimize(node_info)
        query = optimization.get("optimizedQuery") or label
        candidates = await self.client.match([query], top_k=5, min_score=0.2)
        if not candidates:
            return None
        ranking = await self.reranker.rerank({**node_info, "candidates": candidates})
        return ranking.get("bestMatch") or None

    async def iter_matches(
        self,
        nodes: List[Dict[str, Any]],
        node_ids: Union[str, Sequence[str], None] = None,
        use_ai: bool = False,
    ) -> AsyncIterator[Dict[str, Any]]:
        """
        Yield a ``progress`` event per processed node, then one ``complete``
        event carrying the updated nodes and ``{success, failed, logs}``.
        """
        results: Dict[str, List[str]] = {"success": [], "failed": [], "logs": []}
        ids = split_node_ids(node_ids)

        if ids is None:
            to_process = list(nodes)
        else:
            by_id = {node.get("id"): node for node in nodes}
            to_process = []
            for node_id in ids:
                if node_id in by_id:
                    to_process.append(by_id[node_id])
                else:
                    results["logs"].append(f'未找到ID为 "{node_id}" 的节点')

        owns_client = self.client is None
        if owns_client:
            self.client = ClimatesealClient()
        if use_ai:
            self.optimizer = self.optimizer or SearchOptimizerAgent()
            self.reranker = self.reranker or ResultRerankerAgent()

        updates: Dict[str, Dict[str, Any]] = {}
        try:
            for index, node in enumerate(to_process, start=1):
                data = node.get("data") or {}
                name = data.get("label") or node.get("id")

                if has_carbon_factor(data):
                    message = f'跳过节点 "{name}"，因为它已经有碳因子: {data.get("carbonFactor")}'
                    status = "skipped"
                else:
                    try:
                        match = await self._best_match(node, use_ai)
                    except AppError as exc:
                        match = None
                        message = f'处理节点 "{name}" 时发生错误: {exc}'
                    else:
                        message = (
                            f'节点 "{name}" 匹配成功，碳因子: {match.get("factor")}'
                            if match
                            else f'节点 "{name}" 无法匹配到碳因子'
                        )

                    if match:
                        status = "success"
                        new_data = apply_factor(data, match)
                        results["success"].append(node["id"])
                    else:
                        status = "failed"
                        new_data = dict(data)
                        results["failed"].append(node["id"])
                    if use_ai:
                        new_data["factorMatchStatus"] = MATCH_SUCCESS if match else MATCH_FAILED
                    updates[node["id"]] = new_data

                results["logs"].append(message)
                yield {
                    "event": "progress",
                    "nodeId": node.get("id"),
                    "status": status,
                    "message": message,
                    "current": index,
                    "total": len(to_process),
                }
        finally:
            if owns_client:
                await self.client.aclose()
                self.client = None

        matched = len(results["success"])
        if matched:
            results["logs"].append(f"{matched} 个节点的碳因子已更新。")
        updated_nodes = [
            {**node, "data": updates[node["id"]]} if node.get("id") in updates else node for node in nodes
        ]
        logger.info(
            f"Factor matching (ai={use_ai}): {matched} matched, {len(results['failed'])} failed"
        )
        yield {"event": "complete", "nodes": updated_nodes, "results": results}


async def match_carbon_factors(
    nodes: List[Dict[str, Any]],
    node_ids: Union[str, Sequence[str], None] = None,
    use_ai: bool = False,
    matcher: Optional[FactorMatcher] = None,
) -> Dict[str, Any]:
    """Run a full matching pass and return ``{"nodes": [...], "results": {...}}``."""
    matcher = matcher or FactorMatcher()
    final: Dict[str, Any] = {"nodes": list(nodes), "results": {"success": [], "failed": [], "logs": []}}
    async for event in matcher.iter_matches(nodes, node_ids, use_ai):
        if event["event"] == "complete":
            final = {"nodes": event["nodes"], "results": event["results"]}
    return final
