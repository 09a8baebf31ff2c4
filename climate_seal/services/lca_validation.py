"""
LCA model checks over a workflow graph.

``validate_lca_model`` reports errors (the model is unusable), warnings
(data is incomplete) and recommendations. ``isValid`` only looks at errors.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Dict, List, Optional, Set

from climate_seal.services.lifecycle import (
    DISPOSAL,
    DISTRIBUTION,
    FINAL_PRODUCT,
    MANUFACTURING,
    PRODUCT,
    USAGE,
)

logger = logging.getLogger(__name__)

Node = Dict[str, Any]
Edge = Dict[str, Any]
Issue = Dict[str, Any]

MAIN_PRODUCT_CATEGORY = "main"

# Material flows from lower layers towards the final product.
LIFECYCLE_LAYERS: Dict[str, int] = {
    DISPOSAL: 0,
    USAGE: 1,
    DISTRIBUTION: 2,
    MANUFACTURING: 3,
    PRODUCT: 4,
    FINAL_PRODUCT: 5,
}

EXPECTED_STAGES = [DISPOSAL, USAGE, DISTRIBUTION, MANUFACTURING, PRODUCT, FINAL_PRODUCT]


def _data(node: Node) -> Dict[str, Any]:
    return node.get("data") or {}


def _label(node: Node) -> str:
    return str(_data(node).get("label") or node.get("id") or "")


def node_type(node: Node) -> Optional[str]:
    return _data(node).get("nodeType") or node.get("type")


def is_main_product(node: Node) -> bool:
    data = _data(node)
    return bool(data.get("isMainProduct")) or data.get("productCategory") == MAIN_PRODUCT_CATEGORY


def _error(kind: str, message: str, node_id: Optional[str] = None) -> Issue:
    issue = {"type": kind, "message": message, "severity": "error"}
    if node_id is not None:
        issue["nodeId"] = node_id
    return issue


def _warning(kind: str, node_id: str, message: str) -> Issue:
    return {"type": kind, "nodeId": node_id, "message": message, "severity": "warning"}


def _recommendation(kind: str, message: str, action: str, node_id: Optional[str] = None) -> Issue:
    item = {"type": kind, "message": message, "action": action}
    if node_id is not None:
        item["nodeId"] = node_id
    return item


def _check_main_product(nodes: List[Node], errors: List[Issue]) -> None:
    main_products = [node for node in nodes if is_main_product(node)]
    if not main_products:
        errors.append(_error("no_main_product", "系统中必须指定一个主要产品（Main Product）"))
    elif len(main_products) > 1:
        for node in main_products:
            errors.append(
                _error(
                    "multiple_main_products",
                    f'节点"{_label(node)}"被标记为主要产品，但系统中只能有一个主要产品',
                    node.get("id"),
                )
            )


def _check_functional_unit(nodes: List[Node], warnings: List[Issue], recommendations: List[Issue]) -> None:
    main = next((node for node in nodes if is_main_product(node)), None)
    if main is None:
        return
    data = _data(main)
    if not data.get("functionalUnit"):
        warnings.append(
            _warning("missing_functional_unit", main.get("id"), f'主要产品"{_label(main)}"缺少功能单位定义')
        )
        recommendations.append(
            _recommendation(
                "add_functional_unit",
                '建议为主要产品添加功能单位，如"1台电脑"、"1kWh"等',
                "在节点属性中添加功能单位",
                main.get("id"),
            )
        )
    if not data.get("referenceFlow"):
        warnings.append(
            _warning("missing_reference_flow", main.get("id"), f'主要产品"{_label(main)}"缺少基准流定义')
        )


def _check_flow_direction(nodes: List[Node], edges: List[Edge], errors: List[Issue]) -> None:
    by_id = {node.get("id"): node for node in nodes}
    for edge in edges:
        source = by_id.get(edge.get("source"))
        target = by_id.get(edge.get("target"))
        if source is None or target is None:
            continue
        source_layer = LIFECYCLE_LAYERS.get(node_type(source) or "", -1)
        target_layer = LIFECYCLE_LAYERS.get(node_type(target) or "", -1)
        if source_layer >= 0 and target_layer >= 0 and source_layer >= target_layer:
            errors.append(
                _error(
                    "invalid_flow_direction",
                    f'从"{_label(source)}"到"{_label(target)}"的流向违反了生命周期阶段规则',
                )
            )


def _check_process_completeness(nodes: List[Node], warnings: List[Issue], recommendations: List[Issue]) -> None:
    for node in nodes:
        data = _data(node)
        node_id = node.get("id")
        process_info = data.get("processInfo")
        if not process_info:
            warnings.append(_warning("incomplete_process_info", node_id, f'节点"{_label(node)}"缺少过程信息'))

        inputs = data.get("inputs")
        outputs = data.get("outputs")
        if not inputs and not outputs:
            warnings.append(
                _warning("no_material_flows", node_id, f'节点"{_label(node)}"缺少输入输出物质流信息')
            )
            recommendations.append(
                _recommendation(
                    "complete_material_flows",
                    "建议完善节点的输入输出物质流信息",
                    "添加原材料、能源、产品等物质流",
                    node_id,
                )
            )

        if isinstance(outputs, list) and len(outputs) > 1 and not (process_info or {}).get("allocationMethod"):
            recommendations.append(
                _recommendation(
                    "add_allocation_method",
                    "多产品输出过程建议指定分配方法",
                    "选择经济分配、质量分配或能量分配方法",
                    node_id,
                )
            )


def find_cycle_start(nodes: List[Node], edges: List[Edge]) -> Optional[Node]:
    """Return the first node (in list order) whose traversal runs into a cycle."""
    adjacency: Dict[Any, List[Any]] = defaultdict(list)
    for edge in edges:
        adjacency[edge.get("source")].append(edge.get("target"))

    visited: Set[Any] = set()
    in_path: Set[Any] = set()

    def has_cycle(node_id: Any) -> bool:
        if node_id in in_path:
            return True
        if node_id in visited:
            return False
        visited.add(node_id)
        in_path.add(node_id)
        for target in adjacency.get(node_id, []):
            if has_cycle(target):
                return True
        in_path.discard(node_id)
        return False

    for node in nodes:
        if node.get("id") not in visited and has_cycle(node.get("id")):
            return node
    return None


def validate_lca_model(nodes: List[Node], edges: List[Edge]) -> Dict[str, Any]:
    errors: List[Issue] = []
    warnings: List[Issue] = []
    recommendations: List[Issue] = []

    _check_main_product(nodes, errors)
    _check_functional_unit(nodes, warnings, recommendations)
    _check_flow_direction(nodes, edges, errors)
    _check_process_completeness(nodes, warnings, recommendations)

    cycle_node = find_cycle_start(nodes, edges)
    if cycle_node is not None:
        errors.append(
            _error("circular_dependency", f'检测到包含节点"{_label(cycle_node)}"的循环依赖', cycle_node.get("id"))
        )

    logger.debug(
        f"LCA validation over {len(nodes)} nodes: {len(errors)} errors, {len(warnings)} warnings"
    )
    return {
        "isValid": not errors,
        "errors": errors,
        "warnings": warnings,
        "recommendations": recommendations,
    }


def lca_modeling_recommendations(nodes: List[Node]) -> List[Issue]:
    """Suggest a node for every lifecycle stage the graph does not cover yet."""
    present = {node_type(node) for node in nodes}
    return [
        _recommendation("add_lifecycle_stage", f"建议添加{stage}阶段的节点以完善生命周期分析", f"添加{stage}类型的节点")
        for stage in EXPECTED_STAGES
        if stage not in present
    ]
