"""
Node placement for workflow graphs.

Nodes are plain dicts ``{"id", "type", "position": {"x", "y"}, "data"}`` and
edges ``{"id", "source", "target", ...}``. Every layout returns new lists and
leaves its inputs untouched.
"""
from __future__ import annotations

import logging
import math
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from climate_seal.core.exceptions import ValidationError
from climate_seal.services.carbon_calculator import node_footprint
from climate_seal.services.lifecycle import FINAL_PRODUCT, STAGE_NODE_TYPES
from climate_seal.services.number_utils import number_to_str

logger = logging.getLogger(__name__)

Node = Dict[str, Any]
Edge = Dict[str, Any]

# Column layout towards a single final product
NODE_WIDTH = 250
NODE_HEIGHT = 150
HORIZONTAL_SPACING = 600
VERTICAL_SPACING = 650
PADDING = 400

# Layered footprint layout, final product on top
NODE_HIERARCHY: Dict[str, int] = {
    FINAL_PRODUCT: 0,
    "product": 1,
    "manufacturing": 2,
    "distribution": 3,
    "usage": 4,
    "disposal": 5,
}
UNKNOWN_LAYER = 6
LAYER_HEIGHT = 180
NODE_SPACING = 280
START_X = 100
START_Y = 100
EDGE_MIN_WIDTH = 2
EDGE_MAX_WIDTH = 8

LAYOUT_TYPES = ("normal", "hierarchical", "dependency", "circular", "grid")


def _copy_node(node: Node, **changes: Any) -> Node:
    copied = {**node, "data": dict(node.get("data") or {})}
    copied.update(changes)
    return copied


def default_final_product(node_id: str = "final-product-1", data_node_id: str = "final_product_1") -> Node:
    return {
        "id": node_id,
        "type": FINAL_PRODUCT,
        "position": {"x": 0, "y": 0},
        "data": {
            "label": "最终产品",
            "nodeId": data_node_id,
            "lifecycleStage": FINAL_PRODUCT,
            "emissionType": "total",
            "activityScore": 0,
            "carbonFactor": "0",
            "activitydataSource": "calculated",
            "carbonFootprint": "0",
            "verificationStatus": "pending",
            "completionStatus": "incomplete",
            "carbonFactorName": "",
            "unitConversion": "1",
            "finalProductName": "最终产品",
            "totalCarbonFootprint": 0,
            "certificationStatus": "pending",
            "environmentalImpact": "待评估",
            "sustainabilityScore": 0,
            "productCategory": "未分类",
            "marketSegment": "未指定",
            "targetRegion": "未指定",
            "complianceStatus": "未验证",
            "carbonLabel": "待认证",
            "nodeType": FINAL_PRODUCT,
            "quantity": "0",
        },
    }


def final_product_layout(nodes: List[Node]) -> Tuple[List[Node], List[Edge]]:
    """
    Lay stage nodes out in one column per type and hang a single final product
    node below them, wired to every other node.

    Existing edges are replaced. The final product's footprint becomes the sum
    of its children's footprints. Unknown node types get a trailing column.
    """
    if not nodes:
        return [], []

    column_order = list(STAGE_NODE_TYPES)
    by_type: Dict[str, List[Node]] = defaultdict(list)
    for node in nodes:
        node_type = node.get("type") or "unknown"
        if node_type != FINAL_PRODUCT and node_type not in column_order:
            column_order.append(node_type)
        by_type[node_type].append(node)

    finals = by_type.get(FINAL_PRODUCT) or []
    final_node = finals[0] if finals else default_final_product()
    # only the first final product is wired up; the rest keep their position
    extra_finals = [_copy_node(n) for n in finals[1:]]

    positioned: List[Node] = []
    rows: Dict[str, int] = defaultdict(int)
    for node in nodes:
        node_type = node.get("type") or "unknown"
        if node_type == FINAL_PRODUCT:
            continue
        column = column_order.index(node_type)
        row = rows[node_type]
        rows[node_type] += 1
        positioned.append(
            _copy_node(
                node,
                position={
                    "x": PADDING + column * HORIZONTAL_SPACING,
                    "y": PADDING + row * VERTICAL_SPACING,
                },
                style={"width": NODE_WIDTH, "height": NODE_HEIGHT},
            )
        )

    max_x = max((n["position"]["x"] for n in positioned), default=PADDING)
    max_y = max((n["position"]["y"] for n in positioned), default=PADDING)

    edges: List[Edge] = []
    total = 0.0
    for node in positioned:
        edges.append(
            {
                "id": f"edge-{node['id']}-{final_node['id']}",
                "source": node["id"],
                "target": final_node["id"],
                "type": "smoothstep",
                "animated": True,
            }
        )
        total += node_footprint(node)

    final = _copy_node(final_node, position={"x": max_x / 2, "y": max_y + VERTICAL_SPACING})
    final["data"]["totalCarbonFootprint"] = total
    final["data"]["carbonFootprint"] = number_to_str(total)

    logger.info(f"Column layout placed {len(positioned)} nodes around final product {final['id']}")
    return positioned + [final] + extra_finals, edges


def _edge_width(source: Node, target: Node, footprints: List[float]) -> float:
    weight = max(node_footprint(source), node_footprint(target))
    max_fp = max(footprints + [1.0])
    min_fp = min([fp for fp in footprints if fp > 0] + [0.0])
    if max_fp == min_fp:
        return float(EDGE_MIN_WIDTH)
    normalized = (weight - min_fp) / (max_fp - min_fp)
    return EDGE_MIN_WIDTH + normalized * (EDGE_MAX_WIDTH - EDGE_MIN_WIDTH)


def edge_color(width: float) -> str:
    """Green for light flows, amber for medium, red for heavy."""
    intensity = (width - EDGE_MIN_WIDTH) / (EDGE_MAX_WIDTH - EDGE_MIN_WIDTH)
    if intensity < 0.3:
        return "#10b981"
    if intensity < 0.6:
        return "#f59e0b"
    return "#ef4444"


def carbon_hierarchical_layout(nodes: List[Node], edges: List[Edge]) -> Tuple[List[Node], List[Edge]]:
    """
    Stack nodes in one row per lifecycle layer, heaviest footprint first, and
    restyle edges so their width and colour follow the footprint they carry.
    """
    layers: Dict[int, List[Node]] = defaultdict(list)
    for node in nodes:
        node_type = node.get("type") or (node.get("data") or {}).get("nodeType")
        layers[NODE_HIERARCHY.get(node_type, UNKNOWN_LAYER)].append(node)

    if not layers.get(0):
        auto_final = default_final_product("final-product-auto", "final_product_auto")
        first_data = (nodes[0].get("data") or {}) if nodes else {}
        auto_final["data"].update(
            {"id": "final-product-auto", "workflowId": first_data.get("workflowId", ""), "activityUnit": "kg"}
        )
        layers[0] = [auto_final]

    positioned: List[Node] = []
    for layer in sorted(layers):
        layer_nodes = sorted(layers[layer], key=node_footprint, reverse=True)
        start_x = START_X - (len(layer_nodes) - 1) * NODE_SPACING / 2
        y = START_Y + layer * LAYER_HEIGHT
        for index, node in enumerate(layer_nodes):
            positioned.append(_copy_node(node, position={"x": start_x + index * NODE_SPACING, "y": y}))

    by_id = {node["id"]: node for node in positioned}
    footprints = [node_footprint(node) for node in positioned]

    styled: List[Edge] = []
    for edge in edges:
        source = by_id.get(edge.get("source"))
        target = by_id.get(edge.get("target"))
        updated = {**edge, "type": None, "data": None}
        if source and target:
            width = _edge_width(source, target, footprints)
            color = edge_color(width)
            source_fp = node_footprint(source)
            updated.update(
                {
                    "style": {"strokeWidth": width, "stroke": color},
                    "animated": width > EDGE_MIN_WIDTH + 2,
                    "label": f"{source_fp:.2f} kgCO₂e" if source_fp > 0 else None,
                    "labelStyle": {"fontSize": 12, "fontWeight": "bold", "fill": color},
                }
            )
        styled.append(updated)

    logger.info(f"Hierarchical layout placed {len(positioned)} nodes and {len(styled)} edges")
    return positioned, styled


def dependency_layout(nodes: List[Node], edges: List[Edge]) -> List[Node]:
    """Kahn layering: each node sits one column right of its last prerequisite."""
    in_degree: Dict[str, int] = {node["id"]: 0 for node in nodes}
    for edge in edges:
        target = edge.get("target")
        in_degree[target] = in_degree.get(target, 0) + 1

    layers: List[List[str]] = []
    visited: set = set()
    queue = [node["id"] for node in nodes if in_degree.get(node["id"], 0) == 0]
    while queue:
        current = list(queue)
        layers.append(current)
        queue = []
        for node_id in current:
            visited.add(node_id)
            for edge in edges:
                if edge.get("source") == node_id and edge.get("target") not in visited:
                    target = edge["target"]
                    in_degree[target] -= 1
                    if in_degree[target] == 0:
                        queue.append(target)

    slot: Dict[str, Tuple[int, int]] = {}
    for layer_index, layer in enumerate(layers):
        for position, node_id in enumerate(layer):
            slot.setdefault(node_id, (layer_index, position))

    placed: List[Node] = []
    for node in nodes:
        # Nodes stuck in a cycle never reach in-degree 0 and stay in the first slot.
        layer_index, position = slot.get(node["id"], (0, 0))
        placed.append(_copy_node(node, position={"x": layer_index * 300 + 100, "y": position * 150 + 100}))
    return placed


def circular_layout(nodes: List[Node], center: Tuple[float, float] = (500, 300), radius: float = 200) -> List[Node]:
    count = len(nodes)
    placed = []
    for index, node in enumerate(nodes):
        angle = 2 * math.pi * index / count
        placed.append(
            _copy_node(
                node,
                position={"x": center[0] + radius * math.cos(angle), "y": center[1] + radius * math.sin(angle)},
            )
        )
    return placed


def grid_layout(nodes: List[Node], spacing: int = 250) -> List[Node]:
    if not nodes:
        return []
    cols = math.ceil(math.sqrt(len(nodes)))
    return [
        _copy_node(node, position={"x": (index % cols) * spacing + 100, "y": (index // cols) * spacing + 100})
        for index, node in enumerate(nodes)
    ]


def apply_layout(
    nodes: List[Node], edges: List[Edge], layout_type: Optional[str] = "normal"
) -> Tuple[List[Node], List[Edge]]:
    """Run the named layout and return the new ``(nodes, edges)``."""
    layout_type = layout_type or "normal"
    if layout_type == "normal":
        return final_product_layout(nodes)
    if layout_type == "hierarchical":
        return carbon_hierarchical_layout(nodes, edges)
    if layout_type == "dependency":
        return dependency_layout(nodes, edges), list(edges)
    if layout_type == "circular":
        return circular_layout(nodes), list(edges)
    if layout_type == "grid":
        return grid_layout(nodes), list(edges)
    raise ValidationError(f"Unknown layout type '{layout_type}'. Expected one of {', '.join(LAYOUT_TYPES)}")
