"""Lifecycle stages and the node types they map onto."""
from __future__ import annotations

from typing import Dict, List, Optional

PRODUCT = "product"
MANUFACTURING = "manufacturing"
DISTRIBUTION = "distribution"
USAGE = "usage"
DISPOSAL = "disposal"
FINAL_PRODUCT = "finalProduct"

# Ordered the way a product moves through its life.
STAGE_NODE_TYPES: List[str] = [PRODUCT, MANUFACTURING, DISTRIBUTION, USAGE, DISPOSAL]
NODE_TYPES: List[str] = STAGE_NODE_TYPES + [FINAL_PRODUCT]

STAGE_TO_NODE_TYPE: Dict[str, str] = {
    "原材料获取阶段": PRODUCT,
    "生产制造阶段": MANUFACTURING,
    "生产阶段": MANUFACTURING,
    "分销运输阶段": DISTRIBUTION,
    "使用阶段": USAGE,
    "寿命终止阶段": DISPOSAL,
    "生命周期结束阶段": DISPOSAL,
    "最终产品阶段": FINAL_PRODUCT,
}

NODE_TYPE_TO_STAGE: Dict[str, str] = {
    PRODUCT: "原材料获取阶段",
    MANUFACTURING: "生产制造阶段",
    DISTRIBUTION: "分销运输阶段",
    USAGE: "使用阶段",
    DISPOSAL: "寿命终止阶段",
    FINAL_PRODUCT: "最终产品阶段",
}


def resolve_node_type(stage_or_type: Optional[str]) -> Optional[str]:
    """Accept a Chinese stage name or an English node type; None when unknown."""
    if not stage_or_type:
        return None
    value = str(stage_or_type).strip()
    if value in STAGE_TO_NODE_TYPE:
        return STAGE_TO_NODE_TYPE[value]
    if value in NODE_TYPES:
        return value
    return None
