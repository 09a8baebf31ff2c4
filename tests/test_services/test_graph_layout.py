import pytest

from climate_seal.core.exceptions import ValidationError
from climate_seal.services.graph_layout import (
    apply_layout,
    carbon_hierarchical_layout,
    circular_layout,
    dependency_layout,
    edge_color,
    final_product_layout,
    grid_layout,
)


def _node(node_id, node_type, footprint="0"):
    return {"id": node_id, "type": node_type, "position": {"x": 0, "y": 0}, "data": {"carbonFootprint": footprint}}


def test_final_product_layout_places_columns_and_adds_final_product():
    nodes = [_node("p1", "product", "1.5"), _node("p2", "product", "2"), _node("m1", "manufacturing")]
    placed, edges = final_product_layout(nodes)
    by_id = {n["id"]: n for n in placed}

    assert by_id["p1"]["position"] == {"x": 400, "y": 400}
    assert by_id["p2"]["position"] == {"x": 400, "y": 1050}
    assert by_id["m1"]["position"] == {"x": 1000, "y": 400}
    assert by_id["p1"]["style"] == {"width": 250, "height": 150}

    final = by_id["final-product-1"]
    assert final["position"] == {"x": 500, "y": 1700}
    assert final["data"]["totalCarbonFootprint"] == 3.5
    assert final["data"]["carbonFootprint"] == "3.5"

    assert len(edges) == 3
    assert edges[0] == {
        "id": "edge-p1-final-product-1",
        "source": "p1",
        "target": "final-product-1",
        "type": "smoothstep",
        "animated": True,
    }


def test_final_product_layout_empty_graph():
    assert final_product_layout([]) == ([], [])


def test_final_product_layout_keeps_extra_final_products_unwired():
    nodes = [_node("f1", "finalProduct"), _node("p1", "product", "2"), _node("f2", "finalProduct")]
    placed, edges = final_product_layout(nodes)

    assert [n["id"] for n in placed] == ["p1", "f1", "f2"]
    assert placed[-1]["position"] == {"x": 0, "y": 0}
    assert [(e["source"], e["target"]) for e in edges] == [("p1", "f1")]
    assert placed[1]["data"]["carbonFootprint"] == "2"


def test_hierarchical_layout_sorts_by_footprint_and_styles_edges():
    nodes = [_node("light", "product", "5"), _node("heavy", "product", "10")]
    edges = [
        {"id": "e1", "source": "heavy", "target": "final-product-auto"},
        {"id": "e2", "source": "light", "target": "missing", "type": "smoothstep", "data": {"x": 1}},
    ]
    placed, styled = carbon_hierarchical_layout(nodes, edges)
    by_id = {n["id"]: n for n in placed}

    assert by_id["final-product-auto"]["position"] == {"x": 100, "y": 100}
    assert by_id["heavy"]["position"] == {"x": -40, "y": 280}
    assert by_id["light"]["position"] == {"x": 240, "y": 280}

    heavy_edge, dangling = styled
    assert heavy_edge["style"] == {"strokeWidth": 8, "stroke": "#ef4444"}
    assert heavy_edge["animated"] is True
    assert heavy_edge["label"] == "10.00 kgCO₂e"
    assert dangling["id"] == "e2"
    assert dangling["type"] is None and dangling["data"] is None
    assert "style" not in dangling


def test_edge_color_bands():
    assert edge_color(2) == "#10b981"
    assert edge_color(5) == "#f59e0b"
    assert edge_color(8) == "#ef4444"


def test_dependency_layout_follows_edges():
    nodes = [_node("a", "product"), _node("b", "manufacturing"), _node("c", "distribution")]
    edges = [{"source": "a", "target": "b"}, {"source": "b", "target": "c"}]
    placed = {n["id"]: n["position"] for n in dependency_layout(nodes, edges)}

    assert placed == {"a": {"x": 100, "y": 100}, "b": {"x": 400, "y": 100}, "c": {"x": 700, "y": 100}}


def test_grid_and_circular_layouts():
    nodes = [_node(str(i), "product") for i in range(4)]
    grid = [n["position"] for n in grid_layout(nodes)]
    assert grid == [{"x": 100, "y": 100}, {"x": 350, "y": 100}, {"x": 100, "y": 350}, {"x": 350, "y": 350}]

    circle = circular_layout(nodes)
    assert circle[0]["position"] == {"x": 700, "y": 300}
    assert circle[2]["position"]["x"] == pytest.approx(300)


def test_apply_layout_rejects_unknown_type():
    with pytest.raises(ValidationError):
        apply_layout([], [], "spiral")
