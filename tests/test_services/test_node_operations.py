import pytest

from climate_seal.core.exceptions import NotFoundError, ValidationError
from climate_seal.services.node_operations import (
    build_node,
    connect_nodes,
    create_node,
    delete_node,
    parse_content,
    repair_incomplete_json,
    safe_get,
    update_node,
)


def test_build_node_fills_stage_defaults():
    node = build_node({"lifecycleStage": "分销运输阶段", "nodeId": "d1", "label": "海运", "transportationDistance": "120"}, "wf-1")

    assert node["id"] == "d1"
    assert node["type"] == "distribution"
    assert node["position"] == {"x": 100, "y": 100}
    data = node["data"]
    assert data["workflowId"] == "wf-1"
    assert data["transportationDistance"] == 120
    assert data["carbonFactor"] == "0"
    assert data["refrigeration"] is False
    assert data["parse_from_file_name"] == ""
    assert "dataSources" not in data


def test_build_node_final_product_overrides():
    node = build_node({"lifecycleStage": "最终产品阶段", "nodeId": "f1", "label": "手机"}, "wf")
    assert node["data"]["emissionType"] == "total"
    assert node["data"]["activitydataSource"] == "calculated"
    assert node["data"]["finalProductName"] == "手机"


def test_build_node_rejects_unknown_stage():
    with pytest.raises(ValidationError):
        build_node({"lifecycleStage": "moon"}, "wf")


def test_safe_get_coerces_by_default_type():
    assert safe_get({"a": "true"}, "a", False) is True
    assert safe_get({"a": "12"}, "a", 0) == 12
    assert safe_get({"a": "x"}, "a", 7) == 7
    assert safe_get(None, "a", "d") == "d"


def test_repair_incomplete_json_drops_partial_property():
    text = '{"nodeId": "n1", "label": "钢材", "quantity": '
    assert repair_incomplete_json(text) == '{"nodeId": "n1", "label": "钢材"}'
    assert parse_content(text) == {"nodeId": "n1", "label": "钢材"}


def test_parse_content_salvages_basic_fields():
    info = parse_content('{"nodeId": "t1", "label": "卡车", "transportationDistance": 300, oops}')
    assert info["nodeId"] == "t1"
    assert info["transportationDistance"] == 300
    assert info["lifecycleStage"] == "分销运输阶段"


def test_create_node_skips_duplicates():
    nodes, node = create_node([], {"lifecycleStage": "使用阶段", "nodeId": "u1"}, "wf")
    assert node["id"] == "u1"

    again, duplicate = create_node(nodes, {"lifecycleStage": "使用阶段", "nodeId": "u1"}, "wf")
    assert duplicate is None
    assert len(again) == 1


def test_update_node_by_label_merges_data():
    nodes, _ = create_node([], {"lifecycleStage": "使用阶段", "nodeId": "u1", "label": "充电"}, "wf")
    updated, node = update_node(nodes, '{"nodeId": "充电", "lifespan": 5, "positionX": 10, "positionY": 20}')

    assert node["data"]["lifespan"] == 5
    assert node["position"] == {"x": 10, "y": 20}
    assert updated[0] is node

    with pytest.raises(NotFoundError):
        update_node(nodes, {"nodeId": "missing"})
    with pytest.raises(ValidationError):
        update_node(nodes, {"label": "no id"})


def test_delete_node_removes_touching_edges():
    nodes = [{"id": "a", "data": {}}, {"id": "b", "data": {}}, {"id": "c", "data": {}}]
    edges = [{"source": "a", "target": "b"}, {"source": "b", "target": "c"}, {"source": "a", "target": "c"}]

    remaining_nodes, remaining_edges = delete_node(nodes, edges, "b")
    assert [n["id"] for n in remaining_nodes] == ["a", "c"]
    assert remaining_edges == [{"source": "a", "target": "c"}]

    with pytest.raises(NotFoundError):
        delete_node(nodes, edges, "zzz")


def test_connect_nodes():
    nodes = [{"id": "a", "data": {}}, {"id": "b", "data": {"nodeId": "B"}}]
    edges, edge = connect_nodes(nodes, [], "a", "B", '{"label": "运输"}')

    assert edge["source"] == "a"
    assert edge["target"] == "b"
    assert edge["label"] == "运输"
    assert edges == [edge]

    with pytest.raises(NotFoundError):
        connect_nodes(nodes, [], "a", "x")
