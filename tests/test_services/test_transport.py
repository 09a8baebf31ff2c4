import pytest

from climate_seal.services.transport import (
    apply_transport_autofill,
    autofill_transport,
    build_transport_requests,
    is_transport_node,
)


class FakeAgent:
    def __init__(self, items):
        self.items = items
        self.seen = None

    async def execute(self, nodes=None, **_):
        self.seen = nodes
        return {"success": True, "data": self.items}


def _nodes():
    return [
        {"id": "d1", "type": "distribution", "data": {"label": "上海到北京", "startPoint": "上海", "endPoint": "北京", "carbonFactor": "0"}},
        {"id": "p1", "type": "product", "data": {"label": "钢材", "emissionType": "原料运输"}},
        {"id": "p2", "type": "product", "data": {"label": "铝材"}},
    ]


def test_is_transport_node():
    nodes = _nodes()
    assert is_transport_node(nodes[0])
    assert is_transport_node(nodes[1])
    assert not is_transport_node(nodes[2])


def test_build_transport_requests_prefers_distribution_points():
    node = {"id": "d", "data": {"distributionStartPoint": "广州", "startPoint": "深圳", "endPoint": "武汉", "label": "l"}}
    assert build_transport_requests([node]) == [{"nodeId": "d", "startPoint": "广州", "endPoint": "武汉", "name": "l"}]


def test_apply_transport_autofill():
    items = [
        {"nodeId": "d1", "transportType": "公路运输", "distance": 1200, "distanceUnit": "km", "emissionFactor": 0.1, "notes": "高速"},
        {"nodeId": "p2", "transportType": "铁路运输", "distance": 5, "distanceUnit": "km"},
    ]
    nodes, updated = apply_transport_autofill(_nodes(), items)

    assert updated == ["d1"]
    data = nodes[0]["data"]
    assert data["transportationMode"] == "公路运输"
    assert data["transportationDistance"] == 1200
    assert data["activityData_aiGenerated"] is True
    assert data["aiRecommendation"] == "高速"
    assert data["carbonFactor"] == "0.1"
    assert data["carbonFactor_aiGenerated"] is True
    assert nodes[2] == _nodes()[2]


@pytest.mark.asyncio
async def test_autofill_transport_only_sends_transport_nodes():
    agent = FakeAgent([{"nodeId": "p1", "transportType": "水路运输", "distance": 30, "distanceUnit": "km"}])
    outcome = await autofill_transport(_nodes(), agent=agent)

    assert [item["nodeId"] for item in agent.seen] == ["d1", "p1"]
    assert outcome["updated"] == ["p1"]
    assert outcome["nodes"][1]["data"]["transportationMode"] == "水路运输"


@pytest.mark.asyncio
async def test_autofill_transport_without_targets_is_a_no_op():
    agent = FakeAgent([])
    nodes = _nodes()
    outcome = await autofill_transport(nodes, "p2", agent=agent)
    assert outcome == {"nodes": nodes, "updated": [], "items": []}
    assert agent.seen is None
