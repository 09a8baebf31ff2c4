import pytest

from climate_seal.core.exceptions import IntegrationError
from climate_seal.services.factor_matching import (
    MATCH_FAILED,
    MATCH_SUCCESS,
    FactorMatcher,
    apply_factor,
    has_carbon_factor,
    match_carbon_factors,
    split_node_ids,
)


class FakeClient:
    def __init__(self, candidates=None, error=None):
        self.candidates = candidates or {}
        self.error = error
        self.calls = []
        self.closed = False

    async def match(self, queries, top_k=3, min_score=0.3):
        self.calls.append((queries, top_k, min_score))
        if self.error:
            raise self.error
        return self.candidates.get(queries[0], [])

    async def aclose(self):
        self.closed = True


class FakeOptimizer:
    async def optimize(self, node_info):
        return {"optimizedQuery": f"{node_info['nodeLabel']} production"}


class FakeReranker:
    async def rerank(self, payload):
        return {"bestMatch": payload["candidates"][-1]}


STEEL = {"activityName": "steel production", "factor": 1.85, "unit": "kg", "geography": "CN", "dataSource": "ecoinvent"}


def _nodes():
    return [
        {"id": "n1", "type": "product", "data": {"label": "steel", "carbonFactor": "0"}},
        {"id": "n2", "type": "product", "data": {"label": "glass", "carbonFactor": ""}},
        {"id": "n3", "type": "product", "data": {"label": "copper", "carbonFactor": "3.2"}},
    ]


def test_split_node_ids():
    assert split_node_ids("a, b,,c") == ["a", "b", "c"]
    assert split_node_ids(["a"]) == ["a"]
    assert split_node_ids("") is None
    assert split_node_ids(None) is None


def test_has_carbon_factor():
    assert has_carbon_factor({"carbonFactor": "0.4"})
    assert not has_carbon_factor({"carbonFactor": "0"})
    assert not has_carbon_factor({"carbonFactor": 0})
    assert not has_carbon_factor({})


def test_apply_factor_defaults():
    data = apply_factor({"label": "x"}, {"factor": 2.0})
    assert data["carbonFactor"] == "2"
    assert data["carbonFactorName"] == "Unknown Activity"
    assert data["carbonFactorUnit"] == "unit"


@pytest.mark.asyncio
async def test_plain_matching_updates_skips_and_fails():
    client = FakeClient({"steel": [STEEL]})
    outcome = await match_carbon_factors(_nodes(), matcher=FactorMatcher(client=client))

    nodes = {n["id"]: n for n in outcome["nodes"]}
    assert nodes["n1"]["data"]["carbonFactor"] == "1.85"
    assert nodes["n1"]["data"]["carbonFactorName"] == "steel production"
    assert nodes["n3"]["data"]["carbonFactor"] == "3.2"

    results = outcome["results"]
    assert results["success"] == ["n1"]
    assert results["failed"] == ["n2"]
    assert '节点 "steel" 匹配成功，碳因子: 1.85' in results["logs"]
    assert '节点 "glass" 无法匹配到碳因子' in results["logs"]
    assert results["logs"][-1] == "1 个节点的碳因子已更新。"
    assert client.calls[0] == (["steel", "product"], 3, 0.3)
    assert not client.closed


@pytest.mark.asyncio
async def test_progress_events_and_missing_ids():
    matcher = FactorMatcher(client=FakeClient({"steel": [STEEL]}))
    events = [event async for event in matcher.iter_matches(_nodes(), "n3,ghost,n1")]

    progress = [e for e in events if e["event"] == "progress"]
    assert [(e["nodeId"], e["status"], e["current"], e["total"]) for e in progress] == [
        ("n3", "skipped", 1, 2),
        ("n1", "success", 2, 2),
    ]
    complete = events[-1]
    assert complete["event"] == "complete"
    assert complete["results"]["logs"][0] == '未找到ID为 "ghost" 的节点'


@pytest.mark.asyncio
async def test_ai_matching_marks_status():
    client = FakeClient({"steel production": [{"factor": 9}, STEEL], "glass production": []})
    matcher = FactorMatcher(client=client, optimizer=FakeOptimizer(), reranker=FakeReranker())
    outcome = await match_carbon_factors(_nodes(), ["n1", "n2"], use_ai=True, matcher=matcher)

    nodes = {n["id"]: n for n in outcome["nodes"]}
    assert nodes["n1"]["data"]["carbonFactor"] == "1.85"
    assert nodes["n1"]["data"]["factorMatchStatus"] == MATCH_SUCCESS
    assert nodes["n2"]["data"]["factorMatchStatus"] == MATCH_FAILED
    assert client.calls[0] == (["steel production"], 5, 0.2)


@pytest.mark.asyncio
async def test_integration_errors_fail_the_node():
    matcher = FactorMatcher(client=FakeClient(error=IntegrationError("service down")))
    outcome = await match_carbon_factors(_nodes(), "n1", matcher=matcher)

    assert outcome["results"]["failed"] == ["n1"]
    assert outcome["results"]["logs"] == ['处理节点 "steel" 时发生错误: service down']
