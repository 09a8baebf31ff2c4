import json

import httpx
import pytest

from climate_seal.core.exceptions import IntegrationError
from climate_seal.integrations.climateseal import ClimatesealClient
from climate_seal.services.factor_matching import FactorMatcher, match_carbon_factors


def _client(handler):
    return ClimatesealClient(base_url="https://match.example.com", transport=httpx.MockTransport(handler))


def _json_reply(body, status=200):
    def handler(request):
        return httpx.Response(status, json=body)
    return handler


@pytest.mark.asyncio
async def test_match_normalizes_first_result():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["payload"] = json.loads(request.content)
        return httpx.Response(200, json={"results": [{"matches": [
            {"kg_co2eq": 1.85, "activity_name": "steel production", "geography": "CN", "score": 0.91},
            "garbage",
        ]}]})

    client = _client(handler)
    try:
        matches = await client.match(["steel", "product"], top_k=5, min_score=0.2)
    finally:
        await client.aclose()

    assert seen["path"] == "/match"
    assert seen["payload"]["labels"] == ["steel", "product"]
    assert seen["payload"]["top_k"] == 5
    assert matches == [{
        "factor": 1.85,
        "activityName": "steel production",
        "unit": "kg",
        "geography": "CN",
        "activityUUID": None,
        "dataSource": None,
        "importDate": None,
        "originalScore": 0.91,
    }]


@pytest.mark.asyncio
async def test_match_empty_results():
    client = _client(_json_reply({"results": []}))
    try:
        assert await client.match(["steel"]) == []
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_match_http_error_status():
    client = _client(_json_reply({"detail": "boom"}, status=500))
    try:
        with pytest.raises(IntegrationError):
            await client.match(["steel"])
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_match_non_json_body():
    def handler(request):
        return httpx.Response(200, text="<html>Bad Gateway</html>", headers={"Content-Type": "text/html"})

    client = _client(handler)
    try:
        with pytest.raises(IntegrationError):
            await client.match(["steel"])
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_match_unexpected_result_shape():
    client = _client(_json_reply({"results": ["not-an-object"]}))
    try:
        with pytest.raises(IntegrationError):
            await client.match(["steel"])
    finally:
        await client.aclose()


@pytest.mark.asyncio
async def test_non_json_body_marks_node_failed():
    def handler(request):
        return httpx.Response(200, text="<html>maintenance</html>")

    client = _client(handler)
    nodes = [{"id": "n1", "type": "product", "data": {"label": "steel"}}]
    try:
        result = await match_carbon_factors(nodes, matcher=FactorMatcher(client=client))
    finally:
        await client.aclose()

    assert result["results"]["failed"] == ["n1"]
    assert result["results"]["success"] == []
    assert "发生错误" in result["results"]["logs"][0]
