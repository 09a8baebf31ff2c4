import json

import pytest

from climate_seal.agents import csv_parser, result_reranker, search_optimizer, transport_autofill
from climate_seal.agents.csv_parser import CsvParserAgent, validate_parsed_rows
from climate_seal.agents.evidence_validator import EvidenceValidatorAgent, interpret_reply, resolve_mime_type
from climate_seal.agents.registry import AGENT_CLASS_MAP, get_agent
from climate_seal.agents.result_reranker import ResultRerankerAgent, fallback_ranking
from climate_seal.agents.search_optimizer import SearchOptimizerAgent
from climate_seal.agents.transport_autofill import TransportAutofillAgent
from climate_seal.core.exceptions import IntegrationError, LLMResponseError, ValidationError


def _reply(payload):
    async def fake_chat_completion(messages, **kwargs):
        if isinstance(payload, Exception):
            raise payload
        return payload if isinstance(payload, str) else "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"

    return fake_chat_completion


CANDIDATES = [
    {"activityName": "steel, low-alloyed", "factor": 1.9, "unit": "kg"},
    {"activityName": "steel, hot rolled", "factor": 2.1, "unit": "kg"},
]


def test_registry_knows_every_agent():
    assert set(AGENT_CLASS_MAP) == {
        "csv_parser",
        "carbon_factor_search_optimizer",
        "carbon_factor_result_reranker",
        "evidence_validator",
        "transport_autofill",
    }
    assert isinstance(get_agent("csv_parser"), CsvParserAgent)
    with pytest.raises(KeyError):
        get_agent("unknown_agent")


def test_validate_parsed_rows_drops_unlabelled_items():
    rows = validate_parsed_rows([{"data": {"label": "钢"}}, {"data": {"label": " "}}, "junk"])
    assert rows == [{"data": {"label": "钢"}}]
    with pytest.raises(LLMResponseError):
        validate_parsed_rows({"data": {}})
    with pytest.raises(LLMResponseError):
        validate_parsed_rows([{"data": {}}])


@pytest.mark.asyncio
async def test_csv_parser_run_success(monkeypatch):
    monkeypatch.setattr(csv_parser, "chat_completion", _reply([{"data": {"label": "钢", "quantity": "2"}}]))
    result = await CsvParserAgent().run(csv_content="name,qty\n钢,2")
    assert result == {"success": True, "data": [{"data": {"label": "钢", "quantity": "2"}}]}


@pytest.mark.asyncio
async def test_csv_parser_run_reports_error_types(monkeypatch):
    result = await CsvParserAgent().run(csv_content="  ")
    assert result["success"] is False
    assert result["error_type"] == "validation"

    monkeypatch.setattr(csv_parser, "chat_completion", _reply("sorry, no json here"))
    result = await CsvParserAgent().run(csv_content="a,b")
    assert result["error_type"] == "integration"


@pytest.mark.asyncio
async def test_search_optimizer_clamps_confidence(monkeypatch):
    monkeypatch.setattr(
        search_optimizer,
        "chat_completion",
        _reply({"optimizedQuery": "aluminium ingot production", "confidence": 1.4, "reasoning": "r"}),
    )
    result = await SearchOptimizerAgent().optimize({"nodeLabel": "铝锭", "nodeType": "product"})
    assert result["optimizedQuery"] == "aluminium ingot production"
    assert result["confidence"] == 1.0
    assert result["alternativeQueries"] == ["铝锭"]
    assert result["suggestedDatabase"] == "ecoinvent"


@pytest.mark.asyncio
async def test_search_optimizer_falls_back_on_llm_failure(monkeypatch):
    monkeypatch.setattr(search_optimizer, "chat_completion", _reply(IntegrationError("timeout")))
    result = await SearchOptimizerAgent().optimize({"nodeLabel": "铝锭", "nodeType": "product"})
    assert result["optimizedQuery"] == "铝锭"
    assert result["confidence"] == 0.5

    failed = await SearchOptimizerAgent().run(input={"nodeLabel": "铝锭"})
    assert failed["error_type"] == "validation"


@pytest.mark.asyncio
async def test_reranker_best_match_mirrors_top_candidate(monkeypatch):
    monkeypatch.setattr(
        result_reranker,
        "chat_completion",
        _reply(
            {
                "rankings": [{"index": 2, "score": 0.92, "reasoning": "hot rolled"}],
                "bestMatch": {"activityName": "made up"},
                "summary": {"totalCandidates": 2},
            }
        ),
    )
    result = await ResultRerankerAgent().rerank({"nodeLabel": "钢", "nodeType": "product", "candidates": CANDIDATES})
    assert result["bestMatch"]["activityName"] == "steel, hot rolled"
    assert result["bestMatch"]["aiScore"] == 0.92


@pytest.mark.asyncio
async def test_reranker_invalid_index_uses_fallback(monkeypatch):
    monkeypatch.setattr(
        result_reranker,
        "chat_completion",
        _reply({"rankings": [{"index": 7}], "bestMatch": {"x": 1}, "summary": {"y": 1}}),
    )
    result = await ResultRerankerAgent().rerank({"nodeLabel": "钢", "nodeType": "product", "candidates": CANDIDATES})
    assert result == fallback_ranking(CANDIDATES)
    assert [r["score"] for r in result["rankings"]] == [1, 0.9]
    assert result["bestMatch"]["aiScore"] == 0.8


def test_fallback_ranking_without_candidates():
    assert fallback_ranking([])["bestMatch"] == {}


@pytest.mark.asyncio
async def test_transport_agent_filters_invalid_items(monkeypatch):
    monkeypatch.setattr(
        transport_autofill,
        "chat_completion",
        _reply(
            [
                {"nodeId": "d1", "transportType": "公路运输", "distance": 1200, "distanceUnit": "km"},
                {"nodeId": "d2", "transportType": "公路运输", "distance": "far", "distanceUnit": "km"},
            ]
        ),
    )
    result = await TransportAutofillAgent().execute(nodes=[{"nodeId": "d1"}, {"nodeId": "d2"}])
    assert [item["nodeId"] for item in result["data"]] == ["d1"]

    assert (await TransportAutofillAgent().execute(nodes=[]))["data"] == []


def test_resolve_mime_type():
    assert resolve_mime_type("bill.JPG") == "image/jpeg"
    assert resolve_mime_type("blob", "image/png") == "image/png"
    with pytest.raises(ValidationError):
        resolve_mime_type("bill.pdf", "application/pdf")


def test_interpret_reply_variants():
    structured = interpret_reply('```json\n{"isValid": true, "finalReason": "账单金额一致"}\n```')
    assert structured["isValid"] is True
    assert structured["reason"] == "账单金额一致"

    inferred = interpret_reply('{"valid": false, "reason": "日期不符"}')
    assert inferred == {"isValid": False, "reason": "日期不符", "details": {"valid": False, "reason": "日期不符"}}

    free_text = interpret_reply("The reading appears to match the invoice.")
    assert free_text["isValid"] is True
    assert free_text["details"] == {"rawResponse": "The reading appears to match the invoice."}


class FakeGemini:
    def __init__(self, reply):
        self.reply = reply
        self.calls = []

    async def generate_with_image(self, prompt, image, mime_type):
        self.calls.append((prompt, image, mime_type))
        return self.reply


@pytest.mark.asyncio
async def test_evidence_validator_execute():
    client = FakeGemini('{"isValid": false, "finalReason": "数值不一致"}')
    agent = EvidenceValidatorAgent(client=client)
    result = await agent.execute(
        source_name="电力", activity_value="120", activity_unit="kWh", evidence=b"\x89PNG", filename="meter.png"
    )
    assert result["data"]["isValid"] is False
    assert client.calls[0][2] == "image/png"
    assert "120" in client.calls[0][0]

    failed = await agent.run(source_name="电力", activity_value="", activity_unit="kWh", evidence=b"x", filename="a.png")
    assert failed["error_type"] == "validation"
