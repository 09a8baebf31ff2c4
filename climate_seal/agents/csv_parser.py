"""
CSV Parser Agent
Turns a free-form CSV export into lifecycle node data with the help of an LLM.
"""
from typing import Any, Dict, List, Optional
import logging

from climate_seal.agents.base import BaseAgent
from climate_seal.core.exceptions import LLMResponseError, ValidationError
from climate_seal.core.llm_client import chat_completion, extract_json
from climate_seal.prompts.carbon_prompts import CSV_PARSER_PROMPT, CSV_PARSER_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def validate_parsed_rows(parsed: Any) -> List[Dict[str, Any]]:
    """Keep items shaped ``{"data": {"label": <non-blank str>, ...}}``; fail when none are."""
    if not isinstance(parsed, list):
        raise LLMResponseError("Parsed JSON response is not an array.")

    valid: List[Dict[str, Any]] = []
    for item in parsed:
        data = item.get("data") if isinstance(item, dict) else None
        label = data.get("label") if isinstance(data, dict) else None
        if isinstance(label, str) and label.strip():
            valid.append({"data": data})
        else:
            logger.warning(f"Skipping CSV row without a label: {item!r}")

    if not valid:
        raise LLMResponseError("LLM response contained no valid items with a label.")
    return valid


class CsvParserAgent(BaseAgent):
    """Parses CSV text into node data. LLM and validation errors propagate."""

    agent_name = "csv_parser"
    max_tokens = 8192

    def __init__(self, db=None, model: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(db=db)
        self.model = model
        self.provider = provider

    async def execute(self, csv_content: str = "", **_: Any) -> Dict[str, Any]:
        if not csv_content or not csv_content.strip():
            raise ValidationError("CSV content is required")

        logger.info(f"Parsing CSV content ({len(csv_content)} chars)")
        reply = await chat_completion(
            [
                {"role": "system", "content": CSV_PARSER_SYSTEM_PROMPT},
                {"role": "user", "content": CSV_PARSER_PROMPT.format(csv_content=csv_content)},
            ],
            max_tokens=self.max_tokens,
            model=self.model,
            provider=self.provider,
        )
        rows = validate_parsed_rows(extract_json(reply))
        logger.info(f"CSV parser produced {len(rows)} rows")
        return {"success": True, "data": rows}
