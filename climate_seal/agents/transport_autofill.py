"""
Transport Autofill Agent
Guesses transport mode and distance for distribution nodes from their
start and end points.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from climate_seal.agents.base import BaseAgent
from climate_seal.core.exceptions import LLMResponseError, ValidationError
from climate_seal.core.llm_client import chat_completion, extract_json
from climate_seal.prompts.carbon_prompts import TRANSPORT_AUTOFILL_PROMPT, TRANSPORT_AUTOFILL_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_transport_items(parsed: Any) -> List[Dict[str, Any]]:
    if not isinstance(parsed, list):
        raise LLMResponseError("LLM reply is not a JSON array")

    valid: List[Dict[str, Any]] = []
    for item in parsed:
        if (
            isinstance(item, dict)
            and isinstance(item.get("nodeId"), str)
            and isinstance(item.get("transportType"), str)
            and _is_number(item.get("distance"))
            and isinstance(item.get("distanceUnit"), str)
        ):
            valid.append(item)
        else:
            logger.warning(f"Skipping invalid transport item: {item!r}")

    if not valid:
        raise LLMResponseError("LLM reply contained no valid transport items")
    return valid


class TransportAutofillAgent(BaseAgent):
    agent_name = "transport_autofill"

    def __init__(self, db=None, model: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(db=db)
        self.model = model
        self.provider = provider

    async def execute(self, nodes: Optional[List[Dict[str, Any]]] = None, **_: Any) -> Dict[str, Any]:
        if not isinstance(nodes, list):
            raise ValidationError("nodes must be a list")
        if not nodes:
            return {"success": True, "data": []}

        prompt = TRANSPORT_AUTOFILL_PROMPT.format(nodes=json.dumps(nodes, ensure_ascii=False, indent=2))
        reply = await chat_completion(
            [
                {"role": "system", "content": TRANSPORT_AUTOFILL_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            max_tokens=2048,
            temperature=0.2,
            model=self.model,
            provider=self.provider,
        )
        items = validate_transport_items(extract_json(reply))
        logger.info(f"Transport autofill returned {len(items)} of {len(nodes)} nodes")
        return {"success": True, "data": items}
