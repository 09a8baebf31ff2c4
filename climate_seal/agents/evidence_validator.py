"""
Evidence Validator Agent
Asks Gemini whether an uploaded image (bill, invoice, meter reading) backs up
an activity-data value.
"""
from typing import Any, Dict, Optional
import json
import logging
import os
import re

from climate_seal.agents.base import BaseAgent
from climate_seal.core.exceptions import ValidationError
from climate_seal.integrations.gemini import GeminiClient
from climate_seal.prompts.carbon_prompts import EVIDENCE_VALIDATOR_PROMPT

logger = logging.getLogger(__name__)

SUPPORTED_IMAGE_TYPES: Dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}

POSITIVE_INDICATORS = ["匹配", "一致", "有效", "通过", "正确", "valid", "match", "confirm"]

_JSON_BLOCK = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")


def resolve_mime_type(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """MIME type for a supported image, judged by extension first and then declared type."""
    ext = os.path.splitext(filename or "")[1].lower()
    if ext in SUPPORTED_IMAGE_TYPES:
        return SUPPORTED_IMAGE_TYPES[ext]
    if not ext and content_type in SUPPORTED_IMAGE_TYPES.values():
        return content_type
    supported = ", ".join(SUPPORTED_IMAGE_TYPES)
    raise ValidationError(f"Unsupported file format: {ext or content_type}. Supported: {supported}")


def interpret_reply(text: str) -> Dict[str, Any]:
    """Turn Gemini's reply into ``{isValid, reason, details}``, inferring validity when unstructured."""
    json_text = text
    block = _JSON_BLOCK.search(text)
    if block:
        json_text = block.group(1)

    lowered = text.lower()
    try:
        parsed = json.loads(json_text.strip())
    except json.JSONDecodeError:
        positive = any(term in lowered for term in POSITIVE_INDICATORS)
        return {
            "isValid": positive,
            "reason": "证据可能有效: AI无法提供结构化结果，但发现积极指标"
            if positive
            else "证据可能无效: AI无法提供结构化结果，且未发现积极指标",
            "details": {"rawResponse": text},
        }

    if not isinstance(parsed, dict):
        parsed = {"rawResponse": parsed}

    if isinstance(parsed.get("isValid"), bool) and isinstance(parsed.get("finalReason"), str):
        return {"isValid": parsed["isValid"], "reason": parsed["finalReason"], "details": parsed}

    logger.warning("Evidence reply is missing isValid/finalReason, inferring result")
    if isinstance(parsed.get("isValid"), bool):
        inferred = parsed["isValid"]
    elif isinstance(parsed.get("valid"), bool):
        inferred = parsed["valid"]
    else:
        inferred = any(term in lowered for term in ("有效", "通过", "valid", "pass"))
    reason = parsed.get("finalReason") or parsed.get("reason") or (
        "证据可能有效，但结构化响应不完整" if inferred else "证据可能无效，且结构化响应不完整"
    )
    return {"isValid": inferred, "reason": reason, "details": parsed}


class EvidenceValidatorAgent(BaseAgent):
    agent_name = "evidence_validator"

    def __init__(self, db=None, client: Optional[GeminiClient] = None):
        super().__init__(db=db)
        self.client = client

    async def execute(
        self,
        source_name: str = "",
        activity_value: Any = None,
        activity_unit: str = "",
        evidence: bytes = b"",
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        **_: Any,
    ) -> Dict[str, Any]:
        if not source_name or activity_value in (None, "") or not activity_unit:
            raise ValidationError("sourceName, activityValue and activityUnit are required")
        if not evidence:
            raise ValidationError("Evidence file is empty")
        mime_type = resolve_mime_type(filename, content_type)

        client = self.client or GeminiClient()
        prompt = EVIDENCE_VALIDATOR_PROMPT.format(
            source_name=source_name,
            activity_value=activity_value,
            activity_unit=activity_unit,
        )
        logger.info(f"Validating evidence '{filename}' for {source_name} {activity_value} {activity_unit}")
        reply = await client.generate_with_image(prompt, evidence, mime_type)
        result = interpret_reply(reply)
        logger.info(f"Evidence '{filename}' valid={result['isValid']}")
        return {"success": True, "data": result}
