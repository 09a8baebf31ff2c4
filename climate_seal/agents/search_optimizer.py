"""
Carbon Factor Search Optimizer Agent
Rewrites a node's label into an English query for emission-factor databases.
"""
from typing import Any, Dict, Optional
import json
import logging

from climate_seal.agents.base import BaseAgent
from climate_seal.core.exceptions import IntegrationError, ValidationError
from climate_seal.core.llm_client import chat_completion, extract_json
from climate_seal.prompts.carbon_prompts import SEARCH_OPTIMIZER_PROMPT, SEARCH_OPTIMIZER_SYSTEM_PROMPT

logger = logging.getLogger(__name__)


def fallback_query(node_label: str, reasoning: str) -> Dict[str, Any]:
    return {
        "optimizedQuery": node_label,
        "confidence": 0.5,
        "reasoning": reasoning,
        "alternativeQueries": [node_label],
        "suggestedDatabase": "ecoinvent",
    }


class SearchOptimizerAgent(BaseAgent):
    """Never fails on LLM trouble: any bad reply yields the original label as the query."""

    agent_name = "carbon_factor_search_optimizer"

    def __init__(self, db=None, model: Optional[str] = None, provider: Optional[str] = None):
        super().__init__(db=db)
        self.model = model
        self.provider = provider

    async def execute(self, input: Optional[Dict[str, Any]] = None, **_: Any) -> Dict[str, Any]:
        payload = input or {}
        node_label = payload.get("nodeLabel")
        if not node_label or not payload.get("nodeType"):
            raise ValidationError("nodeLabel and nodeType are required")
        return {"success": True, "data": await self.optimize(payload)}

    async def optimize(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        node_label = str(payload["nodeLabel"])
        prompt = SEARCH_OPTIMIZER_PROMPT.format(
            node_label=node_label,
            node_type=payload.get("nodeType"),
            lifecycle_stage=payload.get("lifecycleStage") or "未指定",
            emission_type=payload.get("emissionType") or "未指定",
            context_data=json.dumps(payload.get("contextData") or {}, ensure_ascii=False, indent=2),
        )

        try:
            reply = await chat_completion(
                [
                    {"role": "system", "content": SEARCH_OPTIMIZER_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=1024,
                temperature=0.3,
                model=self.model,
                provider=self.provider,
            )
            parsed = extract_json(reply)
        except IntegrationError as e:
            logger.warning(f"Search optimization failed for '{node_label}': {e}")
            return fallback_query(node_label, f"LLM调用失败，使用原始标签作为备选方案: {e}")

        if not (
            isinstance(parsed, dict)
            and isinstance(parsed.get("optimizedQuery"), str)
            and isinstance(parsed.get("confidence"), (int, float))
            and not isinstance(parsed.get("confidence"), bool)
            and isinstance(parsed.get("reasoning"), str)
        ):
            logger.warning(f"Incomplete optimizer reply for '{node_label}', using fallback")
            return fallback_query(node_label, "LLM响应格式不完整，使用原始标签作为备选方案")

        confidence = max(0.0, min(1.0, float(parsed["confidence"])))
        result = {
            "optimizedQuery": parsed["optimizedQuery"],
            "confidence": confidence,
            "reasoning": parsed["reasoning"],
            "alternativeQueries": parsed.get("alternativeQueries") or [node_label],
            "suggestedDatabase": parsed.get("suggestedDatabase") or "ecoinvent",
        }
        logger.info(f"Optimized '{node_label}' -> '{result['optimizedQuery']}' ({confidence:.2f})")
        return result
