"""
Carbon Factor Result Reranker Agent
Scores emission-factor candidates against a node and picks the best match.
"""
from typing import Any, Dict, List, Optional
import json
import logging

from climate_seal.agents.base import BaseAgent
from climate_seal.core.exceptions import IntegrationError, ValidationError
from climate_seal.core.llm_client import chat_completion, extract_json
from climate_seal.prompts.carbon_prompts import (
    RERANKER_CANDIDATE_TEMPLATE,
    RERANKER_PROMPT,
    RERANKER_SYSTEM_PROMPT,
)

logger = logging.getLogger(__name__)


def fallback_ranking(candidates: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Keep the database's own order when the model cannot be used."""
    if not candidates:
        return {
            "rankings": [],
            "bestMatch": {},
            "summary": {"totalCandidates": 0, "averageConfidence": 0, "recommendationStrength": "weak"},
        }
    return {
        "rankings": [
            {
                "index": i + 1,
                "score": round(1 - i * 0.1, 10),
                "reasoning": "AI模型调用失败或返回格式错误，按原始API返回顺序排列",
                "confidence": 0.5,
            }
            for i in range(len(candidates))
        ],
        "bestMatch": {
            **candidates[0],
            "aiScore": 0.8,
            "aiReasoning": "AI模型调用失败，使用原始API返回的第一个结果作为备选方案",
        },
        "summary": {
            "totalCandidates": len(candidates),
            "averageConfidence": 0.5,
            "recommendationStrength": "weak",
        },
    }


def _describe(candidates: List[Dict[str, Any]]) -> str:
    return "\n".join(
        RERANKER_CANDIDATE_TEMPLATE.format(
            position=i + 1,
            activity_name=c.get("activityName"),
            factor=c.get("factor"),
            unit=c.get("unit"),
            geography=c.get("geography") or "未指定",
            data_source=c.get("dataSource") or "未指定",
            activity_uuid=c.get("activityUUID") or "未指定",
            import_date=c.get("importDate") or "未指定",
            original_score=c.get("originalScore") or "未指定",
        )
        for i, c in enumerate(candidates)
    )


class ResultRerankerAgent(BaseAgent):
    agent_name = "carbon_factor_result_reranker"

    def __init__(self, db=None, model: Optional[str] = None, provider: Optional[str] = None,
                 max_candidates: int = 10):
        super().__init__(db=db)
        self.model = model
        self.provider = provider
        self.max_candidates = max_candidates

    async def execute(self, input: Optional[Dict[str, Any]] = None, **_: Any) -> Dict[str, Any]:
        payload = input or {}
        if not payload.get("nodeLabel") or not payload.get("nodeType"):
            raise ValidationError("nodeLabel and nodeType are required")
        if not isinstance(payload.get("candidates"), list):
            raise ValidationError("candidates must be a list")
        return {"success": True, "data": await self.rerank(payload)}

    async def rerank(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        candidates = list(payload.get("candidates") or [])[: self.max_candidates]
        if not candidates:
            logger.warning("No carbon factor candidates to rerank")
            return fallback_ranking([])

        prompt = RERANKER_PROMPT.format(
            node_label=payload.get("nodeLabel"),
            node_type=payload.get("nodeType"),
            lifecycle_stage=payload.get("lifecycleStage") or "未指定",
            emission_type=payload.get("emissionType") or "未指定",
            context_data=json.dumps(payload.get("contextData") or {}, ensure_ascii=False, indent=2),
            candidates=_describe(candidates),
            total=len(candidates),
        )

        try:
            reply = await chat_completion(
                [
                    {"role": "system", "content": RERANKER_SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=2048,
                temperature=0.2,
                model=self.model,
                provider=self.provider,
            )
            parsed = extract_json(reply)
        except IntegrationError as e:
            logger.warning(f"Reranking failed for '{payload.get('nodeLabel')}': {e}")
            return fallback_ranking(candidates)

        if not (
            isinstance(parsed, dict)
            and isinstance(parsed.get("rankings"), list)
            and parsed.get("bestMatch")
            and parsed.get("summary")
        ):
            logger.warning("Incomplete reranker reply, using fallback")
            return fallback_ranking(candidates)

        top = parsed["rankings"][0] if parsed["rankings"] else None
        index = top.get("index") if isinstance(top, dict) else None
        if isinstance(index, float) and index.is_integer():
            index = int(index)
        if not isinstance(index, int) or isinstance(index, bool) or not 1 <= index <= len(candidates):
            logger.warning(f"Reranker returned an invalid best index {index!r}, using fallback")
            return fallback_ranking(candidates)

        # bestMatch always mirrors the top-ranked candidate, not the model's copy of it
        parsed["bestMatch"] = {
            **candidates[index - 1],
            "aiScore": top.get("score"),
            "aiReasoning": top.get("reasoning"),
        }
        logger.info(
            f"Reranked {len(candidates)} candidates, best: {parsed['bestMatch'].get('activityName')}"
        )
        return parsed
