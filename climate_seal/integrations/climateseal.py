from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from climate_seal.config import settings
from climate_seal.core.exceptions import IntegrationError

logger = logging.getLogger(__name__)


class ClimatesealClient:
    """Climateseal emission-factor matching API client."""

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.climateseal_api_url).rstrip("/")
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Content-Type": "application/json"},
            timeout=30.0,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    async def match(
        self,
        labels: List[str],
        top_k: int = 3,
        min_score: float = 0.3,
        embedding_model: str = "dashscope_v3",
        search_method: str = "script_score",
    ) -> List[Dict[str, Any]]:
        """Return normalized candidates for the first label's matches, best first."""
        payload = {
            "labels": labels,
            "top_k": top_k,
            "min_score": min_score,
            "embedding_model": embedding_model,
            "search_method": search_method,
        }
        try:
            response = await self.client.post("/match", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error(f"Climateseal match failed for {labels}: {exc}")
            raise IntegrationError(f"Climateseal API error: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            logger.error(f"Climateseal match returned a non-JSON body for {labels}: {response.text[:200]}")
            raise IntegrationError("Climateseal API returned an invalid response") from exc

        results = body.get("results") if isinstance(body, dict) else None
        if not results:
            return []
        first = results[0] if isinstance(results, list) else None
        if not isinstance(first, dict):
            raise IntegrationError("Climateseal API returned an unexpected result shape")
        matches = first.get("matches") or []
        return [self._normalize_match(match) for match in matches if isinstance(match, dict)]

    @staticmethod
    def _normalize_match(match: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "factor": match.get("kg_co2eq"),
            "activityName": match.get("activity_name") or "",
            "unit": match.get("reference_product_unit") or "kg",
            "geography": match.get("geography"),
            "activityUUID": match.get("activity_uuid_product_uuid") or None,
            "dataSource": match.get("data_source") or None,
            "importDate": match.get("import_date") or None,
            "originalScore": match.get("score"),
        }
