from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from climate_seal.config import settings
from climate_seal.core.exceptions import IntegrationError

logger = logging.getLogger(__name__)


class GeminiClient:
    """Google Gemini REST client for multimodal prompts."""

    BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        key = api_key or settings.google_gemini_api_key.get_secret_value()
        if not key:
            raise IntegrationError("GOOGLE_GEMINI_API_KEY is not configured")
        self.api_key = key
        self.model = model or settings.gemini_model

    async def generate_with_image(self, prompt: str, image: bytes, mime_type: str) -> str:
        payload = {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": prompt},
                        {
                            "inline_data": {
                                "mime_type": mime_type,
                                "data": base64.b64encode(image).decode("ascii"),
                            }
                        },
                    ],
                }
            ]
        }
        try:
            async with httpx.AsyncClient(base_url=self.BASE_URL, timeout=60.0) as client:
                response = await client.post(
                    f"/models/{self.model}:generateContent",
                    json=payload,
                    headers={"Content-Type": "application/json"},
                    params={"key": self.api_key},
                )
        except httpx.HTTPError as exc:
            logger.error(f"Gemini request failed: {str(exc)}")
            raise IntegrationError(f"Gemini request failed: {exc}") from exc
        if response.status_code != 200:
            logger.error(f"Gemini API error {response.status_code}: {response.text[:500]}")
            raise IntegrationError(f"Gemini API error: {response.status_code}")
        return self._extract_text(response.json())

    @staticmethod
    def _extract_text(body: Dict[str, Any]) -> str:
        candidates = body.get("candidates") or []
        if not candidates:
            raise IntegrationError("Gemini returned no candidates")
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text.strip():
            raise IntegrationError("Gemini response text was empty")
        return text
