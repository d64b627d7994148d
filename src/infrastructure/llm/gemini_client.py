import logging

import requests

from src.application.errors import AnalysisFailedError
from src.application.ports import LLMPort
from src.application.schemas import GenerationConfig
from src.infrastructure.config import Settings


logger = logging.getLogger(__name__)


GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"


class GeminiLLMAdapter(LLMPort):
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self.api_key = self.settings.gemini_api_key
        self.model = self.settings.gemini_model
        self.timeout = self.settings.request_timeout_seconds

    def generate(self, prompt: str, config: GenerationConfig) -> str:
        if not self.api_key:
            logger.error("Gemini API key is missing.")
            raise AnalysisFailedError("Gemini API key is missing")

        url = f"{GEMINI_BASE_URL}/{self.model}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": config.temperature,
                "topP": config.top_p,
                "topK": config.top_k,
                "maxOutputTokens": config.max_output_tokens,
            },
        }
        try:
            resp = requests.post(
                url,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
            resp.raise_for_status()
            data = resp.json()
        except requests.Timeout as e:
            logger.error("Gemini request timed out after %ss", self.timeout)
            raise AnalysisFailedError("The analysis service timed out. Please try again.") from e
        except (requests.RequestException, ValueError) as e:
            logger.exception("Gemini generateContent failed: %s", e)
            raise AnalysisFailedError("Failed to analyze pet symptoms") from e

        candidates = data.get("candidates") or []
        if not candidates:
            reason = (data.get("promptFeedback") or {}).get("blockReason")
            logger.warning("Gemini returned no candidates (block reason: %s)", reason)
            raise AnalysisFailedError("The analysis service returned no answer.")

        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts).strip()
