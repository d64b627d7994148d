import logging

from src.application.errors import AnalysisFailedError
from src.application.ports import LLMPort
from src.application.schemas import GenerationConfig
from src.infrastructure.config import Settings


logger = logging.getLogger(__name__)


class MistralLLMAdapter(LLMPort):
    """Mistral chat completion. The API has no top-k knob, so ``config.top_k`` is not sent."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._client = None
        self._model = self.settings.mistral_model
        self._init_client()

    def _init_client(self):
        api_key = self.settings.mistral_api_key
        if not api_key:
            logger.error("Mistral API key is missing.")
            self._client = None
            return
        try:
            from mistralai import Mistral
            self._client = Mistral(
                api_key=api_key,
                timeout_ms=self.settings.request_timeout_seconds * 1000,
            )
        except Exception as e:
            logger.exception("Failed to initialize Mistral client: %s", e)
            self._client = None

    def generate(self, prompt: str, config: GenerationConfig) -> str:
        if not self._client:
            raise AnalysisFailedError("Mistral client not initialized (missing API key or import error)")
        try:
            response = self._client.chat.complete(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                temperature=config.temperature,
                top_p=config.top_p,
                max_tokens=config.max_output_tokens,
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.exception("Mistral chat call failed: %s", e)
            raise AnalysisFailedError("Failed to analyze pet symptoms") from e

        if isinstance(content, list):
            # Content chunks; keep the text parts
            content = "".join(getattr(chunk, "text", "") or "" for chunk in content)
        return content or ""
