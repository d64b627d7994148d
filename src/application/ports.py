from typing import List, Protocol, Sequence, Tuple

from src.application.schemas import GenerationConfig
from src.domain.models import Clinic


class ClinicSearchPort(Protocol):
    def search_nearby(
        self, lat: float, lon: float, radius_m: int, tags: Sequence[Tuple[str, str]]
    ) -> List[Clinic]:
        """
        Returns places matching any of the ``(key, value)`` map tags within
        ``radius_m`` of the point. Distances are left unset.
        """
        ...


class LLMPort(Protocol):
    def generate(self, prompt: str, config: GenerationConfig) -> str:
        """
        Sends a single prompt and returns the model's free-text answer.
        Raises AnalysisFailedError on transport or provider failure.
        """
        ...
