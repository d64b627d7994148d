import os
import logging
from pathlib import Path

try:
    import streamlit as st  # type: ignore
    _HAS_STREAMLIT = True
except Exception:
    _HAS_STREAMLIT = False

logger = logging.getLogger(__name__)


PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


def get_secret(name: str, default: str | None = None) -> str | None:
    # Prefer Streamlit secrets if available
    if _HAS_STREAMLIT:
        try:
            if name in st.secrets:
                return str(st.secrets.get(name))
        except Exception:
            # No secrets.toml configured
            pass
    # Fallback to environment variables
    return os.environ.get(name, default)


def _get_int(name: str, default: int) -> int:
    raw = get_secret(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s=%r; using %d", name, raw, default)
        return default


class Settings:
    @property
    def llm_provider(self) -> str:
        return (get_secret("LLM_PROVIDER", "gemini") or "gemini").strip().lower()

    @property
    def gemini_api_key(self) -> str | None:
        return get_secret("GEMINI_API_KEY")

    @property
    def gemini_model(self) -> str:
        return get_secret("GEMINI_MODEL", "gemini-2.0-flash") or "gemini-2.0-flash"

    @property
    def mistral_api_key(self) -> str | None:
        return get_secret("MISTRAL_API_KEY")

    @property
    def mistral_model(self) -> str:
        return get_secret("MISTRAL_MODEL", "mistral-large-latest") or "mistral-large-latest"

    @property
    def llm_api_key(self) -> str | None:
        if self.llm_provider == "mistral":
            return self.mistral_api_key
        return self.gemini_api_key

    @property
    def overpass_url(self) -> str:
        default = "https://overpass-api.de/api/interpreter"
        return get_secret("OVERPASS_URL", default) or default

    @property
    def request_timeout_seconds(self) -> int:
        return _get_int("REQUEST_TIMEOUT_SECONDS", 30)

    @property
    def clinic_search_radius_m(self) -> int:
        return _get_int("CLINIC_SEARCH_RADIUS_M", 5000)

    @property
    def diagnosis_store_path(self) -> str:
        default = str(PROJECT_ROOT / ".streamlit" / "diagnoses.json")
        return get_secret("DIAGNOSIS_STORE_PATH", default) or default

    @property
    def log_level(self) -> str:
        return (get_secret("LOG_LEVEL", "INFO") or "INFO").upper()
