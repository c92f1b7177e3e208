import logging
import os
from functools import lru_cache

from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEFAULT_MODEL_NAME = "google/gemini-2.5-flash-image"
DEFAULT_TIMEOUT_SECONDS = 120.0


def _timeout_from_env() -> float:
    raw = os.getenv("AI_TIMEOUT_SECONDS")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid AI_TIMEOUT_SECONDS=%r", raw)
        return DEFAULT_TIMEOUT_SECONDS
    if timeout <= 0:
        logger.warning("Ignoring non-positive AI_TIMEOUT_SECONDS=%r", raw)
        return DEFAULT_TIMEOUT_SECONDS
    return timeout


class Settings(BaseModel):
    base_url: str | None = None
    api_key: str | None = None
    model: str = DEFAULT_MODEL_NAME
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            base_url=os.getenv("AI_BASE_URL") or None,
            api_key=os.getenv("AI_API_KEY") or None,
            model=os.getenv("AI_MODEL") or DEFAULT_MODEL_NAME,
            timeout_seconds=_timeout_from_env(),
        )


@lru_cache
def get_settings() -> Settings:
    # Read once; the lifespan hook loads `.env` before the first request.
    return Settings.from_env()
