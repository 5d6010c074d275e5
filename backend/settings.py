import os
from typing import Mapping, Optional

from services.errors import ConfigError

# Basic settings helper to read environment configuration.

DEFAULT_PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"


def _as_int(env: Mapping[str, str], name: str, default: int) -> int:
    val = env.get(name)
    if val is None or val.strip() == "":
        return default
    try:
        return int(val)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {val!r}") from None


def _as_float(env: Mapping[str, str], name: str, default: float) -> float:
    val = env.get(name)
    if val is None or val.strip() == "":
        return default
    try:
        return float(val)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {val!r}") from None


class Settings:
    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        env = os.environ if environ is None else environ

        self.GOOGLE_MAPS_API_KEY: Optional[str] = env.get("GOOGLE_MAPS_API_KEY") or None
        self.PLACES_BASE_URL: str = env.get("PLACES_BASE_URL") or DEFAULT_PLACES_BASE_URL
        self.PLACES_TIMEOUT_SECONDS: float = _as_float(env, "PLACES_TIMEOUT_SECONDS", 10.0)

        self.LLM_API_URL: Optional[str] = env.get("LLM_API_URL") or None
        self.LLM_API_KEY: Optional[str] = env.get("LLM_API_KEY") or None
        self.LLM_MODEL: str = env.get("LLM_MODEL") or "llama3.2:3b"
        self.LLM_TEMPERATURE: float = _as_float(env, "LLM_TEMPERATURE", 0.2)
        self.LLM_TIMEOUT_SECONDS: float = _as_float(env, "LLM_TIMEOUT_SECONDS", 20.0)

        self.CACHE_TTL_SECONDS: int = _as_int(env, "CACHE_TTL_SECONDS", 300)
        self.CACHE_MAX_ENTRIES: int = _as_int(env, "CACHE_MAX_ENTRIES", 10000)

        self.RATE_LIMIT_WINDOW_MS: int = _as_int(env, "RATE_LIMIT_WINDOW_MS", 60000)
        self.RATE_LIMIT_MAX: int = _as_int(env, "RATE_LIMIT_MAX", 30)

        # Jakarta city center unless the deployment says otherwise
        self.DEFAULT_LAT: float = _as_float(env, "DEFAULT_LAT", -6.2)
        self.DEFAULT_LNG: float = _as_float(env, "DEFAULT_LNG", 106.816666)

        self.PORT: int = _as_int(env, "PORT", 3001)
        self.LOG_LEVEL: str = (env.get("LOG_LEVEL") or "INFO").upper()

    def require(self) -> None:
        """Raise ConfigError naming every required variable that is unset."""
        missing = [
            name
            for name in ("GOOGLE_MAPS_API_KEY", "LLM_API_URL")
            if not getattr(self, name)
        ]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")


settings = Settings()
