import os
from dataclasses import dataclass

from dotenv import load_dotenv


DEFAULT_IMAGE_MODEL = "gemini-2.0-flash-exp"
DEFAULT_RELAY_URL = "http://127.0.0.1:8000"


@dataclass(frozen=True)
class Settings:
    gemini_api_key: str | None = None
    default_model: str = DEFAULT_IMAGE_MODEL
    log_level: str = "INFO"


@dataclass(frozen=True)
class ClientSettings:
    relay_url: str = DEFAULT_RELAY_URL
    api_key: str | None = None
    timeout_seconds: float | None = None


def _get_api_key() -> str | None:
    api_key = (os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or "").strip()
    return api_key or None


def load_settings() -> Settings:
    load_dotenv()
    return Settings(
        gemini_api_key=_get_api_key(),
        default_model=os.getenv("GEMINI_IMAGE_MODEL", DEFAULT_IMAGE_MODEL).strip() or DEFAULT_IMAGE_MODEL,
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def load_bind_address() -> tuple[str, int]:
    load_dotenv()
    return os.getenv("HOST", "127.0.0.1"), int(os.getenv("PORT", "8000"))


def load_client_settings() -> ClientSettings:
    load_dotenv()
    raw_timeout = os.getenv("STUDIO_TIMEOUT", "").strip()
    return ClientSettings(
        relay_url=os.getenv("STUDIO_RELAY_URL", DEFAULT_RELAY_URL).rstrip("/"),
        api_key=_get_api_key(),
        timeout_seconds=float(raw_timeout) if raw_timeout else None,
    )
