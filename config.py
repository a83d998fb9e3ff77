# config.py
import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

SERVICE_NAME = "hipolito-chat-backend"

PROVIDER_GROQ = "groq"
PROVIDER_VERTEX = "vertex"

# Accepted spellings for LLM_PROVIDER
PROVIDER_ALIASES = {
    "groq": PROVIDER_GROQ,
    "openai": PROVIDER_GROQ,
    "vertex": PROVIDER_VERTEX,
    "vertexai": PROVIDER_VERTEX,
    "google": PROVIDER_VERTEX,
    "gemini": PROVIDER_VERTEX,
}

DEFAULT_GROQ_API_BASE = "https://api.groq.com/openai/v1"
DEFAULT_GROQ_MODEL = "llama-3.1-8b-instant"
DEFAULT_VERTEX_API_BASE = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_VERTEX_MODEL = "gemini-1.5-flash"

# Generation defaults applied when the client leaves a field out
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 180
DEFAULT_TOP_P = 0.9

MAX_REQUEST_BYTES = 1024 * 1024


def _first_set(environ: Mapping[str, str], *names: str) -> Optional[str]:
    for name in names:
        value = environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and passed to create_app()."""

    port: int = 3000
    provider: str = PROVIDER_GROQ
    log_level: str = "INFO"

    # Groq (OpenAI-compatible)
    groq_api_key: Optional[str] = None
    groq_api_base: str = DEFAULT_GROQ_API_BASE
    groq_model: str = DEFAULT_GROQ_MODEL

    # Google Generative Language / Vertex
    vertex_api_base: str = DEFAULT_VERTEX_API_BASE
    vertex_api_key: Optional[str] = None
    vertex_model: str = DEFAULT_VERTEX_MODEL
    service_account_json: Optional[str] = None
    service_account_file: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] = None) -> "Settings":
        env = os.environ if environ is None else environ

        provider_raw = (env.get("LLM_PROVIDER") or PROVIDER_GROQ).strip().lower()
        provider = PROVIDER_ALIASES.get(provider_raw)
        if provider is None:
            raise ValueError(
                f"Unknown LLM_PROVIDER '{provider_raw}'. "
                f"Supported: {', '.join(sorted(PROVIDER_ALIASES))}"
            )

        return cls(
            port=int(env.get("PORT") or 3000),
            provider=provider,
            log_level=env.get("LOG_LEVEL", "INFO"),
            groq_api_key=_first_set(env, "GROQ_API_KEY", "GROQ_KEY"),
            groq_api_base=(
                _first_set(env, "GROQ_API_BASE") or DEFAULT_GROQ_API_BASE
            ).rstrip("/"),
            groq_model=_first_set(env, "GROQ_MODEL") or DEFAULT_GROQ_MODEL,
            vertex_api_base=(
                _first_set(env, "VERTEX_API_BASE") or DEFAULT_VERTEX_API_BASE
            ).rstrip("/"),
            vertex_api_key=_first_set(env, "VERTEX_API_KEY", "GOOGLE_API_KEY"),
            vertex_model=_first_set(env, "VERTEX_MODEL") or DEFAULT_VERTEX_MODEL,
            service_account_json=_first_set(env, "GOOGLE_SERVICE_ACCOUNT_JSON"),
            service_account_file=_first_set(env, "GOOGLE_APPLICATION_CREDENTIALS"),
        )


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, str(settings.log_level).upper(), logging.INFO)
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
