"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import quote_plus

from dotenv import load_dotenv

_ENV_LOADED = False

GENERATOR_BACKENDS = ("openai", "stub")


def _ensure_env_loaded() -> None:
    """Load environment variables from a .env file once per process."""
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    load_dotenv(interpolate=False)
    _ENV_LOADED = True


@dataclass(frozen=True)
class AppConfig:
    """Configuration values loaded from environment variables."""

    environment: str
    log_level: str
    database_url: str
    generator_backend: str
    openai_api_key: str | None
    openai_model: str
    openai_base_url: str | None
    openai_timeout_seconds: float
    openai_max_retries: int
    auth_token_secret: str
    auth_token_ttl_seconds: int
    require_token_auth: bool
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    loki_url: str | None = None
    loki_labels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration values from the environment."""
        _ensure_env_loaded()

        generator_backend = os.getenv("GENERATOR_BACKEND", "openai").strip().lower()
        if generator_backend not in GENERATOR_BACKENDS:
            raise RuntimeError(
                f"GENERATOR_BACKEND must be one of {', '.join(GENERATOR_BACKENDS)}, got {generator_backend!r}."
            )

        openai_api_key = os.getenv("OPENAI_API_KEY")
        if generator_backend == "openai" and not openai_api_key:
            raise RuntimeError("OPENAI_API_KEY is required when GENERATOR_BACKEND=openai.")

        auth_token_secret = os.getenv("AUTH_TOKEN_SECRET")
        if not auth_token_secret:
            raise RuntimeError("AUTH_TOKEN_SECRET is required to sign access tokens.")

        return cls(
            environment=os.getenv("APP_ENV", "development"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            database_url=_resolve_database_url(),
            generator_backend=generator_backend,
            openai_api_key=openai_api_key,
            openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            openai_timeout_seconds=_env_float("OPENAI_TIMEOUT_SECONDS", 60.0),
            openai_max_retries=_env_int("OPENAI_MAX_RETRIES", 2),
            auth_token_secret=auth_token_secret,
            auth_token_ttl_seconds=_env_int("AUTH_TOKEN_TTL_SECONDS", 24 * 60 * 60),
            require_token_auth=_env_bool("REQUIRE_TOKEN_AUTH", True),
            api_host=os.getenv("API_HOST", "127.0.0.1"),
            api_port=_env_int("API_PORT", 8000),
            loki_url=os.getenv("LOKI_URL") or None,
            loki_labels=_parse_labels(os.getenv("LOKI_LABELS")),
        )


def _resolve_database_url() -> str:
    """Compose the database URL from granular settings when not explicitly provided."""
    url = os.getenv("DATABASE_URL")
    if url:
        return url

    driver = os.getenv("DB_DRIVER", "postgresql+asyncpg")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("DB_PORT", "5432")
    name = os.getenv("DB_NAME", "cardforge")
    user = os.getenv("DB_USER", "postgres")
    password = os.getenv("DB_PASSWORD", "postgres")

    auth = ""
    if user:
        encoded_password = quote_plus(password) if password else ""
        auth = user if not encoded_password else f"{user}:{encoded_password}"
        auth = f"{auth}@"

    return f"{driver}://{auth}{host}:{port}/{name}"


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}.") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}.") from exc


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _parse_labels(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key=value`` pairs used as Loki stream labels."""
    if not raw:
        return {}
    labels: dict[str, str] = {}
    for chunk in raw.split(","):
        key, sep, value = chunk.partition("=")
        if sep and key.strip():
            labels[key.strip()] = value.strip()
    return labels
