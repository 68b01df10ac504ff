"""Dependency providers for the FastAPI application."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, HTTPException, status

from ..config import AppConfig
from ..services.auth_tokens import MAX_USER_ID_LENGTH, TokenAuthError, validate_token
from ..services.batches import GenerationBatchService
from ..services.flashcards import FlashcardService
from ..services.llm import CardGenerator, OpenAICardGenerator, StubCardGenerator
from ..services.storage.database import Database


@dataclass
class APIContainer:
    """Aggregate application services shared by the HTTP API."""

    config: AppConfig
    database: Database
    flashcards: FlashcardService
    batches: GenerationBatchService


_CONTAINER: APIContainer | None = None


def build_generator(config: AppConfig) -> CardGenerator:
    """Pick the card generator configured for this deployment."""
    if config.generator_backend == "stub":
        return StubCardGenerator()
    return OpenAICardGenerator(
        api_key=config.openai_api_key or "",
        model=config.openai_model,
        base_url=config.openai_base_url,
        timeout_seconds=config.openai_timeout_seconds,
        max_retries=config.openai_max_retries,
    )


def build_container(config: AppConfig | None = None) -> APIContainer:
    """Compose the service container for the API runtime."""
    config = config or AppConfig.load()
    database = Database(config.database_url)
    flashcards = FlashcardService(database=database)
    batches = GenerationBatchService(database=database, generator=build_generator(config))
    return APIContainer(config=config, database=database, flashcards=flashcards, batches=batches)


def set_container(container: APIContainer) -> None:
    """Set the global container reference for dependency lookup."""
    global _CONTAINER
    _CONTAINER = container


def get_container() -> APIContainer:
    """Return the configured container instance."""
    if _CONTAINER is None:  # pragma: no cover - defensive guard
        raise RuntimeError("API container has not been initialised.")
    return _CONTAINER


def get_flashcard_service() -> FlashcardService:
    """Dependency hook returning the flashcard service."""
    return get_container().flashcards


def get_batch_service() -> GenerationBatchService:
    """Dependency hook returning the generation batch service."""
    return get_container().batches


def get_current_user_id(
    authorization: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """
    Resolve the owner of the request.

    Security model:
    - ``Authorization: Bearer <token>`` is always accepted and verified against
      AUTH_TOKEN_SECRET.
    - With REQUIRE_TOKEN_AUTH=false (development) an ``X-User-Id`` header is
      accepted as-is, so the API can be exercised with curl.

    Raises:
        HTTPException: 401 if no trustworthy identity is present
    """
    config = get_container().config

    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            raise _unauthorized("Authorization header must use the Bearer scheme.")
        try:
            user = validate_token(token.strip(), config.auth_token_secret)
        except TokenAuthError as exc:
            raise _unauthorized(f"Invalid access token: {exc}") from exc
        return user.user_id

    if config.require_token_auth:
        raise _unauthorized("A bearer token is required.")

    user_id = (x_user_id or "").strip()
    if not user_id:
        raise _unauthorized("Either a bearer token or the X-User-Id header is required.")
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise _unauthorized(f"X-User-Id must be at most {MAX_USER_ID_LENGTH} characters.")
    return user_id


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )
