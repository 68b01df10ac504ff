"""Runtime composition for the cardforge service."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import AppConfig


@dataclass
class CardforgeApp:
    """Encapsulate infrastructure lifecycle operations for the CLI."""

    config: AppConfig
    database: object  # Database - typed as object to avoid import before logging setup

    async def migrate(self) -> None:
        """Upgrade the database schema and release the engine."""
        try:
            await self.database.initialize()  # type: ignore[attr-defined]
        finally:  # pragma: no branch - ensure resources close during shutdown
            await self.database.dispose()  # type: ignore[attr-defined]


def bootstrap(config: AppConfig | None = None) -> CardforgeApp:
    """Create an application instance backed by environment configuration."""
    config = config or AppConfig.load()

    # Logging must be configured before any service module creates its logger.
    from ..logging import configure_logging
    configure_logging(
        level=config.log_level,
        loki_url=config.loki_url,
        loki_labels=config.loki_labels,
    )

    from ..services.storage import Database

    return CardforgeApp(config=config, database=Database(config.database_url))
