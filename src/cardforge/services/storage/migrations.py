"""Run Alembic migrations from application code."""

from __future__ import annotations

import asyncio
from pathlib import Path

from alembic import command
from alembic.config import Config

# src/cardforge/services/storage -> repository root holding alembic.ini
_ROOT_DIR = Path(__file__).resolve().parents[4]


def build_alembic_config(database_url: str) -> Config:
    """Construct an Alembic config bound to the provided database URL."""
    config = Config(str(_ROOT_DIR / "alembic.ini"))
    # ConfigParser interpolation: percent-encoded passwords need escaping.
    config.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    config.set_main_option("script_location", str(_ROOT_DIR / "migrations"))
    config.set_main_option("prepend_sys_path", str(_ROOT_DIR / "src"))
    config.attributes["configure_logger"] = False
    return config


async def upgrade_head(database_url: str) -> None:
    """Upgrade the database schema to the latest revision."""
    config = build_alembic_config(database_url)
    loop = asyncio.get_running_loop()
    # env.py drives its own event loop, so it must run off this one.
    await loop.run_in_executor(None, command.upgrade, config, "head")
