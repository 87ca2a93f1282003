"""Configuration loader for the Slayer Rewards bot.

Settings are plain class attributes read from environment variables (and a
.env file via python-dotenv) at import time. `validate()` performs the
startup check for required values.
"""
from typing import Optional, List
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

_DATA_DIR = Path(os.getenv("SLAYER_DATA_DIR", str(Path.cwd() / "data")))


class Settings:
    """Minimal settings holder."""

    TOKEN: Optional[str] = os.getenv("TOKEN")
    DEV_GUILD_ID: Optional[int] = int(os.getenv("DEV_GUILD_ID")) if os.getenv("DEV_GUILD_ID") else None
    OWNER_ID: Optional[int] = int(os.getenv("OWNER_ID")) if os.getenv("OWNER_ID") else None
    DEV_MODE: bool = os.getenv("DEV_MODE", "true").lower() in ("1", "true", "yes")
    COMMAND_PREFIX: str = os.getenv("COMMAND_PREFIX", "!")

    # Database (optional; the ledger falls back to memory without it)
    DATABASE_URL: Optional[str] = os.getenv("DATABASE_URL")
    DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
    DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

    # Creature documents and world loot tables
    DATA_DIR: Path = _DATA_DIR
    MOBS_DIR: Path = Path(os.getenv("SLAYER_MOBS_DIR", str(_DATA_DIR / "mobs")))
    LOOT_TABLES_PATH: Path = Path(os.getenv("SLAYER_LOOT_TABLES", str(_DATA_DIR / "loot_tables.yaml")))
    DEFAULT_CURRENCY: str = os.getenv("SLAYER_DEFAULT_CURRENCY", "coin")

    # Editor
    SLAYER_ADMIN_ROLE: Optional[str] = os.getenv("SLAYER_ADMIN_ROLE")
    EDITOR_TIMEOUT: float = float(os.getenv("SLAYER_EDITOR_TIMEOUT", "600"))

    # Health endpoint
    HEALTH_ENABLED: bool = os.getenv("HEALTH_ENABLED", "false").lower() in ("1", "true", "yes")
    HEALTH_HOST: str = os.getenv("HEALTH_HOST", "0.0.0.0")
    HEALTH_PORT: int = int(os.getenv("HEALTH_PORT", "8080"))

    # Audit log retention
    LOG_PRUNE_ENABLED: bool = os.getenv("LOG_PRUNE_ENABLED", "true").lower() in ("1", "true", "yes")
    LOG_RETENTION_DAYS: int = int(os.getenv("LOG_RETENTION_DAYS", "30"))
    LOG_PRUNE_INTERVAL_HOURS: int = int(os.getenv("LOG_PRUNE_INTERVAL_HOURS", "24"))

    def validate(self, required: Optional[List[str]] = None) -> List[str]:
        """Validate required environment variables.

        Args:
            required: list of attribute names to check (e.g. ["TOKEN"]). If
                omitted, defaults to checking at least `TOKEN`.

        Returns:
            A list of missing attribute names (empty if all present).
        """
        if required is None:
            required = ["TOKEN"]

        missing: List[str] = []
        for name in required:
            val = getattr(self, name, None)
            if val is None or (isinstance(val, str) and not val.strip()):
                missing.append(name)

        return missing
