"""Bot factory for the Slayer Rewards bot.

Creates the commands.Bot instance, builds the shared components (creature
store, drop cache, kill handler, editor sessions) once and hands them to the
cogs through bot attributes.
"""
from typing import Dict, Optional, Set
import asyncio
import importlib
import time
import discord
from discord.ext import commands
from discord import Object

from .config import Settings
from slayer_bot.editor.session import EditorSessionManager
from slayer_bot.utils import db as db_utils
from slayer_bot.utils import loot as loot_utils
from slayer_bot.utils import logger as slayer_logger
from slayer_bot.utils.drops import DropTableCache
from slayer_bot.utils.health import build_app, start_health_server
from slayer_bot.utils.items import YamlItemCodec
from slayer_bot.utils.mob_store import MobStore
from slayer_bot.utils.slayer import SlayerRewards

logger = slayer_logger.get_logger("slayer.bot")

EXTENSIONS = (
    "slayer_bot.cogs.core.core",
    "slayer_bot.cogs.slayer.slayer",
    "slayer_bot.cogs.slayer.drop_editor",
)


class SlayerBot(commands.Bot):
    def __init__(self, settings: Settings, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.settings = settings
        self._start_time: Optional[float] = None

        self.codec = YamlItemCodec()
        self.mob_store = MobStore(settings.MOBS_DIR, settings.DEFAULT_CURRENCY)
        self.drop_cache = DropTableCache(self.mob_store, self.codec)
        self.slayer = SlayerRewards(self.mob_store, self.drop_cache, settings.DEFAULT_CURRENCY)
        self.editor = EditorSessionManager(self.mob_store, self.codec, settings.DEFAULT_CURRENCY)

    async def close(self) -> None:
        # close the bot first, then the DB pool if one was opened
        try:
            await super().close()
        finally:
            await db_utils.close_pool()

    def stats(self) -> Dict[str, int]:
        data = dict(self.drop_cache.stats())
        data["editor_sessions"] = len(self.editor)
        data["pending_prompts"] = len(self.editor.prompts)
        return data

    async def _load_extensions(self) -> None:
        # cogs may expose COG_DEPENDS = ["module.path"] to load after others
        deps_map: Dict[str, Set[str]] = {}
        for name in EXTENSIONS:
            mod = importlib.import_module(name)
            deps_map[name] = set(getattr(mod, "COG_DEPENDS", []) or [])

        remaining: Set[str] = set(EXTENSIONS)
        loaded: Set[str] = set()
        while remaining:
            ready = [n for n in EXTENSIONS if n in remaining and deps_map[n] <= loaded]
            if not ready:
                raise RuntimeError(f"Unresolvable cog dependencies: {sorted(remaining)}")
            for name in ready:
                await self.load_extension(name)
                logger.info("Loaded extension: %s", name)
                loaded.add(name)
                remaining.discard(name)

    async def setup_hook(self) -> None:
        self._start_time = time.time()
        # the pool must live on the bot's own loop; without a DSN the ledger stays in memory
        if self.settings.DATABASE_URL:
            await db_utils.init_pool(
                self.settings.DATABASE_URL,
                min_size=self.settings.DB_POOL_MIN,
                max_size=self.settings.DB_POOL_MAX,
            )
        await self._load_extensions()

        # sync to the dev guild for faster iteration when configured
        dev_guild = getattr(self.settings, "DEV_GUILD_ID", None)
        if dev_guild:
            try:
                guild_obj = Object(id=int(dev_guild))
                self.tree.copy_global_to(guild=guild_obj)
                await self.tree.sync(guild=guild_obj)
                logger.info("Synced app commands to dev guild %s", dev_guild)
            except discord.HTTPException:
                logger.exception("Failed to sync app commands")

        if self.settings.HEALTH_ENABLED:
            app = build_app(ready=self.is_ready, stats=self.stats)
            self.loop.create_task(start_health_server(app, self.settings.HEALTH_HOST, self.settings.HEALTH_PORT))

        if self.settings.LOG_PRUNE_ENABLED:
            self.loop.create_task(self._prune_loop())

    async def _prune_loop(self) -> None:
        retention_days = int(self.settings.LOG_RETENTION_DAYS)
        interval_hours = int(self.settings.LOG_PRUNE_INTERVAL_HOURS)
        while True:
            kept = await self.loop.run_in_executor(None, slayer_logger.prune_jsonl_archive, retention_days)
            logger.info("Audit retention: kept %s entries (retention=%sd)", kept, retention_days)
            await asyncio.sleep(interval_hours * 60 * 60)


def create_bot(settings: Optional[Settings] = None) -> SlayerBot:
    """Create and return a configured SlayerBot instance."""
    if settings is None:
        settings = Settings()

    slayer_logger.configure_archive(settings.DATA_DIR / "audit.jsonl")
    loot_utils.set_tables_path(settings.LOOT_TABLES_PATH)

    intents = discord.Intents.default()
    intents.message_content = True
    intents.members = True

    return SlayerBot(
        settings,
        command_prefix=commands.when_mentioned_or(settings.COMMAND_PREFIX),
        intents=intents,
        case_insensitive=True,
        owner_id=settings.OWNER_ID,
    )
