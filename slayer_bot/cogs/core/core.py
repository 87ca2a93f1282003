"""Core cog: basic commands and the global command error handler."""
from discord.ext import commands
import discord
import time
import traceback

from slayer_bot.utils import helpers
from slayer_bot.utils import logger as slayer_logger

logger = slayer_logger.get_logger("slayer.core")


class Core(commands.Cog):
    """Core commands: ping and uptime."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.start_time = time.time()

    @commands.Cog.listener()
    async def on_command_error(self, ctx: commands.Context, error: Exception):
        """Audit unhandled command errors and answer with a generic embed."""
        if ctx.cog is not None and ctx.cog.has_error_handler():
            return
        if isinstance(error, commands.CommandNotFound):
            return

        slayer_logger.enqueue_log({
            "type": "command_error",
            "command": getattr(ctx.command, "qualified_name", None),
            "user_id": getattr(ctx.author, "id", None),
            "error": str(error),
            "trace": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        })

        if isinstance(error, (commands.UserInputError, commands.CheckFailure)):
            await ctx.send(embed=helpers.make_embed("Error", str(error)))
            return

        logger.error("Command %s failed", getattr(ctx.command, "qualified_name", "?"), exc_info=error)
        try:
            await ctx.send(embed=helpers.make_embed("Error", "An error occurred while processing your command."))
        except discord.HTTPException:
            pass

    @commands.Cog.listener()
    async def on_ready(self):
        logger.info("Bot ready as %s (id: %s)", self.bot.user, self.bot.user.id)

    @commands.command(name="ping")
    async def ping(self, ctx: commands.Context):
        """Respond with latency (ms)."""
        latency = round(self.bot.latency * 1000)
        await ctx.send(embed=helpers.make_embed("Pong!", f"Latency: {latency}ms"))

    @commands.command(name="uptime")
    async def uptime(self, ctx: commands.Context):
        uptime = int(time.time() - self.start_time)
        await ctx.send(f"Uptime: {uptime}s")


async def setup(bot: commands.Bot):
    await bot.add_cog(Core(bot))
