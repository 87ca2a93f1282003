"""Slayer cog: creature kills, rewards and balances.

`slay` stands in for the game world's kill event: the invoker kills one
creature in the current channel. Other cogs report kills with
`bot.dispatch("creature_kill", KillEvent(...))`; both paths share
`_process_kill`.
"""
from __future__ import annotations

from typing import List, Optional
import discord
from discord import app_commands
from discord.ext import commands

from slayer_bot.utils import db as db_utils
from slayer_bot.utils import helpers
from slayer_bot.utils import loot as loot_utils
from slayer_bot.utils.creatures import known_creatures, normalise
from slayer_bot.utils.rewards import Currency, resolve_currency
from slayer_bot.utils.slayer import ACCOUNT_KIND, KillEvent, KillOutcome, RewardResult, SlayerRewards


class Slayer(commands.Cog):
    """Creature kill handling."""

    def __init__(self, bot: commands.Bot, slayer: SlayerRewards) -> None:
        self.bot = bot
        self.slayer = slayer

    def _process_kill(self, event: KillEvent) -> KillOutcome:
        return self.slayer.handle_kill(event, on_deposited=self._announce_reward)

    async def _announce_reward(self, result: RewardResult) -> None:
        """Post the `+N currency` confirmation where the creature died."""
        channel = result.location
        if not isinstance(channel, discord.abc.Messageable):
            return
        try:
            await channel.send(f"<@{result.player_id}> +{helpers.format_currency(result.amount, result.currency)}")
        except discord.HTTPException:
            pass

    @commands.Cog.listener()
    async def on_creature_kill(self, event: KillEvent) -> None:
        self._process_kill(event)

    @commands.hybrid_command(name="slay", aliases=["kill"])
    @commands.cooldown(1, 3, commands.BucketType.user)
    @app_commands.describe(creature="Creature type to slay, e.g. zombie")
    async def slay(self, ctx: commands.Context, creature: str) -> None:
        """Slay a creature and collect its rewards."""
        creature_type = normalise(creature)
        event = KillEvent(
            killer_id=ctx.author.id,
            creature_type=creature_type,
            location=ctx.channel,
            drops=loot_utils.generate_default_drops(creature_type),
        )
        outcome = self._process_kill(event)
        embed = helpers.make_embed(f"You slew a {creature_type.replace('_', ' ')}!", helpers.format_drops(outcome.drops))
        await ctx.send(embed=embed)

    @slay.autocomplete("creature")
    async def _slay_creature_autocomplete(self, interaction: discord.Interaction, current: str) -> List[app_commands.Choice[str]]:
        names = known_creatures(self.slayer.store.creature_types())
        return [app_commands.Choice(name=n, value=n) for n in names if n.startswith(current.lower())][:25]

    @commands.hybrid_command(name="balance", aliases=["bal"])
    async def balance(self, ctx: commands.Context, currency: Optional[str] = None) -> None:
        """Show your slayer earnings (all currencies, or one)."""
        if currency is not None:
            wanted = [resolve_currency(currency, self.slayer.default_currency)]
        else:
            wanted = list(Currency)
        lines = []
        for cur in wanted:
            amount = await db_utils.get_balance(ctx.author.id, ACCOUNT_KIND, cur)
            lines.append(helpers.format_currency(amount, cur))
        await ctx.send(embed=helpers.make_embed(f"{ctx.author.display_name}'s Balance", "\n".join(lines)))


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(Slayer(bot, bot.slayer))
