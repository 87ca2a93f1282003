"""Drop editor cog: `slayerrewards edit <creature> [page]`.

The editor is an embed listing the page's drops plus a view of controls:
slot pickers for chance edits, page navigation, the default-drops toggle,
the currency cycle, the reward prompt, save and close. Chance and reward
values are typed into the channel as the operator's next message.
"""
from __future__ import annotations

from typing import Dict, List, Optional
import discord
from discord import app_commands
from discord.ext import commands

from slayer_bot.editor.pages import ITEMS_PER_PAGE
from slayer_bot.editor.session import (
    EditorPage,
    EditorPersistenceError,
    EditorSessionManager,
    EditorStateError,
    InputResult,
)
from slayer_bot.utils import helpers
from slayer_bot.utils import perms
from slayer_bot.utils.creatures import complete, known_creatures, normalise
from slayer_bot.utils.items import Item
from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.editor.cog")

COG_DEPENDS = ["slayer_bot.cogs.slayer.slayer"]

_SELECT_CHUNK = 25
_DESCRIPTION_LIMIT = 4000

EDITOR_ERRORS = (EditorStateError, EditorPersistenceError)
_WRAPPED_ERRORS = (commands.HybridCommandError, commands.CommandInvokeError, app_commands.CommandInvokeError)


def build_editor_embed(page: EditorPage) -> discord.Embed:
    lines: List[str] = []
    for slot, item in page.occupied():
        lines.append(f"`{slot:>2}` **{item.name}** x{item.quantity} (entry {page.key_for(slot)})")
        for lore_line in item.lore:
            lines.append(f"> {lore_line}")
    description = "\n".join(lines) if lines else "This page has no drops yet."
    if len(description) > _DESCRIPTION_LIMIT:
        description = description[: _DESCRIPTION_LIMIT - 1] + "…"

    embed = helpers.make_embed(f"Edit Drop: {page.creature_type} | P{page.page}", description)
    embed.add_field(name="Reward", value=f"`{page.amount_expr}`")
    embed.add_field(name="Currency", value=page.currency.value.upper())
    embed.add_field(name="Default drops", value="discarded" if page.suppress_default_drops else "kept")
    embed.set_footer(text="Add drops with `slayerrewards place <slot> <quantity> <name>`. "
                          "Pick a slot below to change its drop chance.")
    return embed


class EditorView(discord.ui.View):
    """Controls for one operator's editor page."""

    def __init__(self, cog: "DropEditor", operator_id: int, page: EditorPage, *, timeout: Optional[float] = 600.0):
        super().__init__(timeout=timeout)
        self.cog = cog
        self.operator_id = operator_id
        self.message: Optional[discord.Message] = None

        occupied = page.occupied()
        for row, start in enumerate(range(0, min(len(occupied), _SELECT_CHUNK * 2), _SELECT_CHUNK)):
            chunk = occupied[start:start + _SELECT_CHUNK]
            select = discord.ui.Select(
                placeholder=f"Edit drop chance (slots {chunk[0][0]}-{chunk[-1][0]})",
                options=[
                    discord.SelectOption(label=f"#{slot} {item.name}"[:100], value=str(slot),
                                         description=f"x{item.quantity}")
                    for slot, item in chunk
                ],
                row=row,
            )
            select.callback = self._make_select_callback(select)
            self.add_item(select)

        if not page.has_previous:
            self.remove_item(self.previous_page)
        if not page.has_next:
            self.remove_item(self.next_page)
        self.toggle_defaults.label = f"Default drops: {'OFF' if page.suppress_default_drops else 'ON'}"
        self.cycle_currency.label = f"Currency: {page.currency.value.upper()}"
        self.edit_reward.label = f"Reward: {page.amount_expr}"[:80]

    def _make_select_callback(self, select: discord.ui.Select):
        async def _callback(interaction: discord.Interaction) -> None:
            await self.cog.begin_chance_edit(interaction, self, int(select.values[0]))
        return _callback

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.operator_id:
            await interaction.response.send_message("This editor belongs to someone else.", ephemeral=True)
            return False
        return True

    async def on_timeout(self) -> None:
        await self.cog.editor_timed_out(self)

    async def on_error(self, interaction: discord.Interaction, error: Exception, item: discord.ui.Item) -> None:
        if isinstance(error, EDITOR_ERRORS):
            text = str(error)
        else:
            logger.error("Editor control %s failed", item, exc_info=error)
            text = "Something went wrong; the editor is still open."
        if interaction.response.is_done():
            await interaction.followup.send(text, ephemeral=True)
        else:
            await interaction.response.send_message(text, ephemeral=True)

    @discord.ui.button(label="Previous", style=discord.ButtonStyle.secondary, row=2)
    async def previous_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        page = self.cog.editor.navigate(self.operator_id, -1)
        await self.cog.redraw(interaction, self, page)

    @discord.ui.button(label="Save", style=discord.ButtonStyle.success, row=2)
    async def save(self, interaction: discord.Interaction, button: discord.ui.Button):
        page = self.cog.editor.save(self.operator_id)
        await self.cog.redraw(interaction, self, page)

    @discord.ui.button(label="Next", style=discord.ButtonStyle.secondary, row=2)
    async def next_page(self, interaction: discord.Interaction, button: discord.ui.Button):
        page = self.cog.editor.navigate(self.operator_id, 1)
        await self.cog.redraw(interaction, self, page)

    @discord.ui.button(label="Default drops", style=discord.ButtonStyle.primary, row=3)
    async def toggle_defaults(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.cog.editor.toggle_suppress_defaults(self.operator_id)
        await self.cog.redraw(interaction, self, self.cog.editor.render(self.operator_id))

    @discord.ui.button(label="Currency", style=discord.ButtonStyle.primary, row=3)
    async def cycle_currency(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.cog.editor.cycle_currency(self.operator_id)
        await self.cog.redraw(interaction, self, self.cog.editor.render(self.operator_id))

    @discord.ui.button(label="Reward", style=discord.ButtonStyle.primary, row=3)
    async def edit_reward(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.begin_amount_edit(interaction, self)

    @discord.ui.button(label="Close", style=discord.ButtonStyle.danger, row=3)
    async def close_editor(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.close_editor(interaction, self)


class DropEditor(commands.Cog):
    """Admin editor for per-creature drop tables."""

    def __init__(self, bot: commands.Bot, editor: EditorSessionManager):
        self.bot = bot
        self.editor = editor
        # operator -> live view; operator -> channel expected to carry prompt answers
        self._views: Dict[int, EditorView] = {}
        self._prompt_channels: Dict[int, int] = {}

    @property
    def _timeout(self) -> float:
        settings = getattr(self.bot, "settings", None)
        return float(getattr(settings, "EDITOR_TIMEOUT", 600.0))

    # ----- view plumbing

    def _new_view(self, operator_id: int, page: EditorPage) -> EditorView:
        old = self._views.pop(operator_id, None)
        if old is not None:
            old.stop()
        view = EditorView(self, operator_id, page, timeout=self._timeout)
        self._views[operator_id] = view
        return view

    async def _send_editor(self, destination: discord.abc.Messageable, operator_id: int, page: EditorPage) -> None:
        view = self._new_view(operator_id, page)
        view.message = await destination.send(embed=build_editor_embed(page), view=view)

    async def _refresh_message(self, operator_id: int, page: EditorPage) -> None:
        current = self._views.get(operator_id)
        message = current.message if current is not None else None
        if message is None:
            return
        view = self._new_view(operator_id, page)
        view.message = message
        await message.edit(embed=build_editor_embed(page), view=view)

    async def redraw(self, interaction: discord.Interaction, old: EditorView, page: EditorPage) -> None:
        view = self._new_view(old.operator_id, page)
        view.message = old.message
        await interaction.response.edit_message(embed=build_editor_embed(page), view=view)

    async def _enter_prompt(self, interaction: discord.Interaction, view: EditorView, prompt: str) -> None:
        """Take the controls off the message and ask for a chat answer."""
        view.stop()
        self._views.pop(view.operator_id, None)
        self._prompt_channels[view.operator_id] = interaction.channel_id
        await interaction.response.edit_message(embed=helpers.make_embed("Waiting for input", prompt), view=None)

    async def begin_chance_edit(self, interaction: discord.Interaction, view: EditorView, slot: int) -> None:
        key = self.editor.select_chance_edit(view.operator_id, slot)
        await self._enter_prompt(interaction, view, f"Type the new drop chance (0-100) for entry {key} in this channel.")

    async def begin_amount_edit(self, interaction: discord.Interaction, view: EditorView) -> None:
        self.editor.select_amount_edit(view.operator_id)
        await self._enter_prompt(interaction, view, "Type the reward amount in this channel: a number like `15` or a range like `10-20`.")

    async def close_editor(self, interaction: discord.Interaction, view: EditorView) -> None:
        if not self.editor.close(view.operator_id):
            await interaction.response.send_message("Finish the pending input first.", ephemeral=True)
            return
        view.stop()
        self._views.pop(view.operator_id, None)
        await interaction.response.edit_message(embed=helpers.make_embed("Drop editor", "Drops saved."), view=None)

    async def editor_timed_out(self, view: EditorView) -> None:
        if self._views.get(view.operator_id) is not view:
            return
        self._views.pop(view.operator_id, None)
        try:
            closed = self.editor.close(view.operator_id)
        except EditorPersistenceError:
            logger.exception("Could not save drops when the editor of %s timed out", view.operator_id)
            return
        if closed and view.message is not None:
            try:
                await view.message.edit(embed=helpers.make_embed("Drop editor", "Editor closed; drops saved."), view=None)
            except discord.HTTPException:
                pass

    # ----- chat capture

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.author.bot:
            return
        operator_id = message.author.id
        if not self.editor.is_awaiting(operator_id):
            return
        if self._prompt_channels.get(operator_id) != message.channel.id:
            return
        # other commands typed while a prompt is open are not answers
        if (await self.bot.get_context(message)).valid:
            return

        result: Optional[InputResult] = self.editor.submit_text(operator_id, message.content)
        if result is None:
            return
        colour = discord.Colour.green().value if result.accepted else discord.Colour.red().value
        await message.channel.send(embed=helpers.make_embed("Drop editor", result.notice, colour))

        if not self.editor.is_awaiting(operator_id):
            self._prompt_channels.pop(operator_id, None)
            await self._send_editor(message.channel, operator_id, self.editor.render(operator_id))

    # ----- commands

    async def cog_check(self, ctx: commands.Context) -> bool:
        return await perms.check_slayer_admin(ctx)

    async def cog_command_error(self, ctx: commands.Context, error: Exception) -> None:
        original = error
        # slash invocations arrive as HybridCommandError(app_commands.CommandInvokeError(exc))
        while isinstance(original, _WRAPPED_ERRORS):
            original = original.original
        if isinstance(original, perms.NotInteractive):
            await ctx.send(str(original))
        elif isinstance(original, commands.CheckFailure):
            await ctx.send("You do not have permission to edit slayer drops.")
        elif isinstance(original, EDITOR_ERRORS):
            await ctx.send(embed=helpers.make_embed("Drop editor", str(original), discord.Colour.red().value))
        elif isinstance(original, commands.UserInputError):
            await ctx.send("Usage: `slayerrewards edit <creature> [page]`, `slayerrewards place <slot> <quantity> <name>`, `slayerrewards clear <slot>`")
        else:
            logger.error("Drop editor command failed", exc_info=original)
            await ctx.send("An error occurred while processing your command.")

    @commands.hybrid_group(name="slayerrewards", aliases=["slayer"], with_app_command=True)
    async def slayerrewards(self, ctx: commands.Context):
        """Manage creature drops (admin only)."""
        if ctx.invoked_subcommand is None:
            await ctx.send("Usage: `slayerrewards edit <creature> [page]`")

    @slayerrewards.command(name="edit")
    @app_commands.describe(creature="Creature type, e.g. zombie", page="Page number (45 drops per page)")
    async def edit(self, ctx: commands.Context, creature: str, page: Optional[str] = None):
        """Open the drop editor for a creature."""
        rendered = self.editor.open(ctx.author.id, normalise(creature), helpers.parse_page(page))
        self._prompt_channels.pop(ctx.author.id, None)
        await self._send_editor(ctx, ctx.author.id, rendered)

    @edit.autocomplete("creature")
    async def _edit_creature_autocomplete(self, interaction: discord.Interaction, current: str) -> List[app_commands.Choice[str]]:
        names = complete(["edit", current], known_creatures(self.editor.store.creature_types()))
        return [app_commands.Choice(name=n, value=n) for n in names[:25]]

    @slayerrewards.command(name="place")
    @app_commands.describe(slot=f"Slot on the open page (1-{ITEMS_PER_PAGE})", quantity="Stack size", name="Item name")
    async def place(self, ctx: commands.Context, slot: int, quantity: int, *, name: str):
        """Put an item into a slot of the open editor page."""
        if quantity < 0:
            raise commands.BadArgument("Quantity cannot be negative.")
        page = self.editor.place_item(ctx.author.id, slot, Item(name=name.strip(), quantity=quantity))
        await self._refresh_message(ctx.author.id, page)
        await ctx.send(f"Placed {name.strip()} x{quantity} in slot {slot} (unsaved until you save, turn the page or close).")

    @slayerrewards.command(name="clear")
    @app_commands.describe(slot=f"Slot on the open page (1-{ITEMS_PER_PAGE})")
    async def clear(self, ctx: commands.Context, slot: int):
        """Empty a slot of the open editor page."""
        page = self.editor.clear_slot(ctx.author.id, slot)
        await self._refresh_message(ctx.author.id, page)
        await ctx.send(f"Cleared slot {slot}.")


async def setup(bot: commands.Bot) -> None:
    await bot.add_cog(DropEditor(bot, bot.editor))
