"""Permission checks for the admin command surface."""
from discord.ext import commands
from typing import Optional
import discord


class NotInteractive(commands.CheckFailure):
    """Raised for bots and webhooks, which cannot drive the editor."""


def has_slayer_admin(member: discord.abc.User, owner_id: Optional[int] = None,
                     admin_role: Optional[str] = None) -> bool:
    """True for the configured owner, members with Manage Server, or the admin role."""
    if owner_id is not None and int(owner_id) == member.id:
        return True
    perms = getattr(member, "guild_permissions", None)
    if perms is not None and perms.manage_guild:
        return True
    if admin_role:
        roles = getattr(member, "roles", None) or []
        return discord.utils.get(roles, name=admin_role) is not None
    return False


async def check_slayer_admin(ctx: commands.Context) -> bool:
    """True for interactive callers with slayer admin rights.

    Bots and webhooks raise `NotInteractive` instead of failing quietly.
    """
    if ctx.author.bot or getattr(ctx.message, "webhook_id", None) is not None:
        raise NotInteractive("Only members can use the drop editor.")
    settings = getattr(ctx.bot, "settings", None)
    owner_id = getattr(settings, "OWNER_ID", None)
    admin_role = getattr(settings, "SLAYER_ADMIN_ROLE", None)
    if has_slayer_admin(ctx.author, owner_id, admin_role):
        return True
    return await ctx.bot.is_owner(ctx.author)

