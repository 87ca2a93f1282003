"""Small helpers and embed templates."""
from typing import Dict, Iterable, Optional
import discord

from slayer_bot.utils.items import Item
from slayer_bot.utils.rewards import Currency

EMOJI: Dict[str, str] = {
    "coin": "\U0001fa99",
    "copper": "\U0001f7e0",
    "silver": "⚪",
    "gold": "\U0001f7e1",
    "drop": "\U0001f4e6",
}


def make_embed(title: str, description: str, colour: Optional[int] = None) -> discord.Embed:
    """Create a small embed used by many commands.

    Args:
        title: embed title
        description: embed body
        colour: optional integer colour
    """
    e = discord.Embed(title=title, description=description)
    if colour is not None:
        e.colour = colour
    return e


def format_currency(amount: int, currency: Currency) -> str:
    """Format an amount with its currency emoji, e.g. `+10 coin`."""
    return f"{EMOJI.get(currency.value, '')} {amount} {currency.value}".strip()


def format_drops(items: Iterable[Item]) -> str:
    lines = [f"{EMOJI['drop']} {item.display()}" for item in items]
    return "\n".join(lines) if lines else "No drops."


def parse_page(raw: Optional[str]) -> int:
    """Parse a page argument; anything malformed or below 1 is page 1."""
    try:
        page = int(str(raw).strip())
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1
