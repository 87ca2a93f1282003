"""Kill reward calculation.

A creature document carries an `amount` expression ("15" or "10-20") and a
`currency` name. `compute_reward` turns a document snapshot into one
randomized payout. Malformed amounts pay nothing rather than failing.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Tuple
import random

from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.rewards")

_RNG = random.SystemRandom()


class Currency(Enum):
    COIN = "coin"
    COPPER = "copper"
    SILVER = "silver"
    GOLD = "gold"

    @classmethod
    def from_name(cls, name: Any) -> Optional["Currency"]:
        if name is None:
            return None
        key = str(name).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        return None

    def next(self) -> "Currency":
        members = list(Currency)
        return members[(members.index(self) + 1) % len(members)]


def resolve_currency(value: Any, default: Any = Currency.COIN) -> Currency:
    """Match `value` against the known currencies, else fall back to `default`."""
    found = Currency.from_name(value)
    if found is not None:
        return found
    fallback = default if isinstance(default, Currency) else Currency.from_name(default)
    return fallback or Currency.COIN


def parse_amount(expr: Any, rng: Optional[random.Random] = None) -> int:
    """Evaluate an amount expression.

    "N" gives N, "min-max" gives a uniform integer in [min, max]. Anything
    else, including min > max, gives 0.
    """
    rng = rng or _RNG
    text = str(expr).strip() if expr is not None else ""
    try:
        if "-" in text:
            low, high = text.split("-", 1)
            lo, hi = int(low.strip()), int(high.strip())
            if lo < 0 or lo > hi:
                raise ValueError(f"bad range {lo}-{hi}")
            return rng.randint(lo, hi)
        value = int(text)
        return value if value >= 0 else 0
    except ValueError:
        logger.debug("Unparseable reward amount %r; paying nothing", expr)
        return 0


def compute_reward(document: Any, default_currency: Any = Currency.COIN,
                   rng: Optional[random.Random] = None) -> Tuple[int, Currency]:
    """Return `(amount, currency)` for a creature document snapshot.

    `document` is anything with a `get(key, default)` method, or None when
    the creature has no configuration (which pays nothing).
    """
    if document is None:
        return 0, resolve_currency(None, default_currency)
    amount = parse_amount(document.get("amount", "0"), rng=rng)
    currency = resolve_currency(document.get("currency"), default_currency)
    return amount, currency
