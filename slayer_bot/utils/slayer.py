"""Kill handling: custom drops and currency rewards.

Drops are resolved synchronously on the kill path from the cached drop
table. The currency payout runs as its own asyncio task so a slow ledger
never holds up kill handling; the optional confirmation callback runs on
the event loop once the deposit succeeds.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional
import asyncio
import random

from slayer_bot.utils import db
from slayer_bot.utils import logger as slayer_logger
from slayer_bot.utils.drops import DropTableCache, resolve_drops
from slayer_bot.utils.items import Item
from slayer_bot.utils.mob_store import MobStore
from slayer_bot.utils.rewards import Currency, compute_reward, resolve_currency

logger = slayer_logger.get_logger("slayer.kills")

ACCOUNT_KIND = "PLAYER"

Deposit = Callable[[int, str, Currency, int], Awaitable[bool]]


@dataclass
class KillEvent:
    killer_id: Optional[int]
    creature_type: str
    location: Any = None
    drops: List[Item] = field(default_factory=list)


@dataclass(frozen=True)
class RewardResult:
    player_id: int
    creature_type: str
    amount: int
    currency: Currency
    location: Any = None


@dataclass
class KillOutcome:
    drops: List[Item]
    reward_task: Optional["asyncio.Task[Optional[RewardResult]]"] = None


OnDeposited = Callable[[RewardResult], Awaitable[None]]


class SlayerRewards:
    def __init__(self, store: MobStore, cache: DropTableCache, default_currency: Any = Currency.COIN,
                 deposit: Optional[Deposit] = None, rng: Optional[random.Random] = None):
        self.store = store
        self.cache = cache
        self.default_currency = resolve_currency(default_currency)
        self._deposit = deposit or db.deposit
        self._rng = rng

    def apply_custom_drops(self, creature_type: str, drops: List[Item]) -> List[Item]:
        """Apply the creature's drop table to `drops` in place and return it."""
        table = self.cache.get_drop_table(creature_type)
        if table is None:
            return drops
        if table.suppress_default_drops:
            drops.clear()
        drops.extend(resolve_drops(table, rng=self._rng))
        return drops

    async def reward_on_kill(self, player_id: int, creature_type: str, location: Any = None,
                             on_deposited: Optional[OnDeposited] = None) -> Optional[RewardResult]:
        """Pay the kill reward. Returns None when nothing was paid."""
        amount, currency = compute_reward(self.store.get(creature_type), self.default_currency, rng=self._rng)
        if amount <= 0:
            return None

        ok = await self._deposit(player_id, ACCOUNT_KIND, currency, amount)
        if not ok:
            logger.warning("Ledger refused %s %s for player %s", amount, currency.value, player_id)
            return None

        result = RewardResult(player_id, creature_type.lower(), amount, currency, location)
        slayer_logger.enqueue_log({
            "type": "slayer_reward",
            "player_id": player_id,
            "creature_type": result.creature_type,
            "amount": amount,
            "currency": currency.value,
        })
        if on_deposited is not None:
            await on_deposited(result)
        return result

    def handle_kill(self, event: KillEvent, on_deposited: Optional[OnDeposited] = None) -> KillOutcome:
        """Resolve drops now and schedule the reward payout.

        Must be called from inside the running event loop. Kills without a
        player killer change nothing.
        """
        if event.killer_id is None:
            return KillOutcome(drops=event.drops)

        self.apply_custom_drops(event.creature_type, event.drops)
        task = asyncio.get_running_loop().create_task(
            self.reward_on_kill(event.killer_id, event.creature_type, event.location, on_deposited)
        )
        task.add_done_callback(_log_task_failure)
        return KillOutcome(drops=event.drops, reward_task=task)


def _log_task_failure(task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Reward payout failed", exc_info=exc)
