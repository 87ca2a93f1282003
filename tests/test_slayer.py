import pytest

from slayer_bot.utils import db
from slayer_bot.utils.drops import DropTableCache
from slayer_bot.utils.items import Item, encode_payload
from slayer_bot.utils.rewards import Currency
from slayer_bot.utils.slayer import ACCOUNT_KIND, KillEvent, SlayerRewards


def _configure(store, codec, creature="zombie", amount="10-10", currency="coin", suppress=False, drops=()):
    doc = store.ensure(creature)
    doc.set("amount", amount)
    doc.set("currency", currency)
    doc.set("cancel_default_drops", suppress)
    for key, (item, chance, qty) in enumerate(drops, start=1):
        doc.set(f"item_drop.{key}.metadata", encode_payload(codec, item))
        doc.set(f"item_drop.{key}.chance", chance)
        doc.set(f"item_drop.{key}.amount", qty)
    store.save(doc)


class _RecordingDeposit:
    def __init__(self, ok=True):
        self.ok = ok
        self.calls = []

    async def __call__(self, player_id, kind, currency, amount):
        self.calls.append((player_id, kind, currency, amount))
        return self.ok


@pytest.mark.asyncio
async def test_kill_pays_reward_and_adds_custom_drops(store, codec):
    _configure(store, codec, drops=[(Item(name="Zombie Heart"), 100.0, 3)])
    rewards = SlayerRewards(store, DropTableCache(store, codec))
    announced = []

    async def on_deposited(result):
        announced.append(result)

    event = KillEvent(killer_id=42, creature_type="zombie", drops=[Item(name="Rotten Flesh")])
    outcome = rewards.handle_kill(event, on_deposited=on_deposited)
    assert [(i.name, i.quantity) for i in outcome.drops] == [("Rotten Flesh", 1), ("Zombie Heart", 3)]
    assert outcome.drops is event.drops

    result = await outcome.reward_task
    assert result.amount == 10
    assert result.currency is Currency.COIN
    assert announced == [result]
    assert await db.get_balance(42, ACCOUNT_KIND, Currency.COIN) == 10


@pytest.mark.asyncio
async def test_suppressed_defaults_keep_only_custom_drops(store, codec):
    _configure(store, codec, suppress=True, drops=[(Item(name="Zombie Heart"), 100.0, 1)])
    rewards = SlayerRewards(store, DropTableCache(store, codec), deposit=_RecordingDeposit())

    outcome = rewards.handle_kill(KillEvent(7, "zombie", drops=[Item(name="Rotten Flesh"), Item(name="Carrot")]))
    assert [i.name for i in outcome.drops] == ["Zombie Heart"]
    await outcome.reward_task


def test_kill_without_player_changes_nothing(store, codec):
    _configure(store, codec, suppress=True, drops=[(Item(name="Zombie Heart"), 100.0, 1)])
    deposit = _RecordingDeposit()
    rewards = SlayerRewards(store, DropTableCache(store, codec), deposit=deposit)

    outcome = rewards.handle_kill(KillEvent(None, "zombie", drops=[Item(name="Rotten Flesh")]))
    assert [i.name for i in outcome.drops] == ["Rotten Flesh"]
    assert outcome.reward_task is None
    assert deposit.calls == []


@pytest.mark.asyncio
async def test_unconfigured_creature_pays_nothing(store, codec):
    deposit = _RecordingDeposit()
    rewards = SlayerRewards(store, DropTableCache(store, codec), deposit=deposit)

    outcome = rewards.handle_kill(KillEvent(1, "ghast", drops=[Item(name="Tear")]))
    assert [i.name for i in outcome.drops] == ["Tear"]
    assert await outcome.reward_task is None
    assert deposit.calls == []
    assert not store.exists("ghast")


@pytest.mark.asyncio
async def test_malformed_amount_skips_deposit(store, codec):
    _configure(store, codec, amount="lots")
    deposit = _RecordingDeposit()
    rewards = SlayerRewards(store, DropTableCache(store, codec), deposit=deposit)

    assert await rewards.reward_on_kill(1, "zombie") is None
    assert deposit.calls == []


@pytest.mark.asyncio
async def test_unknown_currency_uses_default(store, codec):
    _configure(store, codec, amount="5", currency="platinum")
    deposit = _RecordingDeposit()
    rewards = SlayerRewards(store, DropTableCache(store, codec), default_currency="gold", deposit=deposit)

    result = await rewards.reward_on_kill(9, "zombie")
    assert result.currency is Currency.GOLD
    assert deposit.calls == [(9, "PLAYER", Currency.GOLD, 5)]


@pytest.mark.asyncio
async def test_refused_deposit_is_not_announced(store, codec):
    _configure(store, codec, amount="5")
    rewards = SlayerRewards(store, DropTableCache(store, codec), deposit=_RecordingDeposit(ok=False))
    announced = []

    async def on_deposited(result):
        announced.append(result)

    assert await rewards.reward_on_kill(9, "zombie", on_deposited=on_deposited) is None
    assert announced == []


@pytest.mark.asyncio
async def test_drop_edits_apply_to_the_next_kill(store, codec):
    _configure(store, codec, amount="0")
    cache = DropTableCache(store, codec)
    rewards = SlayerRewards(store, cache, deposit=_RecordingDeposit())
    assert rewards.apply_custom_drops("zombie", []) == []

    _configure(store, codec, amount="0", drops=[(Item(name="Zombie Heart"), 100.0, 2)])

    assert [i.name for i in rewards.apply_custom_drops("zombie", [])] == ["Zombie Heart"]


@pytest.mark.asyncio
async def test_every_zombie_kill_pays_ten_coin_and_one_heart(store, codec):
    _configure(store, codec, drops=[(Item(name="Zombie Heart"), 100.0, 3)])
    rewards = SlayerRewards(store, DropTableCache(store, codec))

    for _ in range(25):
        outcome = rewards.handle_kill(KillEvent(3, "zombie"))
        assert [(i.name, i.quantity) for i in outcome.drops] == [("Zombie Heart", 3)]
        result = await outcome.reward_task
        assert (result.amount, result.currency) == (10, Currency.COIN)

    assert await db.get_balance(3, ACCOUNT_KIND, Currency.COIN) == 250
