"""Custom drop tables: parsing, caching and resolution.

The cache keeps one parsed `DropTable` per creature type together with the
document's last-modified time and file identity (size, inode). A lookup
whose fingerprint no longer matches reparses the whole document and swaps
the entry in one assignment; entries are never patched in place and never
expire on a timer.

`resolve_drops` rolls every entry independently, so several entries can
hit on the same kill.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple
import math
import random
import threading

from pydantic import BaseModel, ConfigDict

from slayer_bot.utils.items import Item, ItemCodec, decode_payload
from slayer_bot.utils.mob_store import MobDocument, MobStore
from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.drops")

_RNG = random.SystemRandom()


class DropEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: int
    chance: float
    item: Item
    quantity: int


class DropTable(BaseModel):
    model_config = ConfigDict(frozen=True)

    creature_type: str
    entries: Tuple[DropEntry, ...]
    suppress_default_drops: bool = False


class CachedEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    last_modified: int
    fingerprint: Tuple[int, int, int]
    table: DropTable


def clamp_chance(value: float) -> float:
    if math.isnan(value):
        return 100.0
    return max(0.0, min(100.0, float(value)))


def _number(value: Any, default: Any, cast: Callable[[Any], Any]) -> Any:
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        return default


def parse_drop_table(document: MobDocument, codec: ItemCodec) -> DropTable:
    """Build a `DropTable` from a creature document.

    Entries whose payload is missing or undecodable are skipped one by one;
    the rest of the table still loads. Unreadable chances count as 100 and
    unreadable amounts as 1.
    """
    entries: List[DropEntry] = []
    for raw_key, node in document.section("item_drop").items():
        try:
            key = int(raw_key)
        except ValueError:
            logger.warning("%s: ignoring non-numeric drop key %r", document.creature_type, raw_key)
            continue
        if key < 1 or not isinstance(node, dict):
            logger.warning("%s: ignoring malformed drop entry %r", document.creature_type, raw_key)
            continue

        item = decode_payload(codec, node.get("metadata"))
        if item is None:
            logger.warning("%s: drop %s has no usable item payload; skipped", document.creature_type, key)
            continue
        # unreadable numbers fall back to the defaults the editor shows
        chance = clamp_chance(_number(node.get("chance"), 100.0, float))
        quantity = max(0, _number(node.get("amount"), 1, int))
        entries.append(DropEntry(key=key, chance=chance, item=item, quantity=quantity))

    entries.sort(key=lambda e: e.key)
    return DropTable(
        creature_type=document.creature_type,
        entries=tuple(entries),
        suppress_default_drops=bool(document.get("cancel_default_drops", False)),
    )


class DropTableCache:
    """Per-creature drop tables, invalidated when the document file changes."""

    def __init__(self, store: MobStore, codec: ItemCodec):
        self.store = store
        self.codec = codec
        self._entries: Dict[str, CachedEntry] = {}
        self._lock = threading.Lock()
        self.reload_count = 0

    def get_drop_table(self, creature_type: str) -> Optional[DropTable]:
        """Return the current table, or None if the creature has no document."""
        key = creature_type.lower()
        with self._lock:
            fingerprint = self.store.fingerprint(key)
            if fingerprint is None:
                self._entries.pop(key, None)
                return None

            cached = self._entries.get(key)
            if cached is None or cached.fingerprint != fingerprint:
                table = parse_drop_table(self.store.load(key), self.codec)
                cached = CachedEntry(last_modified=fingerprint[0], fingerprint=fingerprint, table=table)
                self._entries[key] = cached
                self.reload_count += 1
                logger.info("Loaded %d drop(s) for %s", len(table.entries), key)
            return cached.table

    def invalidate(self, creature_type: Optional[str] = None) -> None:
        with self._lock:
            if creature_type is None:
                self._entries.clear()
            else:
                self._entries.pop(creature_type.lower(), None)

    def stats(self) -> Dict[str, int]:
        return {"cached_tables": len(self._entries), "reloads": self.reload_count}


def resolve_drops(table: DropTable, rng: Optional[random.Random] = None) -> List[Item]:
    """Roll each entry once and return fresh item instances for the hits."""
    rng = rng or _RNG
    hits: List[Item] = []
    for entry in table.entries:
        if rng.random() * 100 < entry.chance:
            item = entry.item.clone()
            item.quantity = entry.quantity
            hits.append(item)
    return hits
