"""Editor pages: loading, annotating and persisting 45-slot pages.

Page `p` covers drop keys `(p-1)*45+1 .. p*45`. Items shown in the editor
carry a three-line annotation at the end of their lore (divider, chance,
hint). The annotation is stripped before an item is stored and replaced
(never stacked) when it is shown again.
"""
from __future__ import annotations

from typing import List, Optional

from slayer_bot.utils.items import Item, ItemCodec, decode_payload, encode_payload
from slayer_bot.utils.mob_store import MobDocument

ITEMS_PER_PAGE = 45

DIVIDER = "----------------"
CHANCE_PREFIX = "Chance: "
EDIT_HINT = "Select this slot to edit its drop chance"

Grid = List[Optional[Item]]


def page_key_range(page: int) -> range:
    start = (page - 1) * ITEMS_PER_PAGE + 1
    return range(start, start + ITEMS_PER_PAGE)


def absolute_key(page: int, slot: int) -> int:
    """Drop key for 1-based `slot` on `page`."""
    return (page - 1) * ITEMS_PER_PAGE + slot


def empty_grid() -> Grid:
    return [None] * ITEMS_PER_PAGE


def _is_annotation(lore: List[str]) -> bool:
    return (
        len(lore) >= 3
        and lore[-1] == EDIT_HINT
        and lore[-2].startswith(CHANCE_PREFIX)
        and lore[-3] == DIVIDER
    )


def strip_annotation(lore: List[str]) -> List[str]:
    """Remove every trailing editor annotation from `lore` in place."""
    while _is_annotation(lore):
        del lore[-3:]
    return lore


def annotate(item: Item, chance: float) -> Item:
    strip_annotation(item.lore)
    item.lore.extend([DIVIDER, f"{CHANCE_PREFIX}{chance}%", EDIT_HINT])
    return item


def max_key(document: MobDocument) -> int:
    highest = 0
    for raw in document.section("item_drop"):
        try:
            highest = max(highest, int(raw))
        except ValueError:
            continue
    return highest


def stored_chance(document: MobDocument, key: int) -> float:
    try:
        return float(document.get(f"item_drop.{key}.chance", 100.0))
    except (TypeError, ValueError):
        return 100.0


def load_page(document: MobDocument, codec: ItemCodec, page: int) -> Grid:
    """Decode the items of `page` into an annotated grid."""
    grid = empty_grid()
    for index, key in enumerate(page_key_range(page)):
        item = decode_payload(codec, document.get(f"item_drop.{key}.metadata"))
        if item is None:
            continue
        try:
            item.quantity = int(document.get(f"item_drop.{key}.amount", item.quantity))
        except (TypeError, ValueError):
            pass
        grid[index] = annotate(item, stored_chance(document, key))
    return grid


def save_page(document: MobDocument, codec: ItemCodec, page: int, grid: Grid) -> None:
    """Write `grid` into `document` for the keys of `page`.

    Occupied positions store payload and quantity; a chance is only written
    when the key has none yet, so earlier chance edits survive re-saves.
    Empty positions remove their key. The caller saves the document.
    """
    for index, key in enumerate(page_key_range(page)):
        item = grid[index] if index < len(grid) else None
        base = f"item_drop.{key}"
        if item is None:
            document.set(base, None)
            continue
        clean = item.clone()
        strip_annotation(clean.lore)
        document.set(f"{base}.metadata", encode_payload(codec, clean))
        document.set(f"{base}.amount", int(item.quantity))
        if not document.contains(f"{base}.chance"):
            document.set(f"{base}.chance", 100.0)


def has_next_page(document: MobDocument, page: int, grid: Grid) -> bool:
    """A next page is offered when later keys exist or this page is full."""
    if max_key(document) > page * ITEMS_PER_PAGE:
        return True
    return all(slot is not None for slot in grid)
