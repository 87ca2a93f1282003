"""Default world drops for creature kills.

This is the drop set a kill produces before any custom table is applied,
and the set that `cancel_default_drops` discards. Tables are read lazily
from `loot_tables.yaml`:

    default:
      items:
        - {name: Bone, material: bone, quantity: 1, weight: 60}
    zombie:
      items:
        - {name: Rotten Flesh, material: flesh, quantity: 2, weight: 80}

Design notes:
- Uses random.SystemRandom for the default RNG.
- Falls back to a built-in table when the YAML file is missing or empty so
  the dev experience works out-of-the-box.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional
import random
import yaml

from slayer_bot.utils.items import Item
from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.loot")

_RNG = random.SystemRandom()
_LOOT_PATH = Path("data/loot_tables.yaml")
_LOOT_CACHE: Optional[Dict[str, Any]] = None

_BUILTIN_TABLES: Dict[str, Any] = {
    "default": {
        "items": [
            {"name": "Bone", "material": "bone", "quantity": 1, "weight": 60},
            {"name": "String", "material": "string", "quantity": 2, "weight": 30},
            {"name": "Experience Shard", "material": "shard", "quantity": 1, "weight": 10},
        ],
    },
    "zombie": {
        "items": [
            {"name": "Rotten Flesh", "material": "flesh", "quantity": 2, "weight": 90},
            {"name": "Iron Ingot", "material": "iron", "quantity": 1, "weight": 10},
        ],
    },
    "skeleton": {
        "items": [
            {"name": "Bone", "material": "bone", "quantity": 2, "weight": 70},
            {"name": "Arrow", "material": "arrow", "quantity": 3, "weight": 30},
        ],
    },
}


def set_tables_path(path: Path) -> None:
    """Use `path` for loot tables and drop anything already loaded."""
    global _LOOT_PATH
    _LOOT_PATH = Path(path)
    reload_tables()


def _load_tables() -> Dict[str, Any]:
    global _LOOT_CACHE
    if _LOOT_CACHE is not None:
        return _LOOT_CACHE

    if not _LOOT_PATH.exists():
        _LOOT_CACHE = _BUILTIN_TABLES
        return _LOOT_CACHE

    try:
        raw = yaml.safe_load(_LOOT_PATH.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        logger.exception("Cannot read loot tables at %s; using built-in tables", _LOOT_PATH)
        raw = {}

    if not isinstance(raw, dict) or not raw:
        _LOOT_CACHE = _BUILTIN_TABLES
    else:
        _LOOT_CACHE = {str(k).lower(): v for k, v in raw.items()}

    return _LOOT_CACHE


def _weighted_choice(items: List[Dict[str, Any]], rng: random.Random) -> Optional[Dict[str, Any]]:
    """Return a single entry chosen by its 'weight' key.

    Entries without a numeric weight count as weight=1. Returns None for an
    empty list.
    """
    if not items:
        return None
    weights = [float(item.get("weight", 1)) for item in items]
    total = sum(weights)
    if total <= 0:
        return items[0]
    pick = rng.random() * total
    upto = 0.0
    for item, w in zip(items, weights):
        upto += w
        if pick <= upto:
            return item
    return items[-1]


def generate_default_drops(creature_type: str, rng: Optional[random.Random] = None) -> List[Item]:
    """Roll the world's default drops for a kill of `creature_type`.

    One weighted pick per kill; common entries drop more often than rare
    ones. Unknown creature types use the `default` table.
    """
    rng = rng or _RNG
    tables = _load_tables()
    spec = tables.get(creature_type.lower()) or tables.get("default") or {}
    items_def = spec.get("items", []) if isinstance(spec, dict) else []

    drops: List[Item] = []
    choice = _weighted_choice(items_def, rng)
    if choice is None:
        return drops

    weights = [float(i.get("weight", 1)) for i in items_def]
    total_weight = sum(weights) or 1.0
    base_prob = float(choice.get("weight", 1)) / total_weight
    chance = min(0.35 + base_prob * 0.75, 0.95)
    if rng.random() < chance:
        drops.append(Item(
            name=str(choice.get("name", "Unknown")),
            material=str(choice.get("material", "misc")),
            quantity=max(1, int(choice.get("quantity", 1))),
        ))
    return drops


def reload_tables() -> None:
    """Clear cached tables so they are reloaded on next use."""
    global _LOOT_CACHE
    _LOOT_CACHE = None
