"""Known creature types and command completion."""
from __future__ import annotations

from typing import Iterable, List, Sequence

KNOWN_CREATURES: Sequence[str] = (
    "blaze", "cave_spider", "creeper", "drowned", "enderman", "evoker",
    "ghast", "guardian", "hoglin", "husk", "magma_cube", "phantom",
    "piglin", "pillager", "ravager", "shulker", "silverfish", "skeleton",
    "slime", "spider", "stray", "vindicator", "witch", "wither_skeleton",
    "zoglin", "zombie", "zombie_villager", "zombified_piglin",
)

SUBCOMMANDS: Sequence[str] = ("edit",)


def normalise(creature_type: str) -> str:
    return creature_type.strip().lower().replace(" ", "_").replace("-", "_")


def known_creatures(configured: Iterable[str] = ()) -> List[str]:
    """Built-in creature types plus any that already have a document."""
    return sorted(set(KNOWN_CREATURES) | {normalise(c) for c in configured})


def complete(args: Sequence[str], creatures: Iterable[str]) -> List[str]:
    """Suggestions for `slayerrewards <args...>`, sorted.

    The first argument completes to a subcommand, the second (after `edit`)
    to a creature type. Matching is a case-insensitive prefix match.
    """
    if len(args) == 1:
        prefix = args[0].lower()
        return sorted(s for s in SUBCOMMANDS if s.startswith(prefix))
    if len(args) == 2 and args[0].lower() == "edit":
        prefix = args[1].lower()
        return sorted(c for c in creatures if c.lower().startswith(prefix))
    return []
