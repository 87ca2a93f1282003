"""Item model and the pluggable payload codec.

Creature documents never interpret item payloads; they store whatever the
configured `ItemCodec` produces, base64-encoded so it survives YAML.
`YamlItemCodec` is the default codec.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol
import base64
import binascii

import yaml
from pydantic import BaseModel, Field, ValidationError

from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.items")


class Item(BaseModel):
    name: str
    material: str = "misc"
    quantity: int = 1
    lore: List[str] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    def clone(self) -> "Item":
        return self.model_copy(deep=True)

    def display(self) -> str:
        return f"{self.name} x{self.quantity}"


class ItemCodec(Protocol):
    def encode(self, item: Item) -> bytes: ...

    def decode(self, data: bytes) -> Optional[Item]: ...


class YamlItemCodec:
    """Serialize items as a small YAML mapping."""

    def encode(self, item: Item) -> bytes:
        return yaml.safe_dump(item.model_dump(), sort_keys=True, allow_unicode=True).encode("utf-8")

    def decode(self, data: bytes) -> Optional[Item]:
        try:
            raw = yaml.safe_load(data.decode("utf-8"))
        except (UnicodeDecodeError, yaml.YAMLError):
            logger.warning("Item payload is not valid YAML")
            return None
        if not isinstance(raw, dict) or not raw.get("name"):
            logger.warning("Item payload has no name: %r", raw)
            return None
        try:
            return Item.model_validate(raw)
        except ValidationError:
            logger.warning("Item payload has malformed fields: %r", raw)
            return None


def encode_payload(codec: ItemCodec, item: Item) -> str:
    """Encode `item` to the base64 text stored under `metadata`."""
    return base64.b64encode(codec.encode(item)).decode("ascii")


def decode_payload(codec: ItemCodec, text: Optional[str]) -> Optional[Item]:
    """Decode a stored `metadata` value; malformed or empty input gives None."""
    if not text or not isinstance(text, str):
        return None
    try:
        data = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Item payload is not valid base64")
        return None
    return codec.decode(data)
