"""File-backed creature documents.

Each creature type owns one YAML document at `<mobs_dir>/<type>.yml`:

    currency: coin
    amount: "10-20"
    cancel_default_drops: false
    item_drop:
      '1': {metadata: <base64 payload>, amount: 3, chance: 50.0}

`MobDocument` gives dotted-path access (`item_drop.1.chance`) over the
parsed mapping; `MobStore` loads, creates and saves documents and reports
each file's last-modified time, which the drop cache keys on.
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
import os
import tempfile

import yaml

from slayer_bot.utils.logger import get_logger

logger = get_logger("slayer.store")

_MISSING = object()


class MobStoreError(Exception):
    """Raised when a creature document cannot be written."""


def _normalise(node: Any) -> Any:
    # YAML happily yields int keys for `1:`; dotted paths are strings
    if isinstance(node, dict):
        return {str(k): _normalise(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_normalise(v) for v in node]
    return node


class MobDocument:
    """A parsed creature document with dotted-key access."""

    def __init__(self, creature_type: str, path: Path, data: Optional[Dict[str, Any]] = None):
        self.creature_type = creature_type.lower()
        self.path = path
        self.data: Dict[str, Any] = data if data is not None else {}

    def _walk(self, parts: List[str]) -> Any:
        node: Any = self.data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return _MISSING
            node = node[part]
        return node

    def get(self, path: str, default: Any = None) -> Any:
        value = self._walk(path.split("."))
        return default if value is _MISSING or value is None else value

    def contains(self, path: str) -> bool:
        return self._walk(path.split(".")) is not _MISSING

    def section(self, path: str) -> Dict[str, Any]:
        """Return the mapping at `path`, or an empty dict."""
        value = self._walk(path.split("."))
        return value if isinstance(value, dict) else {}

    def set(self, path: str, value: Any) -> None:
        """Set `path` to `value`; `None` removes the key.

        Intermediate mappings are created on write and pruned again when a
        removal leaves them empty.
        """
        parts = path.split(".")
        if value is None:
            self._delete(parts)
            return
        node = self.data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[parts[-1]] = value

    def _delete(self, parts: List[str]) -> None:
        trail = []
        node: Any = self.data
        for part in parts[:-1]:
            if not isinstance(node, dict) or part not in node:
                return
            trail.append((node, part))
            node = node[part]
        if isinstance(node, dict):
            node.pop(parts[-1], None)
        for parent, key in reversed(trail):
            if isinstance(parent[key], dict) and not parent[key]:
                del parent[key]
            else:
                break

    def dump(self) -> str:
        return yaml.safe_dump(self.data, sort_keys=False, allow_unicode=True)


class MobStore:
    """Directory of creature documents."""

    def __init__(self, mobs_dir: Path, default_currency: str = "coin"):
        self.mobs_dir = Path(mobs_dir)
        self.default_currency = default_currency
        self.mobs_dir.mkdir(parents=True, exist_ok=True)

    def path_for(self, creature_type: str) -> Path:
        return self.mobs_dir / f"{creature_type.lower()}.yml"

    def exists(self, creature_type: str) -> bool:
        return self.path_for(creature_type).exists()

    def last_modified(self, creature_type: str) -> Optional[int]:
        """Return the document's mtime in nanoseconds, or None if absent."""
        try:
            return self.path_for(creature_type).stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def fingerprint(self, creature_type: str) -> Optional[Tuple[int, int, int]]:
        """Return `(mtime_ns, size, inode)` of the document, or None if absent.

        Every save replaces the file, so the inode changes even when two saves
        land on the same coarse timestamp.
        """
        try:
            st = self.path_for(creature_type).stat()
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size, st.st_ino

    def load(self, creature_type: str) -> MobDocument:
        """Load a document; a missing or unreadable file yields an empty one."""
        path = self.path_for(creature_type)
        data: Dict[str, Any] = {}
        if path.exists():
            try:
                raw = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError):
                logger.exception("Cannot read creature document %s", path)
                raw = None
            if isinstance(raw, dict):
                data = _normalise(raw)
            elif raw is not None:
                logger.warning("Creature document %s is not a mapping; ignoring its content", path)
        return MobDocument(creature_type, path, data)

    def get(self, creature_type: str) -> Optional[MobDocument]:
        if not self.exists(creature_type):
            return None
        return self.load(creature_type)

    def create_default(self, creature_type: str) -> MobDocument:
        doc = MobDocument(creature_type, self.path_for(creature_type))
        doc.set("currency", self.default_currency)
        doc.set("amount", "0")
        self.save(doc)
        logger.info("Created default document for %s", doc.creature_type)
        return doc

    def ensure(self, creature_type: str) -> MobDocument:
        """Load the document, creating it with safe defaults when missing."""
        if not self.exists(creature_type):
            return self.create_default(creature_type)
        return self.load(creature_type)

    def save(self, doc: MobDocument) -> None:
        """Atomically write `doc` to its path."""
        try:
            text = doc.dump()
            doc.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(doc.path.parent), prefix=f".{doc.path.stem}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, doc.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, yaml.YAMLError) as exc:
            raise MobStoreError(f"Failed to save {doc.path}: {exc}") from exc

    def creature_types(self) -> List[str]:
        """Creature types that currently have a document, sorted."""
        return sorted(p.stem for p in self.mobs_dir.glob("*.yml"))
