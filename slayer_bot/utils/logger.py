"""Logging utilities for the Slayer Rewards bot.

`get_logger` hands out stdlib loggers with a single stream handler. The
audit side is an asyncio queue drained by a background task that appends
each record to a JSONL archive (editor saves, reward payouts, command
errors). `prune_jsonl_archive` trims that archive by age.
"""
import logging
import asyncio
import json
import time
from pathlib import Path
from typing import Optional

_queue: Optional[asyncio.Queue] = None
_writer_loop: Optional[asyncio.AbstractEventLoop] = None
_archive_path: Optional[Path] = None


def get_logger(name: str = "slayer") -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        handler.setFormatter(fmt)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def configure_archive(path: Path) -> None:
    """Point the audit writer at `path` (defaults to ./data/audit.jsonl)."""
    global _archive_path
    _archive_path = Path(path)


def archive_path() -> Path:
    if _archive_path is not None:
        return _archive_path
    return Path.cwd() / "data" / "audit.jsonl"


def start_background_writer(loop: Optional[asyncio.AbstractEventLoop] = None) -> asyncio.Queue:
    """Start the audit queue and its writer coroutine.

    Returns the queue so callers can put dicts on it directly. Calling it
    again on the same loop returns the already running queue; a new loop
    gets a fresh queue and writer.
    """
    global _queue, _writer_loop
    if loop is None:
        loop = asyncio.get_event_loop()
    if _queue is not None and _writer_loop is loop:
        return _queue

    _writer_loop = loop
    _queue = queue = asyncio.Queue()

    async def _writer():
        logger = get_logger("slayer.audit")
        while True:
            item = await queue.get()
            try:
                if isinstance(item, dict) and "ts" not in item:
                    item["ts"] = int(time.time())
                logger.debug("AUDIT: %s", item)
                target = archive_path()
                try:
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with target.open("a", encoding="utf-8") as f:
                        f.write(json.dumps(item, default=str, ensure_ascii=False) + "\n")
                except OSError:
                    logger.exception("Failed to append to audit archive %s", target)
            finally:
                queue.task_done()

    loop.create_task(_writer())
    return _queue


def enqueue_log(item: object) -> None:
    """Enqueue an audit record for asynchronous writing.

    Starts the writer lazily. Outside a running event loop the record is
    dropped, which keeps synchronous callers (and tests) side-effect free.
    """
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return

    q = start_background_writer(loop)
    q.put_nowait(item)


def prune_jsonl_archive(days: int = 30, path: Optional[Path] = None) -> int:
    """Drop audit entries older than `days`.

    Returns the number of kept entries. Lines that are not valid JSON are
    kept as they are. On I/O failure the archive is left untouched and 0 is
    returned.
    """
    if path is None:
        path = archive_path()
    if not path.exists():
        return 0

    cutoff = int(time.time()) - int(days) * 24 * 60 * 60
    kept = []
    try:
        with path.open("r", encoding="utf-8") as f:
            for line in f:
                try:
                    obj = json.loads(line)
                except ValueError:
                    kept.append(line)
                    continue
                ts = int(obj.get("ts") or 0) if isinstance(obj, dict) else 0
                if ts >= cutoff:
                    kept.append(line)
        tmp = path.with_suffix(".tmp")
        with tmp.open("w", encoding="utf-8") as out:
            out.writelines(kept)
        tmp.replace(path)
        return len(kept)
    except OSError:
        get_logger("slayer.audit").exception("Failed to prune audit archive %s", path)
        return 0
