import asyncio
import json
import time
import pytest

from slayer_bot.utils import logger as slayer_logger


def test_prune_drops_old_entries(tmp_path):
    path = tmp_path / "audit.jsonl"
    now = int(time.time())
    path.write_text(
        json.dumps({"type": "old", "ts": now - 90 * 24 * 3600}) + "\n"
        + json.dumps({"type": "new", "ts": now}) + "\n"
        + "not json\n",
        encoding="utf-8",
    )
    assert slayer_logger.prune_jsonl_archive(days=30, path=path) == 2
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == json.dumps({"type": "new", "ts": now})
    assert lines[1] == "not json"


def test_prune_missing_archive(tmp_path):
    assert slayer_logger.prune_jsonl_archive(path=tmp_path / "none.jsonl") == 0


def test_enqueue_outside_loop_is_a_no_op(tmp_path):
    slayer_logger.enqueue_log({"type": "ignored"})
    assert not (tmp_path / "audit.jsonl").exists()


@pytest.mark.asyncio
async def test_enqueue_writes_archive(tmp_path):
    slayer_logger.enqueue_log({"type": "slayer_reward", "amount": 3})
    queue = slayer_logger.start_background_writer(asyncio.get_running_loop())
    await asyncio.wait_for(queue.join(), timeout=5)

    record = json.loads((tmp_path / "audit.jsonl").read_text(encoding="utf-8").strip())
    assert record["type"] == "slayer_reward"
    assert record["amount"] == 3
    assert "ts" in record
