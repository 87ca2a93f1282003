import pytest

from slayer_bot.utils import db
from slayer_bot.utils import logger as slayer_logger
from slayer_bot.utils.items import YamlItemCodec
from slayer_bot.utils.mob_store import MobStore


@pytest.fixture(autouse=True)
def _isolated_state(tmp_path):
    # audit records and ledger balances must not leak between tests
    slayer_logger.configure_archive(tmp_path / "audit.jsonl")
    db._inmemory_store.clear()
    yield
    db._inmemory_store.clear()


@pytest.fixture
def store(tmp_path):
    return MobStore(tmp_path / "mobs")


@pytest.fixture
def codec():
    return YamlItemCodec()
