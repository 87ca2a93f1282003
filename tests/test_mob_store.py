import pytest

from slayer_bot.utils.mob_store import MobStoreError


def test_create_default_document(store):
    assert store.get("zombie") is None
    assert store.last_modified("zombie") is None

    doc = store.ensure("Zombie")
    assert store.exists("zombie")
    assert doc.get("currency") == "coin"
    assert doc.get("amount") == "0"
    assert store.last_modified("zombie") is not None
    assert store.creature_types() == ["zombie"]


def test_dotted_paths_and_pruning(store):
    doc = store.ensure("spider")
    doc.set("item_drop.1.chance", 5.0)
    assert doc.get("item_drop.1.chance") == 5.0
    assert doc.contains("item_drop.1")

    doc.set("item_drop.1", None)
    assert not doc.contains("item_drop")
    assert doc.section("item_drop") == {}
    assert doc.get("item_drop.1.chance", 100.0) == 100.0


def test_integer_yaml_keys_become_strings(store):
    store.path_for("husk").write_text("item_drop:\n  1:\n    chance: 40\n", encoding="utf-8")
    doc = store.load("husk")
    assert doc.get("item_drop.1.chance") == 40
    assert list(doc.section("item_drop")) == ["1"]


def test_unreadable_documents_load_empty(store):
    store.path_for("broken").write_text("amount: [unclosed\n", encoding="utf-8")
    store.path_for("listy").write_text("- a\n- b\n", encoding="utf-8")
    assert store.load("broken").data == {}
    assert store.load("listy").data == {}


def test_save_round_trip(store):
    doc = store.ensure("creeper")
    doc.set("amount", "10-20")
    doc.set("cancel_default_drops", True)
    store.save(doc)

    again = store.load("creeper")
    assert again.get("amount") == "10-20"
    assert again.get("cancel_default_drops") is True
    # no temp files left behind
    assert sorted(p.name for p in store.mobs_dir.iterdir()) == ["creeper.yml"]


def test_save_failure_raises_store_error(store):
    doc = store.load("ghast")
    store.path_for("ghast").mkdir()
    with pytest.raises(MobStoreError):
        store.save(doc)
