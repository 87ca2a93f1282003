import pytest

from slayer_bot.editor import pages
from slayer_bot.editor.session import (
    EditorPersistenceError,
    EditorSessionManager,
    EditorStateError,
    InputMode,
)
from slayer_bot.utils.items import Item, decode_payload
from slayer_bot.utils.mob_store import MobStoreError
from slayer_bot.utils.rewards import Currency

OP = 1001


@pytest.fixture
def editor(store, codec):
    return EditorSessionManager(store, codec)


def _stored_item(store, codec, key, creature="zombie"):
    return decode_payload(codec, store.load(creature).get(f"item_drop.{key}.metadata"))


def test_open_creates_document_with_defaults(editor, store):
    assert not store.exists("zombie")
    page = editor.open(OP, "Zombie", page=0)
    assert store.exists("zombie")
    assert page.page == 1
    assert page.amount_expr == "0"
    assert page.currency is Currency.COIN
    assert page.occupied() == []
    assert not page.has_previous and not page.has_next
    assert len(editor) == 1


def test_reopen_cycles_do_not_accumulate_annotations(editor, store, codec):
    editor.open(OP, "zombie")
    editor.place_item(OP, 3, Item(name="Heart", lore=["Still beating"], quantity=2))
    assert editor.close(OP)

    for _ in range(5):
        page = editor.open(OP, "zombie")
        editor.save(OP)
        assert editor.close(OP)

    (slot, item), = page.occupied()
    assert slot == 3
    assert item.lore.count(pages.DIVIDER) == 1
    stored = _stored_item(store, codec, 3)
    assert stored.lore == ["Still beating"]
    assert store.load("zombie").get("item_drop.3.amount") == 2


def test_chance_edit_updates_only_that_entry(editor, store):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.place_item(OP, 2, Item(name="Heart"))

    key = editor.select_chance_edit(OP, 2)
    assert key == 2
    assert editor.is_awaiting(OP)
    assert editor.session(OP).mode is InputMode.AWAITING_CHANCE

    result = editor.submit_text(OP, "35")
    assert result.accepted
    assert result.notice == "Drop chance for entry 2 set to 35.0%."
    doc = store.load("zombie")
    assert doc.get("item_drop.2.chance") == 35.0
    assert doc.get("item_drop.1.chance") == 100.0
    assert editor.session(OP).mode is InputMode.VIEWING
    assert editor.render(OP).slots[1].lore[-2] == "Chance: 35.0%"


def test_invalid_chance_keeps_stored_value(editor, store):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.select_chance_edit(OP, 1)

    result = editor.submit_text(OP, "lots")
    assert not result.accepted
    assert "not a valid number" in result.notice
    assert store.load("zombie").get("item_drop.1.chance") == 100.0
    assert editor.session(OP).mode is InputMode.VIEWING
    assert editor.submit_text(OP, "50") is None


@pytest.mark.parametrize("text,expected", [("150", 100.0), ("-5", 0.0), (" 12.5 ", 12.5)])
def test_chance_is_clamped(editor, store, text, expected):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.select_chance_edit(OP, 1)
    assert editor.submit_text(OP, text).accepted
    assert store.load("zombie").get("item_drop.1.chance") == expected


def test_non_finite_chance_is_rejected(editor, store):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.select_chance_edit(OP, 1)
    assert not editor.submit_text(OP, "nan").accepted
    assert store.load("zombie").get("item_drop.1.chance") == 100.0


def test_selecting_an_empty_slot_is_refused(editor):
    editor.open(OP, "zombie")
    with pytest.raises(EditorStateError):
        editor.select_chance_edit(OP, 4)
    with pytest.raises(EditorStateError):
        editor.place_item(OP, 46, Item(name="Bone"))


def test_close_is_ignored_while_awaiting_input(editor):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.select_chance_edit(OP, 1)

    assert editor.close(OP) is False
    assert editor.session(OP) is not None
    with pytest.raises(EditorStateError):
        editor.navigate(OP, 1)

    editor.submit_text(OP, "20")
    assert editor.close(OP) is True
    assert editor.session(OP) is None
    assert editor.close(OP) is False


def test_amount_prompt_stores_text_verbatim(editor, store):
    editor.open(OP, "zombie")
    editor.select_amount_edit(OP)
    assert editor.session(OP).mode is InputMode.AWAITING_AMOUNT

    result = editor.submit_text(OP, "10-20")
    assert result.accepted
    assert store.load("zombie").get("amount") == "10-20"
    assert editor.render(OP).amount_expr == "10-20"


def test_toggle_defaults_and_cycle_currency(editor, store):
    editor.open(OP, "zombie")
    assert editor.toggle_suppress_defaults(OP) is True
    assert store.load("zombie").get("cancel_default_drops") is True
    assert editor.toggle_suppress_defaults(OP) is False

    assert editor.cycle_currency(OP) is Currency.COPPER
    assert editor.cycle_currency(OP) is Currency.SILVER
    assert store.load("zombie").get("currency") == "silver"


def test_navigation(editor, store, codec):
    editor.open(OP, "zombie")
    with pytest.raises(EditorStateError):
        editor.navigate(OP, -1)
    with pytest.raises(EditorStateError):
        editor.navigate(OP, 1)

    for slot in range(1, pages.ITEMS_PER_PAGE + 1):
        editor.place_item(OP, slot, Item(name=f"Item {slot}"))
    page = editor.navigate(OP, 1)
    assert page.page == 2
    assert page.has_previous
    assert page.occupied() == []

    editor.place_item(OP, 1, Item(name="Second page"))
    page = editor.navigate(OP, -1)
    assert page.page == 1
    assert len(page.occupied()) == pages.ITEMS_PER_PAGE
    assert _stored_item(store, codec, 46).name == "Second page"
    with pytest.raises(EditorStateError):
        editor.navigate(OP, 2)


def test_open_at_later_page(editor, store, codec):
    editor.open(OP, "zombie")
    for slot in range(1, pages.ITEMS_PER_PAGE + 1):
        editor.place_item(OP, slot, Item(name=f"Item {slot}"))
    editor.navigate(OP, 1)
    editor.place_item(OP, 2, Item(name="Deep"))
    editor.close(OP)

    page = editor.open(OP, "zombie", page=2)
    assert [(slot, item.name) for slot, item in page.occupied()] == [(2, "Deep")]
    assert page.key_for(2) == 47


def test_failed_chance_save_keeps_prompt_armed(editor, store, monkeypatch):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))
    editor.select_chance_edit(OP, 1)

    real_save = store.save

    def broken_save(doc):
        raise MobStoreError("disk full")

    monkeypatch.setattr(store, "save", broken_save)
    result = editor.submit_text(OP, "40")
    assert not result.accepted
    assert editor.is_awaiting(OP)
    assert editor.prompts.pending(OP)

    monkeypatch.setattr(store, "save", real_save)
    assert editor.submit_text(OP, "40").accepted
    assert store.load("zombie").get("item_drop.1.chance") == 40.0


def test_failed_close_keeps_session(editor, store, monkeypatch):
    editor.open(OP, "zombie")
    editor.place_item(OP, 1, Item(name="Flesh"))

    def broken_save(doc):
        raise MobStoreError("read-only")

    monkeypatch.setattr(store, "save", broken_save)
    with pytest.raises(EditorPersistenceError):
        editor.close(OP)
    assert editor.session(OP) is not None
    assert editor.session(OP).grid[0].name == "Flesh"


def test_actions_without_session(editor):
    with pytest.raises(EditorStateError):
        editor.save(OP)
    assert editor.submit_text(OP, "5") is None
    assert not editor.is_awaiting(OP)


def test_sessions_are_per_operator(editor):
    editor.open(1, "zombie")
    editor.open(2, "skeleton")
    editor.place_item(1, 1, Item(name="Flesh"))
    assert editor.render(2).occupied() == []
    assert len(editor) == 2
