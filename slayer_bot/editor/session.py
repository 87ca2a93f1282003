"""Per-operator drop editor sessions.

Each operator has at most one session: the creature being edited, the page
on screen, the unsaved grid of that page and the input mode. The manager
drives the transitions:

    VIEWING(page) --select_chance_edit--> AWAITING_CHANCE(key) --submit_chance--> VIEWING(page)
    VIEWING(page) --select_amount_edit--> AWAITING_AMOUNT      --submit_amount--> VIEWING(page)
    VIEWING(page) --navigate(+-1)-------> VIEWING(page+-1)
    VIEWING(page) --close---------------> (destroyed)

Every transition out of VIEWING first writes the visible page to the
document so placed items are not lost. Closing while a text prompt is
pending is ignored; the prompt's answer performs the next save.

Failed writes raise `EditorPersistenceError` and leave the session as it
was, so the operator can retry.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple
import math

from slayer_bot.editor import pages
from slayer_bot.editor.pages import Grid
from slayer_bot.editor.prompts import PromptBroker
from slayer_bot.utils.items import Item, ItemCodec
from slayer_bot.utils.mob_store import MobDocument, MobStore, MobStoreError
from slayer_bot.utils.rewards import Currency, resolve_currency
from slayer_bot.utils import logger as slayer_logger

logger = slayer_logger.get_logger("slayer.editor")


class InputMode(Enum):
    VIEWING = "viewing"
    AWAITING_CHANCE = "awaiting_chance"
    AWAITING_AMOUNT = "awaiting_amount"


class EditorStateError(Exception):
    """The requested action is not valid in the session's current state."""


class EditorPersistenceError(Exception):
    """A creature document could not be written."""


@dataclass
class EditorSession:
    operator_id: int
    creature_type: str
    page: int
    mode: InputMode = InputMode.VIEWING
    pending_slot: Optional[int] = None
    grid: Grid = field(default_factory=pages.empty_grid)

    @property
    def awaiting_input(self) -> bool:
        return self.mode is not InputMode.VIEWING


@dataclass(frozen=True)
class EditorPage:
    creature_type: str
    page: int
    slots: Tuple[Optional[Item], ...]
    has_previous: bool
    has_next: bool
    suppress_default_drops: bool
    currency: Currency
    amount_expr: str

    def occupied(self) -> List[Tuple[int, Item]]:
        """(slot, item) pairs for the filled positions, slot numbers 1-based."""
        return [(i + 1, item) for i, item in enumerate(self.slots) if item is not None]

    def key_for(self, slot: int) -> int:
        return pages.absolute_key(self.page, slot)


@dataclass(frozen=True)
class InputResult:
    accepted: bool
    notice: str
    value: Any = None


class EditorSessionManager:
    def __init__(self, store: MobStore, codec: ItemCodec, default_currency: Any = Currency.COIN,
                 prompts: Optional[PromptBroker] = None):
        self.store = store
        self.codec = codec
        self.default_currency = resolve_currency(default_currency)
        self.prompts = prompts if prompts is not None else PromptBroker()
        self._sessions: Dict[int, EditorSession] = {}

    # ----- lookup

    def session(self, operator_id: int) -> Optional[EditorSession]:
        return self._sessions.get(operator_id)

    def is_awaiting(self, operator_id: int) -> bool:
        s = self._sessions.get(operator_id)
        return s is not None and s.awaiting_input

    def __len__(self) -> int:
        return len(self._sessions)

    def _require(self, operator_id: int, *, viewing: bool = True) -> EditorSession:
        s = self._sessions.get(operator_id)
        if s is None:
            raise EditorStateError("No editor is open. Use `slayerrewards edit <creature>` first.")
        if viewing and s.awaiting_input:
            raise EditorStateError("Finish the pending input first (send the value in chat).")
        return s

    @staticmethod
    def _check_slot(slot: int) -> None:
        if not 1 <= slot <= pages.ITEMS_PER_PAGE:
            raise EditorStateError(f"Slot must be between 1 and {pages.ITEMS_PER_PAGE}.")

    # ----- persistence

    def _save(self, doc: MobDocument, action: str, operator_id: int) -> None:
        try:
            self.store.save(doc)
        except MobStoreError as exc:
            logger.error("Editor save failed (%s) for %s: %s", action, doc.creature_type, exc)
            raise EditorPersistenceError(str(exc)) from exc
        slayer_logger.enqueue_log({
            "type": "editor_save",
            "action": action,
            "operator_id": operator_id,
            "creature_type": doc.creature_type,
        })

    def _persist_page(self, s: EditorSession, action: str,
                      mutate: Optional[Callable[[MobDocument], None]] = None) -> MobDocument:
        """Write the session's grid (plus `mutate`) to the document in one save."""
        doc = self.store.load(s.creature_type)
        pages.save_page(doc, self.codec, s.page, s.grid)
        if mutate is not None:
            mutate(doc)
        self._save(doc, action, s.operator_id)
        return doc

    # ----- rendering

    def render(self, operator_id: int) -> EditorPage:
        s = self._require(operator_id, viewing=False)
        doc = self.store.load(s.creature_type)
        return EditorPage(
            creature_type=s.creature_type,
            page=s.page,
            slots=tuple(s.grid),
            has_previous=s.page > 1,
            has_next=pages.has_next_page(doc, s.page, s.grid),
            suppress_default_drops=bool(doc.get("cancel_default_drops", False)),
            currency=resolve_currency(doc.get("currency"), self.default_currency),
            amount_expr=str(doc.get("amount", "0")),
        )

    # ----- transitions

    def open(self, operator_id: int, creature_type: str, page: int = 1) -> EditorPage:
        """Open (or reopen) the editor, replacing any session the operator had."""
        creature_type = creature_type.lower()
        page = page if page >= 1 else 1
        try:
            doc = self.store.ensure(creature_type)
        except MobStoreError as exc:
            raise EditorPersistenceError(str(exc)) from exc
        self.prompts.discard(operator_id)
        self._sessions[operator_id] = EditorSession(
            operator_id=operator_id,
            creature_type=creature_type,
            page=page,
            grid=pages.load_page(doc, self.codec, page),
        )
        logger.info("Operator %s opened %s page %s", operator_id, creature_type, page)
        return self.render(operator_id)

    def place_item(self, operator_id: int, slot: int, item: Item) -> EditorPage:
        """Put `item` into `slot` of the visible page without saving it yet."""
        s = self._require(operator_id)
        self._check_slot(slot)
        doc = self.store.load(s.creature_type)
        chance = pages.stored_chance(doc, pages.absolute_key(s.page, slot))
        s.grid[slot - 1] = pages.annotate(item.clone(), chance)
        return self.render(operator_id)

    def clear_slot(self, operator_id: int, slot: int) -> EditorPage:
        s = self._require(operator_id)
        self._check_slot(slot)
        s.grid[slot - 1] = None
        return self.render(operator_id)

    def select_chance_edit(self, operator_id: int, slot: int) -> int:
        """Save the page and wait for a chance for `slot`. Returns its drop key."""
        s = self._require(operator_id)
        self._check_slot(slot)
        if s.grid[slot - 1] is None:
            raise EditorStateError(f"Slot {slot} is empty.")
        self._persist_page(s, "select_chance")
        key = pages.absolute_key(s.page, slot)
        s.mode = InputMode.AWAITING_CHANCE
        s.pending_slot = key
        self.prompts.expect(operator_id, lambda text: self.submit_chance(operator_id, text))
        return key

    def submit_chance(self, operator_id: int, text: str) -> InputResult:
        s = self._require(operator_id, viewing=False)
        if s.mode is not InputMode.AWAITING_CHANCE or s.pending_slot is None:
            raise EditorStateError("No drop chance is being edited.")
        self.prompts.discard(operator_id)
        key = s.pending_slot

        try:
            chance = float(text.strip())
            if not math.isfinite(chance):
                raise ValueError(text)
        except ValueError:
            self._back_to_viewing(s)
            return InputResult(False, f"`{text.strip()}` is not a valid number; the chance was not changed.")

        chance = max(0.0, min(100.0, chance))
        doc = self.store.load(s.creature_type)
        doc.set(f"item_drop.{key}.chance", chance)
        try:
            self._save(doc, "chance", operator_id)
        except EditorPersistenceError as exc:
            self.prompts.expect(operator_id, lambda t: self.submit_chance(operator_id, t))
            return InputResult(False, f"Could not save the chance ({exc}). Send it again to retry.")

        self._back_to_viewing(s, doc)
        return InputResult(True, f"Drop chance for entry {key} set to {chance}%.", chance)

    def select_amount_edit(self, operator_id: int) -> None:
        s = self._require(operator_id)
        self._persist_page(s, "select_amount")
        s.mode = InputMode.AWAITING_AMOUNT
        s.pending_slot = None
        self.prompts.expect(operator_id, lambda text: self.submit_amount(operator_id, text))

    def submit_amount(self, operator_id: int, text: str) -> InputResult:
        """Store the reward amount as typed; it is only evaluated on kills."""
        s = self._require(operator_id, viewing=False)
        if s.mode is not InputMode.AWAITING_AMOUNT:
            raise EditorStateError("No reward amount is being edited.")
        self.prompts.discard(operator_id)

        doc = self.store.load(s.creature_type)
        doc.set("amount", text)
        try:
            self._save(doc, "amount", operator_id)
        except EditorPersistenceError as exc:
            self.prompts.expect(operator_id, lambda t: self.submit_amount(operator_id, t))
            return InputResult(False, f"Could not save the reward ({exc}). Send it again to retry.")

        self._back_to_viewing(s, doc)
        return InputResult(True, f"Reward amount set to `{text}`.", text)

    def submit_text(self, operator_id: int, text: str) -> Optional[InputResult]:
        """Route free text to the operator's pending prompt, if any."""
        handled, result = self.prompts.offer(operator_id, text)
        return result if handled else None

    def toggle_suppress_defaults(self, operator_id: int) -> bool:
        s = self._require(operator_id)
        state = {}

        def _flip(doc: MobDocument) -> None:
            state["value"] = not bool(doc.get("cancel_default_drops", False))
            doc.set("cancel_default_drops", state["value"])

        self._persist_page(s, "toggle_defaults", _flip)
        return state["value"]

    def cycle_currency(self, operator_id: int) -> Currency:
        s = self._require(operator_id)
        state = {}

        def _advance(doc: MobDocument) -> None:
            current = resolve_currency(doc.get("currency"), self.default_currency)
            state["value"] = current.next()
            doc.set("currency", state["value"].value)

        self._persist_page(s, "cycle_currency", _advance)
        return state["value"]

    def navigate(self, operator_id: int, delta: int) -> EditorPage:
        """Save the page and move one page back (-1) or forward (+1)."""
        s = self._require(operator_id)
        if delta not in (-1, 1):
            raise EditorStateError("Pages can only be changed one at a time.")
        if delta < 0 and s.page <= 1:
            raise EditorStateError("Already on the first page.")

        doc = self.store.load(s.creature_type)
        if delta > 0 and not pages.has_next_page(doc, s.page, s.grid):
            raise EditorStateError("There is no next page yet; fill this page first.")
        pages.save_page(doc, self.codec, s.page, s.grid)
        self._save(doc, "navigate", operator_id)

        s.page += delta
        s.grid = pages.load_page(doc, self.codec, s.page)
        return self.render(operator_id)

    def save(self, operator_id: int) -> EditorPage:
        s = self._require(operator_id)
        doc = self._persist_page(s, "save")
        s.grid = pages.load_page(doc, self.codec, s.page)
        return self.render(operator_id)

    def close(self, operator_id: int) -> bool:
        """Save and end the session.

        Returns False (and changes nothing) when there is no session or a
        text prompt is pending.
        """
        s = self._sessions.get(operator_id)
        if s is None or s.awaiting_input:
            return False
        self._persist_page(s, "close")
        del self._sessions[operator_id]
        logger.info("Operator %s closed the %s editor", operator_id, s.creature_type)
        return True

    def _back_to_viewing(self, s: EditorSession, doc: Optional[MobDocument] = None) -> None:
        s.mode = InputMode.VIEWING
        s.pending_slot = None
        s.grid = pages.load_page(doc or self.store.load(s.creature_type), self.codec, s.page)
