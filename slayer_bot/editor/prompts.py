"""Pending free-text prompts.

A prompt is a continuation waiting for an operator's next line of text.
The transport (chat messages, a console) only has to call `offer`; the
continuation decides what the text means. Prompts never time out: an
abandoned one stays registered until it is answered, replaced or the
process restarts.
"""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple

Continuation = Callable[[str], Any]


class PromptBroker:
    def __init__(self) -> None:
        self._pending: Dict[int, Continuation] = {}

    def expect(self, operator_id: int, continuation: Continuation) -> None:
        """Register `continuation` for the operator's next text, replacing any other."""
        self._pending[operator_id] = continuation

    def pending(self, operator_id: int) -> bool:
        return operator_id in self._pending

    def discard(self, operator_id: int) -> None:
        self._pending.pop(operator_id, None)

    def offer(self, operator_id: int, text: str) -> Tuple[bool, Optional[Any]]:
        """Hand `text` to the operator's continuation.

        Returns `(False, None)` when nothing is pending. The continuation is
        unregistered before it runs; it may register a new one (for example
        to retry after a failed save).
        """
        continuation = self._pending.pop(operator_id, None)
        if continuation is None:
            return False, None
        return True, continuation(text)

    def __len__(self) -> int:
        return len(self._pending)
