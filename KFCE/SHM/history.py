# =============================================================================
# history.py — Bounded, deduplicating message history
# =============================================================================
#
# Key fobs repeat each frame several times per button press. A message whose
# hash equals the last one added within HISTORY_DEDUP_WINDOW_MS is treated
# as a repeat: it is not stored, and the window restarts from now so a long
# press stays collapsed into one entry.
#
# When full, the oldest entry is evicted.
# =============================================================================

from __future__ import annotations
import collections
import time
from typing import Callable, NamedTuple, Optional

from KFCE.SMM.constants import (
    RadioPreset, DEFAULT_PRESET,
    HISTORY_MAX_ITEMS, HISTORY_DEDUP_WINDOW_MS,
)
from KFCE.SHM.records import serialize, deserialize, describe, message_hash
from KFCE.SVM.pulse_fsm import DecodedMessage

EMPTY_MENU_TEXT = "---"


class HistoryItem(NamedTuple):
    text:   str            # describe() output
    record: str            # serialize() output
    preset: RadioPreset
    digest: int            # message_hash()


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


class History:
    def __init__(
        self,
        max_items: int = HISTORY_MAX_ITEMS,
        dedup_window_ms: float = HISTORY_DEDUP_WINDOW_MS,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.max_items       = max_items
        self.dedup_window_ms = dedup_window_ms
        self._clock          = clock or _monotonic_ms
        self.reset()

    def reset(self) -> None:
        self._items: collections.deque[HistoryItem] = collections.deque(maxlen=self.max_items)
        self._last_digest: Optional[int] = None
        self._last_update = 0.0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def full(self) -> bool:
        return len(self._items) >= self.max_items

    def add(self, message: DecodedMessage, preset: RadioPreset = DEFAULT_PRESET) -> bool:
        """Store a message. Returns False when it repeats the previous one."""
        now    = self._clock()
        digest = message_hash(message)
        if digest == self._last_digest and now - self._last_update < self.dedup_window_ms:
            self._last_update = now
            return False

        self._last_digest = digest
        self._last_update = now
        self._items.append(HistoryItem(
            text=describe(message),
            record=serialize(message, preset),
            preset=preset,
            digest=digest,
        ))
        return True

    # ------------------------------------------------------------------
    # Accessors (index 0 = oldest kept item)
    # ------------------------------------------------------------------

    def item(self, idx: int) -> HistoryItem:
        return self._items[idx]

    def text(self, idx: int) -> str:
        return self._items[idx].text

    def menu_text(self, idx: int) -> str:
        """First line of the item's text, or "---" for an empty slot."""
        if not 0 <= idx < len(self._items):
            return EMPTY_MENU_TEXT
        return self._items[idx].text.split("\n", 1)[0]

    def record(self, idx: int) -> str:
        return self._items[idx].record

    def preset(self, idx: int) -> RadioPreset:
        return self._items[idx].preset

    def load(self, idx: int) -> DecodedMessage:
        """Rebuild the stored message, e.g. to hand it to an encoder."""
        message, _ = deserialize(self._items[idx].record)
        return message
