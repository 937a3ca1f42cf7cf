# =============================================================================
# pulse_fsm.py — Generic pulse state-machine driver
# =============================================================================
#
# Every protocol decoder is a PulseDecoder subclass that supplies:
#   NAME / TIMING / INITIAL_STEP   — constants
#   steps()                        — {step: handler(level, duration)}
#   reset_session()                — clear accumulators and line-code FSMs
#
# The driver owns the shared bookkeeping (current step, header counter,
# previous duration) and the completion notification. A handler that sees a
# pulse it does not expect calls restart(); that is ordinary noise rejection,
# never an error surfaced to the caller.
# =============================================================================

from __future__ import annotations
import logging
from enum import Enum
from typing import Any, Callable, NamedTuple, Optional

from KFCE.SMM.constants import ProtocolTiming
from KFCE.SMM.pulses import PulseSample, Symbol, classify

logger = logging.getLogger(__name__)


class DecodedMessage(NamedTuple):
    protocol:  str
    bit_count: int     # frame width received
    key:       int     # raw key as stored in records
    fields:    Any     # the protocol's field tuple (see SMM.payloads)

    @property
    def serial(self) -> Optional[int]:
        return getattr(self.fields, "serial", None)

    @property
    def button(self) -> Optional[int]:
        return getattr(self.fields, "button", None)

    @property
    def count(self) -> Optional[int]:
        return getattr(self.fields, "count", None)


MessageCallback = Callable[[DecodedMessage], None]


class PulseDecoder:
    NAME:         str = ""
    TIMING:       ProtocolTiming
    INITIAL_STEP: Enum

    def __init__(self, callback: Optional[MessageCallback] = None) -> None:
        self.callback = callback
        self.last_message: Optional[DecodedMessage] = None
        self._handlers = self.steps()
        self.reset()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, level: bool, duration: int) -> None:
        """Consume one pulse. Completion is reported through the callback."""
        self._handlers[self.step](bool(level), int(duration))
        self.last_duration = duration

    def feed_pulses(self, pulses: list[PulseSample]) -> None:
        for pulse in pulses:
            self.feed(pulse.level, pulse.duration_us)

    def reset(self) -> None:
        self.step          = self.INITIAL_STEP
        self.header_count  = 0
        self.last_duration = 0
        self.reset_session()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def steps(self) -> dict[Enum, Callable[[bool, int], None]]:
        raise NotImplementedError

    def reset_session(self) -> None:
        pass

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def goto(self, step: Enum) -> None:
        self.step = step

    def restart(self, reason: str = "") -> None:
        if reason:
            logger.debug("%s: reset in %s (%s)", self.NAME, self.step.name, reason)
        self.reset()

    def classify(self, duration: int, **gap) -> Symbol:
        return classify(duration, self.TIMING, **gap)

    def emit(self, message: DecodedMessage) -> None:
        self.last_message = message
        logger.debug("%s: decoded key=%X", self.NAME, message.key)
        if self.callback is not None:
            self.callback(message)
