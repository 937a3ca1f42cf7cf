# =============================================================================
# manchester.py — Manchester line-code recognizers
# =============================================================================
#
# Two FSMs, fed one classified pulse at a time. They are deliberately kept
# apart: Ford V0 and VW re-lock differently after a long pulse, and each
# protocol's sync sequence leaves its FSM in a specific state.
#
# Bit convention for both:  '1' = high then low,  '0' = low then high.
#
# MidEdgeManchester (Ford V0) — emits each bit on its mid-bit edge.
#
#     START1 ─short H─▶ MID1 (1)      MID1 ─short L─▶ START1
#     START0 ─short L─▶ MID0 (0)      MID1 ─long  L─▶ MID0 (0)
#                                     MID0 ─short H─▶ START0
#                                     MID0 ─long  H─▶ MID1 (1)
#
# PairedManchester (VW) — emits each bit once both halves are seen.
#
#     MID    ─short H─▶ START1        START1 ─short L─▶ MID    (1)
#     MID    ─short L─▶ START0        START1 ─long  L─▶ START0 (1)
#                                     START0 ─short H─▶ MID    (0)
#                                     START0 ─long  H─▶ START1 (0)
#
# Any other (state, event) pair raises ManchesterDesync.
# =============================================================================

from __future__ import annotations
from enum import Enum
from typing import NamedTuple


class ManchesterEvent(Enum):
    SHORT_HIGH = "short_high"
    SHORT_LOW  = "short_low"
    LONG_HIGH  = "long_high"
    LONG_LOW   = "long_low"


class ManchesterState(Enum):
    MID    = "mid"
    MID0   = "mid0"
    MID1   = "mid1"
    START0 = "start0"
    START1 = "start1"


class ManchesterDesync(ValueError):
    """No transition exists for the current (state, event) pair."""


class Transition(NamedTuple):
    next_state: ManchesterState
    bit:        int | None


def event_for(level: bool, is_long: bool) -> ManchesterEvent:
    if level:
        return ManchesterEvent.LONG_HIGH if is_long else ManchesterEvent.SHORT_HIGH
    return ManchesterEvent.LONG_LOW if is_long else ManchesterEvent.SHORT_LOW


S = ManchesterState
E = ManchesterEvent

MID_EDGE_TABLE: dict[tuple[ManchesterState, ManchesterEvent], Transition] = {
    (S.START1, E.SHORT_HIGH): Transition(S.MID1, 1),
    (S.MID1,   E.SHORT_LOW):  Transition(S.START1, None),
    (S.MID1,   E.LONG_LOW):   Transition(S.MID0, 0),
    (S.START0, E.SHORT_LOW):  Transition(S.MID0, 0),
    (S.MID0,   E.SHORT_HIGH): Transition(S.START0, None),
    (S.MID0,   E.LONG_HIGH):  Transition(S.MID1, 1),
}

PAIRED_TABLE: dict[tuple[ManchesterState, ManchesterEvent], Transition] = {
    (S.MID,    E.SHORT_HIGH): Transition(S.START1, None),
    (S.MID,    E.SHORT_LOW):  Transition(S.START0, None),
    (S.START1, E.SHORT_LOW):  Transition(S.MID, 1),
    (S.START1, E.LONG_LOW):   Transition(S.START0, 1),
    (S.START0, E.SHORT_HIGH): Transition(S.MID, 0),
    (S.START0, E.LONG_HIGH):  Transition(S.START1, 0),
}


class _ManchesterFSM:
    TABLE:         dict[tuple[ManchesterState, ManchesterEvent], Transition] = {}
    INITIAL_STATE: ManchesterState = S.MID

    def __init__(self, state: ManchesterState | None = None) -> None:
        self.state = self.INITIAL_STATE if state is None else state

    def reset(self, state: ManchesterState | None = None) -> None:
        self.state = self.INITIAL_STATE if state is None else state

    def advance(self, event: ManchesterEvent) -> int | None:
        """
        Consume one event. Returns the completed bit, or None when the event
        only moved the FSM to a half-bit boundary.

        Raises ManchesterDesync when the event is illegal in this state; the
        FSM state is left unchanged so the caller decides how to recover.
        """
        try:
            step = self.TABLE[(self.state, event)]
        except KeyError:
            raise ManchesterDesync(
                f"{type(self).__name__}: {event.name} not valid in {self.state.name}"
            ) from None
        self.state = step.next_state
        return step.bit

    def feed(self, level: bool, is_long: bool) -> int | None:
        return self.advance(event_for(level, is_long))


class MidEdgeManchester(_ManchesterFSM):
    TABLE         = MID_EDGE_TABLE
    INITIAL_STATE = S.MID1


class PairedManchester(_ManchesterFSM):
    TABLE         = PAIRED_TABLE
    INITIAL_STATE = S.MID


# ---------------------------------------------------------------------------
# Offline pair-alignment search (Kia V1)
# ---------------------------------------------------------------------------

class AlignmentResult(NamedTuple):
    data:      int    # decoded bits, MSB-first
    bit_count: int
    offset:    int    # raw-bit offset that produced the most bits


def demodulate_pairs(raw_bits: list[int], offset: int, max_bits: int) -> tuple[int, int]:
    """
    Read Manchester pairs from raw_bits[offset:]: '10' → 1, '01' → 0.
    Stops at the first invalid pair, the end of the buffer, or max_bits.
    """
    data  = 0
    count = 0
    pos   = offset
    while count < max_bits and pos + 1 < len(raw_bits):
        pair = (raw_bits[pos], raw_bits[pos + 1])
        if pair == (1, 0):
            bit = 1
        elif pair == (0, 1):
            bit = 0
        else:
            break
        data = (data << 1) | bit
        count += 1
        pos += 2
    return data, count


def search_pair_alignment(
    raw_bits: list[int],
    max_bits: int = 56,
    offsets: int = 8,
) -> AlignmentResult:
    """
    Try every alignment offset and keep the one that decodes the most pairs.
    Ties keep the earliest offset.
    """
    best = AlignmentResult(data=0, bit_count=0, offset=0)
    for offset in range(offsets):
        data, count = demodulate_pairs(raw_bits, offset, max_bits)
        if count > best.bit_count:
            best = AlignmentResult(data=data, bit_count=count, offset=offset)
    return best
