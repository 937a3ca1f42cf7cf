# =============================================================================
# pulses.py — Pulse samples and the timing classifier
# =============================================================================
#
# A pulse is one contiguous interval of constant level. Decoders receive them
# one at a time; encoders produce them one at a time.
#
# classify() maps a duration onto a coarse symbol using a protocol's timing
# windows. Windows are checked in the order SHORT, LONG, GAP so that a
# protocol whose gap window touches its long window still prefers LONG.

from __future__ import annotations
from enum import Enum
from typing import NamedTuple

from KFCE.SMM.constants import ProtocolTiming


class PulseSample(NamedTuple):
    level:       bool   # True = carrier on (high)
    duration_us: int


# Returned by a stopped encoder for every further pull.
PULSE_END = PulseSample(level=False, duration_us=0)


class Symbol(Enum):
    SHORT   = "short"
    LONG    = "long"
    GAP     = "gap"
    INVALID = "invalid"


def matches(duration: int, reference: int, tolerance: int) -> bool:
    """True when |duration - reference| < tolerance."""
    return abs(duration - reference) < tolerance


def classify(
    duration: int,
    timing: ProtocolTiming,
    gap_us: int | None = None,
    gap_tolerance_us: int | None = None,
) -> Symbol:
    """
    Classify one pulse duration against a protocol's timing.

    The gap window is only consulted when the protocol has one; its
    tolerance defaults to the protocol tolerance.
    """
    if matches(duration, timing.short_us, timing.tolerance_us):
        return Symbol.SHORT
    if matches(duration, timing.long_us, timing.tolerance_us):
        return Symbol.LONG
    if gap_us is not None:
        tol = timing.tolerance_us if gap_tolerance_us is None else gap_tolerance_us
        if matches(duration, gap_us, tol):
            return Symbol.GAP
    return Symbol.INVALID
