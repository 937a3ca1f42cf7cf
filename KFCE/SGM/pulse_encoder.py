# =============================================================================
# pulse_encoder.py — Pull-based pulse encoder base
# =============================================================================
#
# An encoder replays one frame, one pulse per next_pulse() call:
#
#   RESET → PREAMBLE → SYNC → DATA → TAIL → STOP
#
# An encoder with bursts > 1 loops TAIL → PREAMBLE until every burst is sent.
# RESET materializes the payload (the protocol's inverse transform runs
# exactly once per session). STOP returns PULSE_END on every further call.
# stop() jumps straight to STOP from any step and drops any half-bit still
# buffered by a Manchester emitter.
#
# Usage:
#   enc = FordV0Encoder(fields)
#   while (pulse := enc.next_pulse()) != PULSE_END:
#       radio.send(pulse.level, pulse.duration_us)
# =============================================================================

from __future__ import annotations
from enum import Enum, auto
from typing import Any, Iterator

from KFCE.SMM.constants import ProtocolTiming
from KFCE.SMM.pulses import PulseSample, PULSE_END


class EncoderStep(Enum):
    RESET    = auto()
    PREAMBLE = auto()
    SYNC     = auto()
    DATA     = auto()
    TAIL     = auto()
    STOP     = auto()


NEXT_STEP = {
    EncoderStep.RESET:    EncoderStep.PREAMBLE,
    EncoderStep.PREAMBLE: EncoderStep.SYNC,
    EncoderStep.SYNC:     EncoderStep.DATA,
    EncoderStep.DATA:     EncoderStep.TAIL,
    EncoderStep.TAIL:     EncoderStep.STOP,
}

# Safety limit for pulses(); no protocol frame comes close.
MAX_FRAME_PULSES = 4_096


def msb_bits(value: int, width: int) -> list[int]:
    return [(value >> (width - 1 - i)) & 1 for i in range(width)]


class ManchesterEmitter:
    """
    Iterator over the pulses of a Manchester bit list ('1' = H L, '0' = L H).

    One logical bit is two half-bits but only one pulse leaves per call, so
    the second half waits in `pending`. When the next bit starts at the same
    level, the two halves leave together as one long pulse.

    lead : optional level already on air before the first bit (a sync
           half-bit); it is emitted first and may merge with bit 0.
    """

    def __init__(
        self,
        bits: list[int],
        short_us: int,
        long_us: int,
        lead: bool | None = None,
    ) -> None:
        self.bits     = bits
        self.short_us = short_us
        self.long_us  = long_us
        self.cursor   = 0
        self.pending: bool | None = lead

    def __iter__(self) -> "ManchesterEmitter":
        return self

    @staticmethod
    def halves(bit: int) -> tuple[bool, bool]:
        return (True, False) if bit else (False, True)

    def __next__(self) -> PulseSample:
        if self.pending is None:
            if self.cursor >= len(self.bits):
                raise StopIteration
            first, self.pending = self.halves(self.bits[self.cursor])
            self.cursor += 1
            return PulseSample(first, self.short_us)

        level, self.pending = self.pending, None
        if self.cursor < len(self.bits):
            first, second = self.halves(self.bits[self.cursor])
            if first == level:
                self.cursor += 1
                self.pending = second
                return PulseSample(level, self.long_us)
        return PulseSample(level, self.short_us)

    @property
    def exhausted(self) -> bool:
        """True once the last half-bit has left."""
        return self.pending is None and self.cursor >= len(self.bits)

    def discard(self) -> None:
        self.pending = None
        self.cursor  = len(self.bits)


class PulseEncoder:
    NAME:   str = ""
    TIMING: ProtocolTiming
    bursts: int = 1     # frames per transmission, sharing one payload

    def __init__(self, fields: Any) -> None:
        self.fields  = fields
        self.payload: Any = None
        self.reset()

    @classmethod
    def from_message(cls, message) -> "PulseEncoder":
        return cls(message.fields)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Rewind to the start of the frame."""
        self.step  = EncoderStep.RESET
        self.burst = 0
        self._segment: Iterator[PulseSample] | None = None

    def stop(self) -> None:
        if isinstance(self._segment, ManchesterEmitter):
            self._segment.discard()
        self._segment = None
        self.step = EncoderStep.STOP

    def next_pulse(self) -> PulseSample:
        while self.step is not EncoderStep.STOP:
            if self._segment is None:
                self._segment = self._open(self.step)
            pulse = next(self._segment, None)
            if pulse is not None:
                return pulse
            self._segment = None
            self.step = self._after(self.step)
        return PULSE_END

    def pulses(self) -> list[PulseSample]:
        """Drain the remaining frame into a list."""
        out: list[PulseSample] = []
        for _ in range(MAX_FRAME_PULSES):
            pulse = self.next_pulse()
            if pulse == PULSE_END:
                break
            out.append(pulse)
        return out

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def materialize(self) -> Any:
        """Run the inverse payload transform; the result becomes self.payload."""
        raise NotImplementedError

    def preamble(self) -> list[PulseSample]:
        return []

    def sync(self) -> list[PulseSample]:
        return []

    def data(self) -> Iterator[PulseSample]:
        raise NotImplementedError

    def tail(self) -> list[PulseSample]:
        return []

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _after(self, step: EncoderStep) -> EncoderStep:
        if step is EncoderStep.TAIL:
            self.burst += 1
            if self.burst < self.bursts:
                return EncoderStep.PREAMBLE
        return NEXT_STEP[step]

    def _open(self, step: EncoderStep) -> Iterator[PulseSample]:
        if step is EncoderStep.RESET:
            self.payload = self.materialize()
            return iter(())
        if step is EncoderStep.PREAMBLE:
            return iter(self.preamble())
        if step is EncoderStep.SYNC:
            return iter(self.sync())
        if step is EncoderStep.DATA:
            return self.data()
        return iter(self.tail())

    def high(self, duration: int) -> PulseSample:
        return PulseSample(True, duration)

    def low(self, duration: int) -> PulseSample:
        return PulseSample(False, duration)
