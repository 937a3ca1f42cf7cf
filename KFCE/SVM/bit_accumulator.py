# =============================================================================
# bit_accumulator.py — Protocol-specific shift registers
# =============================================================================
#
# Each accumulator receives one decoded bit at a time (or, for Kia V1, one
# pulse worth of raw half-bits) and never grows past its frame width. The
# owning decoder checks `full` and finalizes; pushing into a full
# accumulator raises OverflowError.
#
#   SplitKeyAccumulator  — Ford V0, 64-bit key-part-1 then 16-bit key-part-2
#   RawBitBuffer         — Kia V1, oversampled raw levels for offline search
#   CarryPairAccumulator — Suzuki, 64 bits kept as two carry-linked halves
#   ByteAccumulator      — Subaru, MSB-first into an 8-byte buffer
#   RoutedAccumulator    — VW, frame position → key / type / check bit
# =============================================================================

from __future__ import annotations
from enum import Enum

MASK32 = 0xFFFF_FFFF


class KeyStage(Enum):
    KEY1 = 1
    KEY2 = 2
    DONE = 3


class SplitKeyAccumulator:
    """
    Two-stage register. Reaching key1_bits closes stage 1 (key1 is captured
    and the working register cleared); reaching key2_bits more closes
    stage 2. Values are stored exactly as received.
    """

    def __init__(self, key1_bits: int = 64, key2_bits: int = 16) -> None:
        self.key1_bits = key1_bits
        self.key2_bits = key2_bits
        self.reset()

    def reset(self) -> None:
        self.stage     = KeyStage.KEY1
        self.key1      = 0
        self.key2      = 0
        self._working  = 0
        self._count    = 0

    @property
    def bit_count(self) -> int:
        if self.stage is KeyStage.KEY1:
            return self._count
        if self.stage is KeyStage.KEY2:
            return self.key1_bits + self._count
        return self.key1_bits + self.key2_bits

    @property
    def full(self) -> bool:
        return self.stage is KeyStage.DONE

    def push(self, bit: int) -> KeyStage:
        """Append one bit and return the stage now active."""
        if self.stage is KeyStage.DONE:
            raise OverflowError("split key already complete")
        self._working = (self._working << 1) | (bit & 1)
        self._count  += 1

        if self.stage is KeyStage.KEY1 and self._count == self.key1_bits:
            self.key1     = self._working
            self._working = 0
            self._count   = 0
            self.stage    = KeyStage.KEY2
        elif self.stage is KeyStage.KEY2 and self._count == self.key2_bits:
            self.key2  = self._working
            self.stage = KeyStage.DONE
        return self.stage


class RawBitBuffer:
    """Oversampled level buffer: one raw bit per short pulse, two per long."""

    def __init__(self, capacity: int = 192) -> None:
        self.capacity = capacity
        self.bits: list[int] = []

    def reset(self) -> None:
        self.bits = []

    def __len__(self) -> int:
        return len(self.bits)

    @property
    def full(self) -> bool:
        return len(self.bits) >= self.capacity

    def push(self, level: bool, units: int = 1) -> int:
        """Append `units` copies of level; extra units past capacity are dropped."""
        room = self.capacity - len(self.bits)
        added = max(0, min(units, room))
        self.bits.extend([1 if level else 0] * added)
        return added


class CarryPairAccumulator:
    """64-bit shift register held as high/low 32-bit words."""

    def __init__(self, width: int = 64) -> None:
        self.width = width
        self.reset()

    def reset(self) -> None:
        self.high      = 0
        self.low       = 0
        self.bit_count = 0

    @property
    def full(self) -> bool:
        return self.bit_count >= self.width

    @property
    def value(self) -> int:
        return (self.high << 32) | self.low

    def push(self, bit: int) -> None:
        if self.full:
            raise OverflowError(f"accumulator already holds {self.width} bits")
        carry     = (self.low >> 31) & 1
        self.low  = ((self.low << 1) | (bit & 1)) & MASK32
        self.high = ((self.high << 1) | carry) & MASK32
        self.bit_count += 1


class ByteAccumulator:
    """Bits written MSB-first into a fixed byte buffer."""

    def __init__(self, width: int = 64) -> None:
        self.width = width
        self.reset()

    def reset(self) -> None:
        self.data      = [0] * (self.width // 8)
        self.bit_count = 0

    @property
    def full(self) -> bool:
        return self.bit_count >= self.width

    @property
    def value(self) -> int:
        value = 0
        for b in self.data:
            value = (value << 8) | b
        return value

    def push(self, bit: int) -> None:
        if self.full:
            raise OverflowError(f"accumulator already holds {self.width} bits")
        byte_idx = self.bit_count // 8
        bit_idx  = 7 - (self.bit_count % 8)
        if bit:
            self.data[byte_idx] |= 1 << bit_idx
        else:
            self.data[byte_idx] &= ~(1 << bit_idx) & 0xFF
        self.bit_count += 1


# ---------------------------------------------------------------------------
# VW index map
# ---------------------------------------------------------------------------
#
# Frame position p = 79 - bits_received (MSB first on air):
#   72..79 → data_2 bits 8..15  (type)
#    8..71 → key bits 0..63
#    0..7  → data_2 bits 0..7   (check)

def vw_slot(position: int) -> tuple[str, int]:
    """Return ("key" | "data2", bit index) for an 80-bit frame position."""
    if not 0 <= position < 80:
        raise ValueError(f"frame position {position} out of range 0-79")
    if position >= 72:
        return "data2", position - 64
    if position >= 8:
        return "key", position - 8
    return "data2", position


class RoutedAccumulator:
    def __init__(self, width: int = 80) -> None:
        self.width = width
        self.reset()

    def reset(self) -> None:
        self.key       = 0
        self.data2     = 0
        self.bit_count = 0

    @property
    def full(self) -> bool:
        return self.bit_count >= self.width

    def push(self, bit: int) -> None:
        if self.full:
            raise OverflowError(f"accumulator already holds {self.width} bits")
        field, index = vw_slot(self.width - 1 - self.bit_count)
        if bit:
            if field == "key":
                self.key |= 1 << index
            else:
                self.data2 |= 1 << index
        self.bit_count += 1
