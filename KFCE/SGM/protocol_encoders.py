# =============================================================================
# protocol_encoders.py — Pulse encoders for the five key-fob protocols
# =============================================================================
#
# Mirror images of SVM/protocol_decoders.py: every pulse train produced here
# decodes back to the message it was built from.
# =============================================================================

from __future__ import annotations
from typing import Iterator

from KFCE.SMM.constants import (
    FORD_V0_NAME, FORD_V0_TIMING, FORD_V0_BITS,
    FORD_V0_GAP_US, FORD_V0_PREAMBLE_PAIRS,
    KIA_V1_NAME, KIA_V1_TIMING, KIA_V1_BITS,
    KIA_V1_PREAMBLE_PAIRS, KIA_V1_END_GAP_US,
    KIA_V1_TOTAL_BURSTS, KIA_V1_INTER_BURST_GAP_US,
    SUZUKI_NAME, SUZUKI_TIMING, SUZUKI_BITS,
    SUZUKI_GAP_US, SUZUKI_PREAMBLE_PAIRS,
    SUBARU_NAME, SUBARU_TIMING, SUBARU_BITS,
    SUBARU_PREAMBLE_PAIRS, SUBARU_GAP_US, SUBARU_END_GAP_US,
    VW_NAME, VW_TIMING, VW_BITS, VW_MEDIUM_US, VW_SYNC_PAIRS,
)
from KFCE.SMM.payloads import (
    FordV0Fields, KiaV1Fields, SubaruFields,
    ford_v0_encode, kia_v1_encode, suzuki_encode, subaru_encode, vw_frame,
)
from KFCE.SMM.pulses import PulseSample
from KFCE.SGM.pulse_encoder import PulseEncoder, ManchesterEmitter, msb_bits


class FordV0Encoder(PulseEncoder):
    """
    [H short] [L long, H long] x N [L long] [H short] [L gap] + 80 Manchester
    bits. Bit 0 is the literal '1' the decoder inserts at the gap, so the
    frame prefix byte must leave the top bit of the inverted key set.
    """

    NAME   = FORD_V0_NAME
    TIMING = FORD_V0_TIMING

    def __init__(self, fields: FordV0Fields, preamble_pairs: int = FORD_V0_PREAMBLE_PAIRS) -> None:
        self.preamble_pairs = preamble_pairs
        super().__init__(fields)

    def materialize(self) -> list[int]:
        raw_key1, raw_key2 = ford_v0_encode(self.fields)
        bits = msb_bits((raw_key1 << 16) | raw_key2, FORD_V0_BITS)
        if not bits[0]:
            raise ValueError(
                f"prefix {self.fields.prefix:#04x} cannot be sent: the leading bit is always 1"
            )
        return bits

    def preamble(self) -> list[PulseSample]:
        t = self.TIMING
        pulses = [self.high(t.short_us)]
        for _ in range(self.preamble_pairs):
            pulses += [self.low(t.long_us), self.high(t.long_us)]
        return pulses

    def sync(self) -> list[PulseSample]:
        t = self.TIMING
        return [self.low(t.long_us), self.high(t.short_us), self.low(FORD_V0_GAP_US)]

    def data(self) -> Iterator[PulseSample]:
        return ManchesterEmitter(self.payload, self.TIMING.short_us, self.TIMING.long_us)


class KiaV1Encoder(PulseEncoder):
    """
    [H short] [L long, H long] x 16 [L short] then the sync high half-bit
    followed by 56 Manchester bits, closed by a low gap. The burst repeats
    `bursts` times; the last one ends with the shorter end gap.

    The check byte is replayed from the fields as captured; this encoder
    does not compute it.
    """

    NAME   = KIA_V1_NAME
    TIMING = KIA_V1_TIMING

    def __init__(self, fields: KiaV1Fields, bursts: int = KIA_V1_TOTAL_BURSTS) -> None:
        self.bursts = bursts
        super().__init__(fields)

    def materialize(self) -> list[int]:
        return msb_bits(kia_v1_encode(self.fields), KIA_V1_BITS)

    def preamble(self) -> list[PulseSample]:
        t = self.TIMING
        pulses = [self.high(t.short_us)]
        for _ in range(KIA_V1_PREAMBLE_PAIRS):
            pulses += [self.low(t.long_us), self.high(t.long_us)]
        return pulses

    def sync(self) -> list[PulseSample]:
        return [self.low(self.TIMING.short_us)]

    def data(self) -> Iterator[PulseSample]:
        # The sync high is emitted by the data emitter so it can merge with
        # a leading '1'.
        bits = ManchesterEmitter(self.payload, self.TIMING.short_us, self.TIMING.long_us, lead=True)
        for pulse in bits:
            if bits.exhausted and not pulse.level:
                # Trailing low half of a final '1': the gap absorbs it.
                break
            yield pulse
        last = self.burst == self.bursts - 1
        yield self.low(KIA_V1_END_GAP_US if last else KIA_V1_INTER_BURST_GAP_US)


def _pwm_frame(
    bits: list[int],
    one_us: int,
    zero_us: int,
    separator_us: int,
    end_gap_us: int,
) -> Iterator[PulseSample]:
    """High pulse per bit, low separator after each; the last separator is the end gap."""
    last = len(bits) - 1
    for i, bit in enumerate(bits):
        yield PulseSample(True, one_us if bit else zero_us)
        yield PulseSample(False, end_gap_us if i == last else separator_us)


class SuzukiEncoder(PulseEncoder):
    """[H short, L short] x 130, then 64 PWM bits (long high = 1), end gap 2000."""

    NAME   = SUZUKI_NAME
    TIMING = SUZUKI_TIMING

    def materialize(self) -> list[int]:
        return msb_bits(suzuki_encode(self.fields), SUZUKI_BITS)

    def preamble(self) -> list[PulseSample]:
        t = self.TIMING
        return [self.high(t.short_us), self.low(t.short_us)] * SUZUKI_PREAMBLE_PAIRS

    def data(self) -> Iterator[PulseSample]:
        t = self.TIMING
        return _pwm_frame(self.payload, t.long_us, t.short_us, t.short_us, SUZUKI_GAP_US)


class SubaruEncoder(PulseEncoder):
    """
    [H long, L long] x 24 [H long] [L gap] [H sync] [L long], then 64 PWM
    bits (short high = 1) with short separators and a final end gap.

    key : the captured 64-bit frame. When given it is sent as-is, so bits
          outside the serial/button/counter permutation survive a replay.
    """

    NAME   = SUBARU_NAME
    TIMING = SUBARU_TIMING

    def __init__(self, fields: SubaruFields, key: int | None = None) -> None:
        self.key = key
        super().__init__(fields)

    @classmethod
    def from_message(cls, message) -> "SubaruEncoder":
        return cls(message.fields, key=message.key)

    def materialize(self) -> list[int]:
        key = subaru_encode(self.fields) if self.key is None else self.key
        return msb_bits(key, SUBARU_BITS)

    def preamble(self) -> list[PulseSample]:
        t = self.TIMING
        pulses = [self.high(t.long_us), self.low(t.long_us)] * (SUBARU_PREAMBLE_PAIRS - 1)
        return pulses + [self.high(t.long_us)]

    def sync(self) -> list[PulseSample]:
        return [self.low(SUBARU_GAP_US), self.high(SUBARU_GAP_US), self.low(self.TIMING.long_us)]

    def data(self) -> Iterator[PulseSample]:
        t = self.TIMING
        return _pwm_frame(self.payload, t.short_us, t.long_us, t.short_us, SUBARU_END_GAP_US)


class VwEncoder(PulseEncoder):
    """
    [H short, L short] x 43 [H long] [L short] [H med, L med] x 2 [H short],
    then the 80-bit frame (type, key, check) as Manchester.

    The final short high opens a '1' marker bit that the decoder drops; its
    low half merges with the first half of a leading '0', so the medium low
    is never followed by another low.
    """

    NAME   = VW_NAME
    TIMING = VW_TIMING

    def materialize(self) -> list[int]:
        return msb_bits(vw_frame(self.fields), VW_BITS)

    def preamble(self) -> list[PulseSample]:
        t = self.TIMING
        return [self.high(t.short_us), self.low(t.short_us)] * VW_SYNC_PAIRS

    def sync(self) -> list[PulseSample]:
        t = self.TIMING
        return [
            self.high(t.long_us), self.low(t.short_us),
            self.high(VW_MEDIUM_US), self.low(VW_MEDIUM_US),
            self.high(VW_MEDIUM_US), self.low(VW_MEDIUM_US),
            self.high(t.short_us),
        ]

    def data(self) -> Iterator[PulseSample]:
        return ManchesterEmitter(self.payload, self.TIMING.short_us, self.TIMING.long_us, lead=False)
