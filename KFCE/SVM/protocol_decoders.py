# =============================================================================
# protocol_decoders.py — Pulse-level decoders for the five key-fob protocols
# =============================================================================
#
# Each decoder walks  Reset → Preamble → Sync/Gap → Data → Finalize  and
# returns to Reset after a frame completes or any pulse fails to match.
# See SMM/constants.py for the on-air layout of each protocol.
# =============================================================================

from __future__ import annotations
import logging
from enum import Enum, auto

from KFCE.SMM.constants import (
    FORD_V0_NAME, FORD_V0_TIMING, FORD_V0_BITS, FORD_V0_KEY1_BITS,
    FORD_V0_GAP_US, FORD_V0_GAP_TOLERANCE_US, FORD_V0_MIN_PREAMBLE,
    KIA_V1_NAME, KIA_V1_TIMING, KIA_V1_BITS, KIA_V1_MIN_HEADER,
    KIA_V1_END_US, KIA_V1_MAX_RAW_BITS, KIA_V1_MIN_RAW_BITS, KIA_V1_ALIGN_OFFSETS,
    SUZUKI_NAME, SUZUKI_TIMING, SUZUKI_BITS,
    SUZUKI_GAP_US, SUZUKI_GAP_TOLERANCE_US, SUZUKI_MIN_PREAMBLE,
    SUBARU_NAME, SUBARU_TIMING, SUBARU_BITS, SUBARU_MIN_HEADER,
    SUBARU_GAP_MIN_US, SUBARU_GAP_MAX_US, SUBARU_END_US,
    VW_NAME, VW_TIMING, VW_BITS, VW_MEDIUM_US, VW_END_US,
)
from KFCE.SMM.payloads import (
    MASK64,
    ford_v0_decode, kia_v1_decode, suzuki_decode, subaru_decode, vw_decode,
)
from KFCE.SMM.pulses import Symbol, matches
from KFCE.SVM.bit_accumulator import (
    SplitKeyAccumulator, KeyStage, RawBitBuffer,
    CarryPairAccumulator, ByteAccumulator, RoutedAccumulator,
)
from KFCE.SVM.manchester import (
    MidEdgeManchester, PairedManchester, ManchesterDesync, ManchesterState,
    search_pair_alignment,
)
from KFCE.SVM.pulse_fsm import PulseDecoder, DecodedMessage

logger = logging.getLogger(__name__)

BIT_SYMBOLS = (Symbol.SHORT, Symbol.LONG)


# =============================================================================
# Ford V0
# =============================================================================

class FordV0Step(Enum):
    RESET          = auto()
    PREAMBLE       = auto()
    PREAMBLE_CHECK = auto()
    GAP            = auto()
    LEAD_IN        = auto()
    DATA           = auto()


class FordV0Decoder(PulseDecoder):
    NAME         = FORD_V0_NAME
    TIMING       = FORD_V0_TIMING
    INITIAL_STEP = FordV0Step.RESET

    def __init__(self, callback=None) -> None:
        self.keys       = SplitKeyAccumulator(FORD_V0_KEY1_BITS, FORD_V0_BITS - FORD_V0_KEY1_BITS)
        self.manchester = MidEdgeManchester()
        super().__init__(callback)

    def steps(self):
        return {
            FordV0Step.RESET:          self._on_reset,
            FordV0Step.PREAMBLE:       self._on_preamble,
            FordV0Step.PREAMBLE_CHECK: self._on_preamble_check,
            FordV0Step.GAP:            self._on_gap,
            FordV0Step.LEAD_IN:        self._on_lead_in,
            FordV0Step.DATA:           self._on_data,
        }

    def reset_session(self) -> None:
        self.keys.reset()
        self.manchester.reset()

    def _on_reset(self, level: bool, duration: int) -> None:
        if level and self.classify(duration) is Symbol.SHORT:
            self.header_count = 0
            self.goto(FordV0Step.PREAMBLE)

    def _on_preamble(self, level: bool, duration: int) -> None:
        if not level and self.classify(duration) is Symbol.LONG:
            self.goto(FordV0Step.PREAMBLE_CHECK)
        else:
            # The pulse may itself open the next preamble.
            self.restart()
            self._on_reset(level, duration)

    def _on_preamble_check(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration) if level else Symbol.INVALID
        if symbol is Symbol.LONG:
            self.header_count += 1
            self.goto(FordV0Step.PREAMBLE)
        elif symbol is Symbol.SHORT and self.header_count >= FORD_V0_MIN_PREAMBLE:
            self.goto(FordV0Step.GAP)
        else:
            self.restart()

    def _on_gap(self, level: bool, duration: int) -> None:
        if level:
            return
        symbol = self.classify(duration, gap_us=FORD_V0_GAP_US, gap_tolerance_us=FORD_V0_GAP_TOLERANCE_US)
        if symbol is Symbol.GAP:
            # The frame starts with a literal '1' that is not part of the
            # Manchester run the FSM will see.
            self.keys.reset()
            self.keys.push(1)
            self.goto(FordV0Step.LEAD_IN)
        elif duration > FORD_V0_GAP_US + FORD_V0_GAP_TOLERANCE_US:
            self.restart()

    def _on_lead_in(self, level: bool, duration: int) -> None:
        # High half of the literal '1'; its falling edge leaves the FSM in MID1.
        if level and self.classify(duration) is Symbol.SHORT:
            self.manchester.reset(ManchesterState.MID1)
            logger.debug("%s: sync after %d preamble pairs", self.NAME, self.header_count)
            self.goto(FordV0Step.DATA)
        else:
            self.restart()

    def _on_data(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration)
        if symbol not in BIT_SYMBOLS:
            self.restart("data pulse out of tolerance")
            return
        try:
            bit = self.manchester.feed(level, symbol is Symbol.LONG)
        except ManchesterDesync as exc:
            self.restart(str(exc))
            return
        if bit is None:
            return
        if self.keys.push(bit) is KeyStage.DONE:
            self._finalize()

    def _finalize(self) -> None:
        fields = ford_v0_decode(self.keys.key1, self.keys.key2)
        self.emit(DecodedMessage(
            protocol=self.NAME,
            bit_count=FORD_V0_BITS,
            key=~self.keys.key1 & MASK64,
            fields=fields,
        ))
        self.restart()


# =============================================================================
# Kia V1
# =============================================================================

class KiaV1Step(Enum):
    RESET           = auto()
    CHECK_PREAMBLE  = auto()
    FOUND_SHORT_LOW = auto()
    COLLECT         = auto()


class KiaV1Decoder(PulseDecoder):
    NAME         = KIA_V1_NAME
    TIMING       = KIA_V1_TIMING
    INITIAL_STEP = KiaV1Step.RESET

    def __init__(self, callback=None) -> None:
        self.raw = RawBitBuffer(KIA_V1_MAX_RAW_BITS)
        super().__init__(callback)

    def steps(self):
        return {
            KiaV1Step.RESET:           self._on_reset,
            KiaV1Step.CHECK_PREAMBLE:  self._on_check_preamble,
            KiaV1Step.FOUND_SHORT_LOW: self._on_found_short_low,
            KiaV1Step.COLLECT:         self._on_collect,
        }

    def reset_session(self) -> None:
        self.raw.reset()

    def _on_reset(self, level: bool, duration: int) -> None:
        if level and self.classify(duration) is Symbol.LONG:
            self.header_count = 1
            self.goto(KiaV1Step.CHECK_PREAMBLE)

    def _on_check_preamble(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration)
        if symbol is Symbol.LONG:
            self.header_count += 1
        elif symbol is Symbol.SHORT:
            # A short low opens the sync only after enough header pulses;
            # before that it is skipped like a short high.
            if not level and self.header_count > KIA_V1_MIN_HEADER:
                self.goto(KiaV1Step.FOUND_SHORT_LOW)
        else:
            self.restart()

    def _on_found_short_low(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration)
        if level and symbol in BIT_SYMBOLS:
            # A long high is the sync pulse merged with the first half-bit.
            self.raw.push(True, 2 if symbol is Symbol.LONG else 1)
            self.goto(KiaV1Step.COLLECT)
        else:
            self.restart()

    def _on_collect(self, level: bool, duration: int) -> None:
        if duration > KIA_V1_END_US:
            if not level:
                # The end gap swallows a trailing low half-bit.
                self.raw.push(False, 1)
            self._finalize()
            return
        symbol = self.classify(duration)
        if symbol not in BIT_SYMBOLS:
            self.restart("raw pulse out of tolerance")
            return
        self.raw.push(level, 2 if symbol is Symbol.LONG else 1)

    def _finalize(self) -> None:
        raw_bits = list(self.raw.bits)
        self.restart()
        if len(raw_bits) < KIA_V1_MIN_RAW_BITS:
            logger.debug("%s: frame dropped, %d raw bits", self.NAME, len(raw_bits))
            return
        result = search_pair_alignment(raw_bits, KIA_V1_BITS, KIA_V1_ALIGN_OFFSETS)
        if result.bit_count < KIA_V1_BITS:
            logger.debug("%s: frame dropped, best offset %d gave %d bits",
                         self.NAME, result.offset, result.bit_count)
            return
        self.emit(DecodedMessage(
            protocol=self.NAME,
            bit_count=KIA_V1_BITS,
            key=result.data,
            fields=kia_v1_decode(result.data),
        ))


# =============================================================================
# Suzuki
# =============================================================================

class SuzukiStep(Enum):
    RESET    = auto()
    PREAMBLE = auto()
    DATA     = auto()


class SuzukiDecoder(PulseDecoder):
    NAME         = SUZUKI_NAME
    TIMING       = SUZUKI_TIMING
    INITIAL_STEP = SuzukiStep.RESET

    def __init__(self, callback=None) -> None:
        self.bits = CarryPairAccumulator(SUZUKI_BITS)
        super().__init__(callback)

    def steps(self):
        return {
            SuzukiStep.RESET:    self._on_reset,
            SuzukiStep.PREAMBLE: self._on_preamble,
            SuzukiStep.DATA:     self._on_data,
        }

    def reset_session(self) -> None:
        self.bits.reset()

    def _on_reset(self, level: bool, duration: int) -> None:
        if level and self.classify(duration) is Symbol.SHORT:
            self.header_count = 1
            self.goto(SuzukiStep.PREAMBLE)

    def _on_preamble(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration)
        if symbol is Symbol.SHORT:
            self.header_count += 1
        elif level and symbol is Symbol.LONG and self.header_count >= SUZUKI_MIN_PREAMBLE:
            self.bits.push(1)
            self.goto(SuzukiStep.DATA)
        else:
            self.restart()

    def _on_data(self, level: bool, duration: int) -> None:
        if not level:
            symbol = self.classify(duration, gap_us=SUZUKI_GAP_US, gap_tolerance_us=SUZUKI_GAP_TOLERANCE_US)
            if symbol is Symbol.GAP:
                if self.bits.full:
                    self._finalize()
                self.restart()
            elif symbol is not Symbol.SHORT:
                self.restart("separator out of tolerance")
            return

        symbol = self.classify(duration)
        if symbol not in BIT_SYMBOLS:
            self.restart("data pulse out of tolerance")
        elif self.bits.full:
            self.restart("frame longer than 64 bits")
        else:
            self.bits.push(1 if symbol is Symbol.LONG else 0)

    def _finalize(self) -> None:
        value  = self.bits.value
        fields = suzuki_decode(value)
        if fields is None:
            logger.debug("%s: manufacturer nibble %X rejected", self.NAME, value >> 60)
            return
        self.emit(DecodedMessage(
            protocol=self.NAME,
            bit_count=SUZUKI_BITS,
            key=value,
            fields=fields,
        ))


# =============================================================================
# Subaru
# =============================================================================

class SubaruStep(Enum):
    RESET          = auto()
    CHECK_PREAMBLE = auto()
    FOUND_GAP      = auto()
    FOUND_SYNC     = auto()
    SAVE_DURATION  = auto()
    CHECK_DURATION = auto()


def _subaru_gap(duration: int) -> bool:
    return SUBARU_GAP_MIN_US < duration < SUBARU_GAP_MAX_US


class SubaruDecoder(PulseDecoder):
    NAME         = SUBARU_NAME
    TIMING       = SUBARU_TIMING
    INITIAL_STEP = SubaruStep.RESET

    def __init__(self, callback=None) -> None:
        self.bits = ByteAccumulator(SUBARU_BITS)
        super().__init__(callback)

    def steps(self):
        return {
            SubaruStep.RESET:          self._on_reset,
            SubaruStep.CHECK_PREAMBLE: self._on_check_preamble,
            SubaruStep.FOUND_GAP:      self._on_found_gap,
            SubaruStep.FOUND_SYNC:     self._on_found_sync,
            SubaruStep.SAVE_DURATION:  self._on_save_duration,
            SubaruStep.CHECK_DURATION: self._on_check_duration,
        }

    def reset_session(self) -> None:
        self.bits.reset()

    def _on_reset(self, level: bool, duration: int) -> None:
        if level and self.classify(duration) is Symbol.LONG:
            self.header_count = 1
            self.goto(SubaruStep.CHECK_PREAMBLE)

    def _on_check_preamble(self, level: bool, duration: int) -> None:
        if self.classify(duration) is Symbol.LONG:
            self.header_count += 1
        elif not level and _subaru_gap(duration) and self.header_count > SUBARU_MIN_HEADER:
            self.goto(SubaruStep.FOUND_GAP)
        else:
            self.restart()

    def _on_found_gap(self, level: bool, duration: int) -> None:
        if level and _subaru_gap(duration):
            self.goto(SubaruStep.FOUND_SYNC)
        else:
            self.restart()

    def _on_found_sync(self, level: bool, duration: int) -> None:
        if not level and self.classify(duration) is Symbol.LONG:
            self.bits.reset()
            logger.debug("%s: sync after %d preamble pulses", self.NAME, self.header_count)
            self.goto(SubaruStep.SAVE_DURATION)
        else:
            self.restart()

    def _on_save_duration(self, level: bool, duration: int) -> None:
        if not level:
            self.restart("expected a data pulse")
            return
        if duration > SUBARU_END_US:
            self._end_frame()
            return
        symbol = self.classify(duration)
        if symbol not in BIT_SYMBOLS:
            self.restart("data pulse out of tolerance")
        elif self.bits.full:
            self.restart("frame longer than 64 bits")
        else:
            self.bits.push(1 if symbol is Symbol.SHORT else 0)
            self.goto(SubaruStep.CHECK_DURATION)

    def _on_check_duration(self, level: bool, duration: int) -> None:
        if level:
            self.restart("expected a separator")
        elif duration > SUBARU_END_US:
            self._end_frame()
        elif self.classify(duration) in BIT_SYMBOLS:
            self.goto(SubaruStep.SAVE_DURATION)
        else:
            self.restart("separator out of tolerance")

    def _end_frame(self) -> None:
        if self.bits.full:
            value = self.bits.value
            self.emit(DecodedMessage(
                protocol=self.NAME,
                bit_count=SUBARU_BITS,
                key=value,
                fields=subaru_decode(value),
            ))
        self.restart()


# =============================================================================
# VW
# =============================================================================

class VwStep(Enum):
    RESET      = auto()
    FOUND_SYNC = auto()
    START1     = auto()
    START2     = auto()
    START3     = auto()
    DATA       = auto()


class VwDecoder(PulseDecoder):
    NAME         = VW_NAME
    TIMING       = VW_TIMING
    INITIAL_STEP = VwStep.RESET

    def __init__(self, callback=None) -> None:
        self.bits       = RoutedAccumulator(VW_BITS)
        self.manchester = PairedManchester()
        self.marker_pending = False
        super().__init__(callback)

    def steps(self):
        return {
            VwStep.RESET:      self._on_reset,
            VwStep.FOUND_SYNC: self._on_found_sync,
            VwStep.START1:     self._on_start1,
            VwStep.START2:     self._on_start2,
            VwStep.START3:     self._on_start3,
            VwStep.DATA:       self._on_data,
        }

    def reset_session(self) -> None:
        self.bits.reset()
        self.manchester.reset()
        self.marker_pending = False

    def _is_medium(self, duration: int) -> bool:
        return matches(duration, VW_MEDIUM_US, self.TIMING.tolerance_us)

    def _on_reset(self, level: bool, duration: int) -> None:
        if self.classify(duration) is Symbol.SHORT:
            self.header_count = 1
            self.goto(VwStep.FOUND_SYNC)

    def _on_found_sync(self, level: bool, duration: int) -> None:
        symbol = self.classify(duration)
        if symbol is Symbol.SHORT:
            self.header_count += 1
        elif level and symbol is Symbol.LONG:
            self.goto(VwStep.START1)
        else:
            self.restart()

    def _on_start1(self, level: bool, duration: int) -> None:
        if not level and self.classify(duration) is Symbol.SHORT:
            self.goto(VwStep.START2)
        else:
            self.restart()

    def _on_start2(self, level: bool, duration: int) -> None:
        if level and self._is_medium(duration):
            self.goto(VwStep.START3)
        else:
            self.restart()

    def _on_start3(self, level: bool, duration: int) -> None:
        if self._is_medium(duration):
            return
        if level and self.classify(duration) is Symbol.SHORT:
            # Start of data: first half of a '1' marker bit that is not stored.
            self.bits.reset()
            self.manchester.reset()
            self.manchester.feed(True, False)
            self.marker_pending = True
            self.goto(VwStep.DATA)
        else:
            self.restart()

    def _on_data(self, level: bool, duration: int) -> None:
        if not level and self.bits.bit_count == VW_BITS - 1 and duration > VW_END_US:
            symbol = Symbol.SHORT
        else:
            symbol = self.classify(duration)
        if symbol not in BIT_SYMBOLS:
            self.restart("data pulse out of tolerance")
            return
        try:
            bit = self.manchester.feed(level, symbol is Symbol.LONG)
        except ManchesterDesync as exc:
            self.restart(str(exc))
            return
        if bit is None:
            return
        if self.marker_pending:
            self.marker_pending = False
            return
        self.bits.push(bit)
        if self.bits.full:
            self._finalize()

    def _finalize(self) -> None:
        fields = vw_decode(self.bits.key, self.bits.data2)
        self.emit(DecodedMessage(
            protocol=self.NAME,
            bit_count=VW_BITS,
            key=fields.key,
            fields=fields,
        ))
        self.restart()
