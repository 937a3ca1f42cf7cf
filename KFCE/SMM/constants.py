# =============================================================================
# constants.py — SMM Protocol Timing and Layout Constants
# =============================================================================
#
# Every duration is in microseconds. A measured duration d matches a reference
# r when |d - r| < tolerance (strict). Do not widen a tolerance window so far
# that the short and long windows of one protocol overlap.

from typing import NamedTuple


class ProtocolTiming(NamedTuple):
    short_us:     int   # nominal half-bit / short pulse
    long_us:      int   # nominal full-bit / long pulse
    tolerance_us: int   # accepted deviation, exclusive
    min_bits:     int   # minimum payload width for a valid frame


class RadioPreset(NamedTuple):
    frequency_hz: int = 433_920_000
    name:         str = "AM650"


DEFAULT_PRESET = RadioPreset()


# -----------------------------------------------------------------------------
# FORD V0  (80 bits: 64-bit key-part-1 + 16-bit key-part-2, Manchester)
# -----------------------------------------------------------------------------
#
#   [H short] [L long, H long] x N  [L long] [H short] [L gap 3500]
#   [H short]  ← first half of the literal leading '1'
#   80 Manchester bits, '1' = H then L, '0' = L then H
#
# Both key parts are sent bit-inverted.

FORD_V0_NAME   = "Ford V0"
FORD_V0_TIMING = ProtocolTiming(short_us=250, long_us=500, tolerance_us=100, min_bits=64)
FORD_V0_BITS        = 80
FORD_V0_KEY1_BITS   = 64
FORD_V0_RECORD_BITS = 64    # records store key-part-1 only; key-part-2 is BS/CRC

FORD_V0_GAP_US           = 3_500
FORD_V0_GAP_TOLERANCE_US = 250
FORD_V0_PREAMBLE_PAIRS   = 10   # encoder: [L long, H long] pairs
FORD_V0_MIN_PREAMBLE     = 4    # decoder: pairs required before the gap


# -----------------------------------------------------------------------------
# KIA V1  (56 bits, raw oversampled buffer + offline alignment search)
# -----------------------------------------------------------------------------
#
#   [H short] [L long, H long] x 16  [L short] [H short]  ← sync
#   56 Manchester bits ('1' = H L, '0' = L H), then a low end gap > 2400
#
# The encoder sends KIA_V1_TOTAL_BURSTS copies separated by a long low gap.
# A trailing low half-bit merges into whichever gap follows it.
#
# The decoder does not demodulate live: every short pulse adds one raw bit of
# its level and every long pulse two, then all alignment offsets are tried.

KIA_V1_NAME   = "Kia V1"
KIA_V1_TIMING = ProtocolTiming(short_us=800, long_us=1_600, tolerance_us=200, min_bits=56)
KIA_V1_BITS   = 56

KIA_V1_PREAMBLE_PAIRS = 16
KIA_V1_MIN_HEADER     = 12      # long pulses required before the short low
KIA_V1_END_US         = 2_400   # any pulse longer than this ends the frame
KIA_V1_END_GAP_US     = 3_000   # encoder end gap after the last burst
KIA_V1_TOTAL_BURSTS   = 3       # encoder: frames per transmission
KIA_V1_INTER_BURST_GAP_US = 10_000   # encoder gap between bursts
KIA_V1_MAX_RAW_BITS   = 192
KIA_V1_MIN_RAW_BITS   = 113     # 1 sync raw bit + 2 x 56
KIA_V1_ALIGN_OFFSETS  = 8


# -----------------------------------------------------------------------------
# SUZUKI  (64 bits, PWM long-high = 1, carry-propagated 32-bit halves)
# -----------------------------------------------------------------------------
#
#   [H short, L short] x 130
#   64 x ([H long = 1 | H short = 0] [L short]), last low replaced by the gap
#
# Top nibble of the 64-bit value is the manufacturer marker and must be 0xF.

SUZUKI_NAME   = "Suzuki"
SUZUKI_TIMING = ProtocolTiming(short_us=250, long_us=500, tolerance_us=100, min_bits=64)
SUZUKI_BITS   = 64

SUZUKI_GAP_US           = 2_000
SUZUKI_GAP_TOLERANCE_US = 400
SUZUKI_PREAMBLE_PAIRS   = 130
SUZUKI_MIN_PREAMBLE     = 257   # short half-periods before the first data bit
SUZUKI_MANUFACTURER     = 0xF

SUZUKI_BUTTON_NAMES = {
    1: "PANIC",
    2: "TRUNK",
    3: "LOCK",
    4: "UNLOCK",
}


# -----------------------------------------------------------------------------
# SUBARU  (64 bits, PWM short-high = 1, rolling code)
# -----------------------------------------------------------------------------
#
#   [H long, L long] x 24  [H long]  [L gap 2750]  [H sync 2750]  [L long]
#   64 x ([H short = 1 | H long = 0] [L short]), last low replaced by end gap
#
# Byte layout (MSB-first): b0 = button, b1..b3 = serial, b4..b7 = scrambled
# 16-bit counter (see payloads.subaru_decode).

SUBARU_NAME   = "Subaru"
SUBARU_TIMING = ProtocolTiming(short_us=800, long_us=1_600, tolerance_us=250, min_bits=64)
SUBARU_BITS   = 64

SUBARU_PREAMBLE_PAIRS = 25
SUBARU_MIN_HEADER     = 20      # long pulses required before the gap
SUBARU_GAP_MIN_US     = 2_000   # gap / sync window, exclusive bounds
SUBARU_GAP_MAX_US     = 3_500
SUBARU_GAP_US         = 2_750
SUBARU_END_US         = 3_000   # any pulse longer than this ends the frame
SUBARU_END_GAP_US     = 4_000
SUBARU_ROTATION_BASE  = 4
SUBARU_REGISTER_BITS  = 24


# -----------------------------------------------------------------------------
# VW  (80 bits, paired Manchester, index-mapped storage)
# -----------------------------------------------------------------------------
#
#   [H short, L short] x 43  [H long] [L short] [H med, L med] x 2
#   [H short]  ← start of data: first half of a '1' marker bit, not stored
#   80 Manchester bits, MSB-first:
#     positions 79..72 = type, 71..8 = 64-bit key, 7..0 = check

VW_NAME   = "VW"
VW_TIMING = ProtocolTiming(short_us=500, long_us=1_000, tolerance_us=120, min_bits=80)
VW_BITS   = 80

VW_MEDIUM_US  = 750
VW_END_US     = 5_000   # a final low longer than this still completes bit 80
VW_SYNC_PAIRS = 43

VW_BUTTON_NAMES = {
    1: "UNLOCK",
    2: "LOCK",
    3: "Un+Lk",
    4: "TRUNK",
    5: "Un+Tr",
    6: "Lk+Tr",
    7: "Un+Lk+Tr",
    8: "PANIC",
}


# -----------------------------------------------------------------------------
# HISTORY
# -----------------------------------------------------------------------------

HISTORY_MAX_ITEMS       = 50
HISTORY_DEDUP_WINDOW_MS = 500
