#!/usr/bin/env python3
# =============================================================================
# validate.py — KFCE Self-Validation Suite
# =============================================================================
#
# Run directly:  python -m KFCE.SVM.validate
#
# Tests:
#   1. Timing integrity     — short/long/gap windows never overlap
#   2. Payload transforms   — pinned vectors + decode(encode(fields))
#   3. Pulse-train replay   — every encoder's output decodes to its message,
#                             once per burst
#   4. Records              — serialize → deserialize reproduces the message
# =============================================================================

import sys

from KFCE.SMM.constants import (
    FORD_V0_TIMING, FORD_V0_GAP_US, FORD_V0_GAP_TOLERANCE_US,
    KIA_V1_TIMING, KIA_V1_END_US,
    SUZUKI_TIMING, SUZUKI_GAP_US, SUZUKI_GAP_TOLERANCE_US,
    SUBARU_TIMING, SUBARU_GAP_MIN_US, SUBARU_END_US, SUBARU_END_GAP_US,
    VW_TIMING, VW_MEDIUM_US,
)
from KFCE.SMM.payloads import (
    FordV0Fields, KiaV1Fields, SuzukiFields, SubaruFields, VwFields,
    ford_v0_decode, ford_v0_encode,
    kia_v1_decode, kia_v1_encode,
    suzuki_decode, suzuki_encode,
    subaru_decode, subaru_encode, subaru_rotation_depth,
    vw_decode, vw_encode,
)
from KFCE.SHM.records import serialize, deserialize
from KFCE.SVM.capture_io import format_sub_raw, parse_sub_raw
from KFCE.SVM.pulse_fsm import DecodedMessage
from KFCE.registry import PROTOCOLS, encoder_for

PASS = "[PASS]"
FAIL = "[FAIL]"
INFO = "[INFO]"

failures = 0

def check(label: str, condition: bool, detail: str = "") -> bool:
    global failures
    if condition:
        print(f"  {PASS} {label}")
    else:
        print(f"  {FAIL} {label}{(' -- ' + detail) if detail else ''}")
        failures += 1
    return condition


def windows_disjoint(timing, other_lo: int) -> bool:
    """Long window ends below other_lo and short window ends below long."""
    short_hi = timing.short_us + timing.tolerance_us
    long_lo  = timing.long_us - timing.tolerance_us
    long_hi  = timing.long_us + timing.tolerance_us
    return short_hi <= long_lo and long_hi <= other_lo


# =============================================================================
# TEST 1 — Timing Integrity
# =============================================================================
print("\n" + "="*60)
print("TEST 1 — Timing Integrity")
print("="*60)

check("Ford V0: short < long < gap",
      windows_disjoint(FORD_V0_TIMING, FORD_V0_GAP_US - FORD_V0_GAP_TOLERANCE_US))
check("Kia V1: short < long < end",
      windows_disjoint(KIA_V1_TIMING, KIA_V1_END_US))
check("Suzuki: short < long < gap",
      windows_disjoint(SUZUKI_TIMING, SUZUKI_GAP_US - SUZUKI_GAP_TOLERANCE_US))
check("Subaru: short < long < gap",
      windows_disjoint(SUBARU_TIMING, SUBARU_GAP_MIN_US))
check("Subaru: end gap clears the end marker", SUBARU_END_GAP_US > SUBARU_END_US)
check("VW: short < medium < long",
      VW_TIMING.short_us + VW_TIMING.tolerance_us <= VW_MEDIUM_US - VW_TIMING.tolerance_us
      and VW_MEDIUM_US + VW_TIMING.tolerance_us <= VW_TIMING.long_us - VW_TIMING.tolerance_us)


# =============================================================================
# TEST 2 — Payload Transforms
# =============================================================================
print("\n" + "="*60)
print("TEST 2 — Payload Transforms")
print("="*60)

# Ford V0 pinned vectors (even and odd BS parity)
ford_even = FordV0Fields(serial=0x00AABBCC, button=0x3, count=0x001234, bs=0x66, crc=0x99, prefix=0x3F)
ford_odd  = ford_even._replace(bs=0x01, crc=0x5A)
check("Ford V0 even-parity encode",
      ford_v0_encode(ford_even) == (0xC0E9435225D9E9D9, 0x9966),
      f"got {tuple(hex(v) for v in ford_v0_encode(ford_even))}")
check("Ford V0 odd-parity encode",
      ford_v0_encode(ford_odd) == (0xC0CF657403FFD9CF, 0xFEA5),
      f"got {tuple(hex(v) for v in ford_v0_encode(ford_odd))}")
check("Ford V0 decode pinned pair",
      ford_v0_decode(0xC0E9435225D9E9D9, 0x9966) == ford_even)

kia = KiaV1Fields(serial=0xDEADBEEF, button=0x21, count=0x7E, crc=0xC3)
check("Kia V1 round trip", kia_v1_decode(kia_v1_encode(kia)) == kia)

suzuki = SuzukiFields(serial=0x1234567, button=0x3, count=0xBEEF, crc=0x5A)
check("Suzuki pinned packing", suzuki_encode(suzuki) == 0xFBEEF123456735A0)
check("Suzuki round trip", suzuki_decode(suzuki_encode(suzuki)) == suzuki)
check("Suzuki rejects manufacturer nibble 0xE", suzuki_decode(0xEBEEF123456735A0) is None)

check("Subaru pinned zero vector",
      subaru_encode(SubaruFields(serial=0, button=0, count=0)) == 0x00000000C0C3F3C3)
check("Subaru depth(0) = 4",    subaru_rotation_depth(0) == 4)
check("Subaru depth(255) = 19", subaru_rotation_depth(255) == 259 % 24)
bad = [
    c for c in range(0, 0x10000, 257)
    if subaru_decode(subaru_encode(SubaruFields(0xA5C3E1, 0x7, c))).count != c
]
check("Subaru counter sweep round trip", not bad, f"first bad count {bad[:1]}")

vw = VwFields(key=0x0123456789ABCDEF, type=0xB4, check=0x52)
check("VW round trip", vw_decode(*vw_encode(vw)) == vw)
check("VW button = low nibble of check", vw.button == 0x2)


# =============================================================================
# TEST 3 — Pulse-train Replay
# =============================================================================
print("\n" + "="*60)
print("TEST 3 — Pulse-train Replay")
print("="*60)

SAMPLES = [
    DecodedMessage("Ford V0", 80, 0x3F16BCADDA261626, ford_even),
    DecodedMessage("Kia V1", 56, kia_v1_encode(kia), kia),
    DecodedMessage("Suzuki", 64, suzuki_encode(suzuki), suzuki),
    DecodedMessage("Subaru", 64, subaru_encode(SubaruFields(0xA5C3E1, 0x7, 0x1234)),
                   SubaruFields(0xA5C3E1, 0x7, 0x1234)),
    DecodedMessage("VW", 80, vw.key, vw),
]

for message in SAMPLES:
    received = []
    decoder = PROTOCOLS[message.protocol].decoder(received.append)
    encoder = encoder_for(message)
    pulses  = encoder.pulses()
    decoder.feed_pulses(pulses)
    check(f"{message.protocol:<8} {len(pulses):4d} pulses → {encoder.bursts} message(s)",
          received == [message] * encoder.bursts, f"got {received}")

    # RAW export joins adjacent same-level pulses; a valid train has none.
    received.clear()
    decoder.reset()
    decoder.feed_pulses(parse_sub_raw(format_sub_raw(pulses)))
    check(f"{message.protocol:<8} survives RAW export",
          received == [message] * encoder.bursts, f"got {received}")


# =============================================================================
# TEST 4 — Records
# =============================================================================
print("\n" + "="*60)
print("TEST 4 — Records")
print("="*60)

for message in SAMPLES:
    text = serialize(message)
    restored, _ = deserialize(text)
    check(f"{message.protocol:<8} record round trip", restored == message)


# =============================================================================
# Summary
# =============================================================================
print("\n" + "="*60)
if failures == 0:
    print(f"  ALL TESTS PASSED")
else:
    print(f"  {failures} TEST(S) FAILED")
print("="*60 + "\n")
sys.exit(0 if failures == 0 else 1)
