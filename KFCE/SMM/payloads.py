# =============================================================================
# payloads.py — Reversible payload transforms
# =============================================================================
#
# Pure functions, one decode/encode pair per protocol. Decoders call the
# decode half once a frame is fully collected; encoders call the encode half
# once before emitting data bits. For every protocol:
#
#   decode(encode(fields)) == fields
#   encode(decode(raw))    == raw   for every raw value encode can produce
#
# Byte buffers are lists of ints, index 0 = most significant byte, matching
# transmission order.
# =============================================================================

from __future__ import annotations
from typing import NamedTuple

from KFCE.SMM.constants import (
    SUZUKI_MANUFACTURER,
    SUBARU_ROTATION_BASE, SUBARU_REGISTER_BITS,
)

MASK8  = 0xFF
MASK16 = 0xFFFF
MASK24 = 0xFF_FFFF
MASK32 = 0xFFFF_FFFF
MASK64 = 0xFFFF_FFFF_FFFF_FFFF


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def to_bytes(value: int, width: int) -> list[int]:
    """Split value into `width` bytes, most significant first."""
    return [(value >> (8 * (width - 1 - i))) & MASK8 for i in range(width)]


def from_bytes(buf: list[int]) -> int:
    value = 0
    for b in buf:
        value = (value << 8) | (b & MASK8)
    return value


def parity8(byte: int) -> int:
    """XOR of all bits of one byte."""
    return bin(byte & MASK8).count("1") & 1


def require_width(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name}={value:#x} does not fit in {bits} bits")


# ---------------------------------------------------------------------------
# Ford V0 — parity-selected XOR diffusion + 0xAA/0x55 interleave
# ---------------------------------------------------------------------------
#
# Logical buffer (after complementing both received key parts):
#
#   byte  0      1..4         5               6..7        8    9
#         prefix serial (BE)  btn<<4|cnt>>16  cnt (mixed) BS   CRC
#
# parity(BS) = 1 → XOR byte 7 into bytes 1..6
# parity(BS) = 0 → XOR byte 6 into bytes 1..5 and into byte 7
# then bytes 6/7 swap their odd bit positions (0x55 mask).

class FordV0Fields(NamedTuple):
    serial: int        # 32 bits
    button: int        # 4 bits
    count:  int        # 20 bits
    bs:     int        # key-part-2 high byte; selects the diffusion byte
    crc:    int        # key-part-2 low byte
    prefix: int = 0    # key-part-1 byte 0, passed through untouched


def _ford_v0_diffuse(buf: list[int]) -> None:
    """Apply the parity-selected XOR diffusion in place (self-inverse)."""
    if parity8(buf[8]):
        xor_byte, limit = buf[7], 7
    else:
        xor_byte, limit = buf[6], 6
        buf[7] ^= xor_byte
    for idx in range(1, limit):
        buf[idx] ^= xor_byte


def _ford_v0_interleave(b6: int, b7: int) -> tuple[int, int]:
    return (b6 & 0xAA) | (b7 & 0x55), (b7 & 0xAA) | (b6 & 0x55)


def ford_v0_decode(raw_key1: int, raw_key2: int) -> FordV0Fields:
    """
    Decode the two key parts exactly as received (still bit-inverted).

    raw_key1 : 64-bit key-part-1
    raw_key2 : 16-bit key-part-2
    """
    key1 = ~raw_key1 & MASK64
    key2 = ~raw_key2 & MASK16
    buf  = to_bytes(key1, 8) + [key2 >> 8, key2 & MASK8]

    # The diffusion byte is read before any byte is modified.
    _ford_v0_diffuse(buf)
    buf[6], buf[7] = _ford_v0_interleave(buf[6], buf[7])

    return FordV0Fields(
        serial=from_bytes(buf[1:5]),
        button=buf[5] >> 4,
        count=((buf[5] & 0x0F) << 16) | (buf[6] << 8) | buf[7],
        bs=buf[8],
        crc=buf[9],
        prefix=buf[0],
    )


def ford_v0_encode(fields: FordV0Fields) -> tuple[int, int]:
    """Inverse of ford_v0_decode. Returns (raw_key1, raw_key2) as transmitted."""
    require_width("serial", fields.serial, 32)
    require_width("button", fields.button, 4)
    require_width("count",  fields.count,  20)
    require_width("bs",     fields.bs,     8)
    require_width("crc",    fields.crc,    8)
    require_width("prefix", fields.prefix, 8)

    c6 = (fields.count >> 8) & MASK8
    c7 = fields.count & MASK8
    b6, b7 = _ford_v0_interleave(c6, c7)
    buf = (
        [fields.prefix]
        + to_bytes(fields.serial, 4)
        + [(fields.button << 4) | (fields.count >> 16), b6, b7, fields.bs, fields.crc]
    )
    _ford_v0_diffuse(buf)

    key1 = from_bytes(buf[:8])
    key2 = (fields.bs << 8) | fields.crc
    return ~key1 & MASK64, ~key2 & MASK16


# ---------------------------------------------------------------------------
# Kia V1 — plain field packing
# ---------------------------------------------------------------------------
#
#   bits 55..24 serial | 23..16 button | 15..8 count | 7..0 check
#
# The check byte algorithm is not known; it is carried as an opaque value.

class KiaV1Fields(NamedTuple):
    serial: int    # 32 bits
    button: int    # 8 bits
    count:  int    # 8 bits
    crc:    int    # 8 bits, opaque


def kia_v1_decode(data: int) -> KiaV1Fields:
    return KiaV1Fields(
        serial=(data >> 24) & MASK32,
        button=(data >> 16) & MASK8,
        count=(data >> 8) & MASK8,
        crc=data & MASK8,
    )


def kia_v1_encode(fields: KiaV1Fields) -> int:
    require_width("serial", fields.serial, 32)
    require_width("button", fields.button, 8)
    require_width("count",  fields.count,  8)
    require_width("crc",    fields.crc,    8)
    return (fields.serial << 24) | (fields.button << 16) | (fields.count << 8) | fields.crc


# ---------------------------------------------------------------------------
# Suzuki — manufacturer nibble + field packing
# ---------------------------------------------------------------------------
#
#   63..60 0xF | 59..44 count | 43..16 serial | 15..12 button | 11..4 crc | 3..0 tail

class SuzukiFields(NamedTuple):
    serial: int       # 28 bits
    button: int       # 4 bits
    count:  int       # 16 bits
    crc:    int       # 8 bits
    tail:   int = 0   # low nibble, passed through


def suzuki_decode(data: int) -> SuzukiFields | None:
    """Return the fields, or None when the manufacturer nibble is not 0xF."""
    if (data >> 60) & 0xF != SUZUKI_MANUFACTURER:
        return None
    return SuzukiFields(
        serial=(data >> 16) & 0x0FFF_FFFF,
        button=(data >> 12) & 0xF,
        count=(data >> 44) & MASK16,
        crc=(data >> 4) & MASK8,
        tail=data & 0xF,
    )


def suzuki_encode(fields: SuzukiFields) -> int:
    require_width("serial", fields.serial, 28)
    require_width("button", fields.button, 4)
    require_width("count",  fields.count,  16)
    require_width("crc",    fields.crc,    8)
    require_width("tail",   fields.tail,   4)
    return (
        (SUZUKI_MANUFACTURER << 60)
        | (fields.count << 44)
        | (fields.serial << 16)
        | (fields.button << 12)
        | (fields.crc << 4)
        | fields.tail
    )


# ---------------------------------------------------------------------------
# Subaru — rolling-code descrambler
# ---------------------------------------------------------------------------
#
# Key bytes KB0..KB7: KB0 = button, KB1..KB3 = serial, KB4..KB7 = counter.
#
# Pass 1: the low counter byte is stored inverted and bit-permuted across
#         KB4..KB6 (SUBARU_LOW_COUNT_BITS).
# Pass 2: two shadow bytes SH1/SH2 are gathered from KB5..KB7. The serial
#         register [KB3 KB1 KB2] is rotated left by 4 + low, and
#         T1 = reg[1] ^ SH1, T2 = reg[2] ^ SH2. The high counter byte is the
#         inverted, permuted selection SUBARU_HIGH_COUNT_BITS of T1/T2.

# Output bit i of the low byte is set when (byte, mask) is clear.
SUBARU_LOW_COUNT_BITS = (
    (4, 0x40), (4, 0x80), (5, 0x01), (5, 0x02),
    (6, 0x01), (6, 0x02), (5, 0x40), (5, 0x80),
)

# (byte, mask, shadow bit) copied into the low nibble of SH1.
SUBARU_SHADOW1_BITS = (
    (5, 0x04, 0x04),
    (5, 0x08, 0x08),
    (6, 0x80, 0x02),
    (6, 0x40, 0x01),
)

# Output bit i of the high byte is set when (register, mask) is clear;
# register 1 = T1, register 2 = T2.
SUBARU_HIGH_COUNT_BITS = (
    (2, 0x40), (2, 0x80), (1, 0x10), (1, 0x20),
    (2, 0x04), (2, 0x08), (1, 0x01), (1, 0x02),
)


class SubaruFields(NamedTuple):
    serial: int    # 24 bits
    button: int    # 4 bits
    count:  int    # 16 bits


def subaru_rotation_depth(low: int) -> int:
    """Effective left-rotation depth of the 24-bit serial register."""
    return (SUBARU_ROTATION_BASE + low) % SUBARU_REGISTER_BITS


def _subaru_register(serial: int, low: int) -> tuple[int, int]:
    """Rotated serial register; returns its (SER1, SER2) bytes."""
    reg = ((serial & MASK8) << 16) | (((serial >> 16) & MASK8) << 8) | ((serial >> 8) & MASK8)
    depth = subaru_rotation_depth(low)
    if depth:
        reg = ((reg << depth) | (reg >> (SUBARU_REGISTER_BITS - depth))) & MASK24
    return (reg >> 8) & MASK8, reg & MASK8


def subaru_decode_count(kb: list[int], serial: int) -> int:
    low = 0
    for bit, (idx, mask) in enumerate(SUBARU_LOW_COUNT_BITS):
        if not kb[idx] & mask:
            low |= 1 << bit

    sh1 = (kb[7] << 4) & 0xF0
    for idx, mask, shadow_bit in SUBARU_SHADOW1_BITS:
        if kb[idx] & mask:
            sh1 |= shadow_bit
    sh2 = ((kb[6] << 2) & 0xF0) | (kb[7] >> 4)

    ser1, ser2 = _subaru_register(serial, low)
    regs = {1: ser1 ^ sh1, 2: ser2 ^ sh2}

    high = 0
    for bit, (reg, mask) in enumerate(SUBARU_HIGH_COUNT_BITS):
        if not regs[reg] & mask:
            high |= 1 << bit
    return (high << 8) | low


def subaru_encode_count(serial: int, count: int) -> list[int]:
    """Return KB4..KB7 for a serial/counter pair."""
    low  = count & MASK8
    high = (count >> 8) & MASK8

    regs = {1: 0, 2: 0}
    for bit, (reg, mask) in enumerate(SUBARU_HIGH_COUNT_BITS):
        if not high & (1 << bit):
            regs[reg] |= mask

    # Same register, same depth: the register comes from the cleartext serial.
    ser1, ser2 = _subaru_register(serial, low)
    sh1 = regs[1] ^ ser1
    sh2 = regs[2] ^ ser2

    out = [0, 0, 0, 0, 0, 0, 0, 0]
    for bit, (idx, mask) in enumerate(SUBARU_LOW_COUNT_BITS):
        if not low & (1 << bit):
            out[idx] |= mask
    for idx, mask, shadow_bit in SUBARU_SHADOW1_BITS:
        if sh1 & shadow_bit:
            out[idx] |= mask
    out[6] |= (sh2 & 0xF0) >> 2
    out[7] |= (sh1 & 0xF0) >> 4
    out[7] |= (sh2 & 0x0F) << 4
    return out[4:]


def subaru_decode(data: int) -> SubaruFields:
    kb = to_bytes(data, 8)
    serial = from_bytes(kb[1:4])
    return SubaruFields(
        serial=serial,
        button=kb[0] & 0x0F,
        count=subaru_decode_count(kb, serial),
    )


def subaru_encode(fields: SubaruFields) -> int:
    require_width("serial", fields.serial, 24)
    require_width("button", fields.button, 4)
    require_width("count",  fields.count,  16)
    kb = [fields.button] + to_bytes(fields.serial, 3) + subaru_encode_count(fields.serial, fields.count)
    return from_bytes(kb)


# ---------------------------------------------------------------------------
# VW — pass-through split storage
# ---------------------------------------------------------------------------
#
# 80-bit frame, MSB-first:  type (8) | key (64) | check (8)
# data_2 = type << 8 | check

class VwFields(NamedTuple):
    key:   int    # 64 bits
    type:  int    # 8 bits
    check: int    # 8 bits

    @property
    def button(self) -> int:
        return self.check & 0x0F


def vw_decode(key: int, data2: int) -> VwFields:
    return VwFields(key=key & MASK64, type=(data2 >> 8) & MASK8, check=data2 & MASK8)


def vw_encode(fields: VwFields) -> tuple[int, int]:
    """Returns (key, data_2)."""
    require_width("key",   fields.key,   64)
    require_width("type",  fields.type,  8)
    require_width("check", fields.check, 8)
    return fields.key, (fields.type << 8) | fields.check


def vw_frame(fields: VwFields) -> int:
    """The 80 transmitted bits as one integer, bit 79 first on air."""
    key, data2 = vw_encode(fields)
    return ((data2 >> 8) << 72) | (key << 8) | (data2 & MASK8)
