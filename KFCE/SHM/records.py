# =============================================================================
# records.py — Flat "Key: Value" message records
# =============================================================================
#
# A record holds everything needed to rebuild a DecodedMessage and re-run
# its encoder without the original pulses:
#
#   Frequency: 433920000
#   Preset: AM650
#   Protocol: Ford V0
#   Bit: 80
#   Key: 3F5500FF11223344
#   BS: 66
#   CRC: 153
#   Serial: 11189196
#   Btn: 3
#   Cnt: 4660
#
# Integer fields are decimal (a 0x prefix is also accepted); Key is hex.
# Protocol and Bit are checked before any other field is read. A missing
# identity field raises RecordError; Frequency/Preset fall back to
# DEFAULT_PRESET.
# =============================================================================

from __future__ import annotations
from typing import Callable

from KFCE.SMM.constants import (
    RadioPreset, DEFAULT_PRESET,
    FORD_V0_NAME, KIA_V1_NAME, SUZUKI_NAME, SUBARU_NAME, VW_NAME,
    SUZUKI_BUTTON_NAMES, VW_BUTTON_NAMES,
)
from KFCE.SMM.payloads import (
    MASK32, MASK64,
    FordV0Fields, KiaV1Fields, SubaruFields,
    ford_v0_encode, kia_v1_decode, kia_v1_encode,
    suzuki_decode, subaru_decode, vw_decode,
)
from KFCE.SVM.pulse_fsm import DecodedMessage
from KFCE.registry import get_protocol


class RecordError(ValueError):
    """A persisted record is malformed or lacks a required field."""


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def parse_record(text: str) -> dict[str, str]:
    """Split record text into a {key: value} dict; later keys win."""
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or ":" not in line:
            continue
        key, value = line.split(":", 1)
        values[key.strip()] = value.strip()
    return values


def _require(values: dict[str, str], key: str) -> str:
    try:
        return values[key]
    except KeyError:
        raise RecordError(f"missing required field {key!r}") from None


def _to_int(key: str, raw: str) -> int:
    try:
        if raw.lower().startswith("0x"):
            return int(raw, 16)
        return int(raw, 10)
    except ValueError:
        raise RecordError(f"field {key!r} is not an integer: {raw!r}") from None


def _int(values: dict[str, str], key: str) -> int:
    return _to_int(key, _require(values, key))


def _optional_int(values: dict[str, str], key: str, default: int) -> int:
    return _to_int(key, values[key]) if key in values else default


def _hex(values: dict[str, str], key: str) -> int:
    raw = _require(values, key).replace(" ", "")
    try:
        return int(raw, 16)
    except ValueError:
        raise RecordError(f"field {key!r} is not hex: {raw!r}") from None


# ---------------------------------------------------------------------------
# Per-protocol field writers / readers
# ---------------------------------------------------------------------------

def _ford_write(message: DecodedMessage) -> list[tuple[str, int]]:
    f = message.fields
    return [("BS", f.bs), ("CRC", f.crc), ("Serial", f.serial), ("Btn", f.button), ("Cnt", f.count)]


def _ford_read(key: int, values: dict[str, str]) -> DecodedMessage:
    fields = FordV0Fields(
        serial=_int(values, "Serial"),
        button=_int(values, "Btn"),
        count=_int(values, "Cnt"),
        bs=_int(values, "BS"),
        crc=_int(values, "CRC"),
        prefix=(key >> 56) & 0xFF,
    )
    try:
        raw_key1, _ = ford_v0_encode(fields)
    except ValueError as exc:
        raise RecordError(str(exc)) from exc
    if ~raw_key1 & MASK64 != key:
        raise RecordError(f"Key {key:016X} does not match Serial/Btn/Cnt/BS")
    return DecodedMessage(FORD_V0_NAME, get_protocol(FORD_V0_NAME).bit_count, key, fields)


def _kia_write(message: DecodedMessage) -> list[tuple[str, int]]:
    f = message.fields
    return [("Serial", f.serial), ("Btn", f.button), ("Cnt", f.count), ("CRC", f.crc)]


def _kia_read(key: int, values: dict[str, str]) -> DecodedMessage:
    # Explicit fields override the packed key, so an edited record can be
    # replayed with a new counter.
    base = kia_v1_decode(key)
    fields = KiaV1Fields(
        serial=_optional_int(values, "Serial", base.serial),
        button=_optional_int(values, "Btn", base.button),
        count=_optional_int(values, "Cnt", base.count),
        crc=_optional_int(values, "CRC", base.crc),
    )
    try:
        data = kia_v1_encode(fields)
    except ValueError as exc:
        raise RecordError(str(exc)) from exc
    return DecodedMessage(KIA_V1_NAME, get_protocol(KIA_V1_NAME).bit_count, data, fields)


def _suzuki_write(message: DecodedMessage) -> list[tuple[str, int]]:
    f = message.fields
    return [("Serial", f.serial), ("Btn", f.button), ("Cnt", f.count), ("CRC", f.crc)]


def _suzuki_read(key: int, values: dict[str, str]) -> DecodedMessage:
    fields = suzuki_decode(key)
    if fields is None:
        raise RecordError(f"Key {key:016X} lacks the 0xF manufacturer nibble")
    return DecodedMessage(SUZUKI_NAME, get_protocol(SUZUKI_NAME).bit_count, key, fields)


def _subaru_write(message: DecodedMessage) -> list[tuple[str, int]]:
    f = message.fields
    return [
        ("Serial", f.serial), ("Btn", f.button), ("Cnt", f.count),
        ("DataHi", message.key >> 32), ("DataLo", message.key & MASK32),
    ]


def _subaru_read(key: int, values: dict[str, str]) -> DecodedMessage:
    # The key is authoritative: some of its bits sit outside the
    # serial/button/counter permutation and cannot be rebuilt from fields.
    if "DataHi" in values or "DataLo" in values:
        data = (_int(values, "DataHi") << 32) | _int(values, "DataLo")
        if data != key:
            raise RecordError(f"Key {key:016X} does not match DataHi/DataLo {data:016X}")
    fields = subaru_decode(key)
    stored = SubaruFields(
        serial=_optional_int(values, "Serial", fields.serial),
        button=_optional_int(values, "Btn", fields.button),
        count=_optional_int(values, "Cnt", fields.count),
    )
    if stored != fields:
        raise RecordError(f"Key {key:016X} does not match Serial/Btn/Cnt")
    return DecodedMessage(SUBARU_NAME, get_protocol(SUBARU_NAME).bit_count, key, fields)


def _vw_write(message: DecodedMessage) -> list[tuple[str, int]]:
    f = message.fields
    return [("Type", f.type), ("Check", f.check), ("Btn", f.button)]


def _vw_read(key: int, values: dict[str, str]) -> DecodedMessage:
    vw_type = _int(values, "Type")
    check   = _int(values, "Check")
    if not (0 <= vw_type <= 0xFF and 0 <= check <= 0xFF):
        raise RecordError("Type and Check must each fit in one byte")
    fields = vw_decode(key, (vw_type << 8) | check)
    return DecodedMessage(VW_NAME, get_protocol(VW_NAME).bit_count, fields.key, fields)


FieldWriter = Callable[[DecodedMessage], list[tuple[str, int]]]
FieldReader = Callable[[int, dict[str, str]], DecodedMessage]

RECORD_CODECS: dict[str, tuple[FieldWriter, FieldReader]] = {
    FORD_V0_NAME: (_ford_write, _ford_read),
    KIA_V1_NAME:  (_kia_write, _kia_read),
    SUZUKI_NAME:  (_suzuki_write, _suzuki_read),
    SUBARU_NAME:  (_subaru_write, _subaru_read),
    VW_NAME:      (_vw_write, _vw_read),
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def serialize(message: DecodedMessage, preset: RadioPreset = DEFAULT_PRESET) -> str:
    writer, _ = RECORD_CODECS[message.protocol]
    lines = [
        f"Frequency: {preset.frequency_hz}",
        f"Preset: {preset.name}",
        f"Protocol: {message.protocol}",
        f"Bit: {message.bit_count}",
        f"Key: {message.key:016X}",
    ]
    lines += [f"{key}: {value}" for key, value in writer(message)]
    return "\n".join(lines) + "\n"


def deserialize(text: str) -> tuple[DecodedMessage, RadioPreset]:
    """
    Rebuild a message and its radio preset from record text.

    Raises RecordError for an unknown protocol, an unexpected Bit value,
    or a missing / malformed identity field.
    """
    values = parse_record(text)

    name = _require(values, "Protocol")
    try:
        entry = get_protocol(name)
    except KeyError as exc:
        raise RecordError(str(exc.args[0])) from None

    bits = _int(values, "Bit")
    if bits not in entry.record_bits:
        expected = " or ".join(str(b) for b in entry.record_bits)
        raise RecordError(f"{name}: Bit must be {expected}, got {bits}")

    _, reader = RECORD_CODECS[name]
    message = reader(_hex(values, "Key"), values)

    preset = RadioPreset(
        frequency_hz=_optional_int(values, "Frequency", DEFAULT_PRESET.frequency_hz),
        name=values.get("Preset", DEFAULT_PRESET.name),
    )
    return message, preset


def message_hash(message: DecodedMessage) -> int:
    """One-byte XOR over the key's bytes, least significant first."""
    digest = 0
    for i in range(message.bit_count // 8 + 1):
        digest ^= (message.key >> (8 * i)) & 0xFF
    return digest


def describe(message: DecodedMessage) -> str:
    """Human-readable summary; the first line names the protocol and width."""
    f = message.fields
    head = f"{message.protocol} {message.bit_count}bit"
    if message.protocol == FORD_V0_NAME:
        body = [
            f"Key:{message.key:016X}",
            f"Sn:{f.serial:08X} Btn:{f.button:X}",
            f"Cnt:{f.count:05X} BS:{f.bs:02X} CRC:{f.crc:02X}",
        ]
    elif message.protocol == KIA_V1_NAME:
        body = [
            f"Key:{message.key:014X}",
            f"Sn:{f.serial:08X} Btn:{f.button:02X}",
            f"Cnt:{f.count:02X} CRC:{f.crc:02X}",
        ]
    elif message.protocol == SUZUKI_NAME:
        name = SUZUKI_BUTTON_NAMES.get(f.button, "??")
        body = [
            f"Key:{message.key:016X}",
            f"Sn:{f.serial:07X} Btn:{f.button:X} {name}",
            f"Cnt:{f.count:04X} CRC:{f.crc:02X}",
        ]
    elif message.protocol == SUBARU_NAME:
        body = [
            f"Key:{message.key:016X}",
            f"Sn:{f.serial:06X} Btn:{f.button:X}",
            f"Cnt:{f.count:04X}",
        ]
    else:
        name = VW_BUTTON_NAMES.get(f.button, "??")
        body = [
            f"Key:{message.key:016X}",
            f"Type:{f.type:02X} Check:{f.check:02X}",
            f"Btn:{f.button:X} {name}",
        ]
    return "\n".join([head] + body)
