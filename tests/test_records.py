import pytest

from KFCE.SMM.constants import RadioPreset, DEFAULT_PRESET
from KFCE.SMM.payloads import subaru_decode
from KFCE.SHM.records import (
    RecordError, parse_record, serialize, deserialize, message_hash, describe,
)
from KFCE.SVM.pulse_fsm import DecodedMessage
from KFCE.SVM.protocol_decoders import SubaruDecoder
from KFCE.registry import encoder_for


FORD_RECORD = """Filetype: Flipper SubGhz Key File
Version: 1
Frequency: 315000000
Preset: FuriHalSubGhzPresetOok650Async
Protocol: Ford V0
Bit: 64
Key: 3F16BCADDA261626
BS: 102
CRC: 153
Serial: 11189196
Btn: 3
Cnt: 4660
"""


def test_round_trip(message):
    preset = RadioPreset(315_000_000, "AM270")
    restored, restored_preset = deserialize(serialize(message, preset))
    assert restored == message
    assert restored_preset == preset


def test_parse_record_skips_noise():
    values = parse_record("# comment\n\nKey: 01 02\nBit:56\nnot a field\n")
    assert values == {"Key": "01 02", "Bit": "56"}


def test_legacy_ford_record_is_accepted(messages):
    message, preset = deserialize(FORD_RECORD)
    assert message == messages["Ford V0"]
    assert preset.frequency_hz == 315_000_000
    # Always written back with the full width.
    assert "Bit: 80" in serialize(message)


def test_ford_key_must_match_fields():
    text = FORD_RECORD.replace("Cnt: 4660", "Cnt: 4661")
    with pytest.raises(RecordError):
        deserialize(text)


@pytest.mark.parametrize("field", ["Serial", "Btn", "Cnt", "BS", "CRC"])
def test_ford_missing_field(field):
    text = "\n".join(line for line in FORD_RECORD.splitlines() if not line.startswith(field + ":"))
    with pytest.raises(RecordError, match=field):
        deserialize(text)


def test_missing_protocol():
    with pytest.raises(RecordError, match="Protocol"):
        deserialize("Bit: 64\nKey: 00\n")


def test_unknown_protocol():
    with pytest.raises(RecordError, match="unknown protocol"):
        deserialize("Protocol: Ford V9\nBit: 64\nKey: 00\n")


def test_bad_bit_is_rejected_before_fields():
    with pytest.raises(RecordError, match="Bit"):
        deserialize("Protocol: Subaru\nBit: 56\nKey: 00\n")


def test_non_integer_field():
    with pytest.raises(RecordError):
        deserialize("Protocol: Subaru\nBit: 64\nKey: 00\nSerial: abc\nBtn: 1\nCnt: 1\n")


def test_subaru_key_outside_fields_survives_round_trip():
    # KB0 high nibble, KB4 0x3F and KB5 0x30 are not covered by the fields.
    key = 0x17A5C3E1FFFFFFFF
    message = DecodedMessage("Subaru", 64, key, subaru_decode(key))
    restored, _ = deserialize(serialize(message))
    assert restored == message
    replayed = []
    SubaruDecoder(replayed.append).feed_pulses(encoder_for(restored).pulses())
    assert [m.key for m in replayed] == [key]


def test_subaru_fields_must_match_key(messages):
    text = serialize(messages["Subaru"]).replace("Cnt: 4660", "Cnt: 4661")
    with pytest.raises(RecordError, match="Serial/Btn/Cnt"):
        deserialize(text)


def test_subaru_data_words_must_match_key(messages):
    message = messages["Subaru"]
    text = serialize(message).replace(f"Key: {message.key:016X}", f"Key: {message.key ^ 1:016X}")
    with pytest.raises(RecordError, match="DataHi/DataLo"):
        deserialize(text)


def test_subaru_key_alone_is_enough(messages):
    message = messages["Subaru"]
    restored, _ = deserialize(f"Protocol: Subaru\nBit: 64\nKey: {message.key:016X}\n")
    assert restored == message


def test_suzuki_key_without_marker():
    with pytest.raises(RecordError):
        deserialize("Protocol: Suzuki\nBit: 64\nKey: 0BEEF123456735A0\n")


def test_vw_requires_type_and_check():
    with pytest.raises(RecordError, match="Check"):
        deserialize("Protocol: VW\nBit: 80\nKey: 0123456789ABCDEF\nType: 180\n")
    with pytest.raises(RecordError):
        deserialize("Protocol: VW\nBit: 80\nKey: 0123456789ABCDEF\nType: 256\nCheck: 1\n")


def test_kia_fields_override_key(messages):
    text = serialize(messages["Kia V1"]).replace("Cnt: 126", "Cnt: 127")
    message, _ = deserialize(text)
    assert message.count == 127
    assert message.key == 0xDEADBEEF217FC3


def test_preset_defaults():
    message, preset = deserialize("Protocol: Suzuki\nBit: 64\nKey: FBEEF123456735A0\n")
    assert preset == DEFAULT_PRESET
    assert message.serial == 0x1234567


def test_message_hash_xors_key_bytes():
    message = DecodedMessage("Kia V1", 56, 0x01020304050607, None)
    assert message_hash(message) == 0x01 ^ 0x02 ^ 0x03 ^ 0x04 ^ 0x05 ^ 0x06 ^ 0x07


def test_describe_first_line(message):
    assert describe(message).split("\n")[0] == f"{message.protocol} {message.bit_count}bit"


def test_describe_names_buttons(messages):
    assert "LOCK" in describe(messages["Suzuki"])
    assert "LOCK" in describe(messages["VW"])
