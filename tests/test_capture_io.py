import numpy as np
import pytest

from KFCE.SMM.constants import RadioPreset
from KFCE.SMM.pulses import PulseSample
from KFCE.SHM.records import serialize
from KFCE.SVM.capture_io import (
    parse_sub_raw, format_sub_raw, is_raw_capture,
    envelope_to_pulses, pulses_to_envelope,
    load_wav_envelope, write_wav_envelope, load_capture,
)
from KFCE.SVM.receiver import Receiver
from KFCE.registry import encoder_for


RAW_FILE = """Filetype: Flipper SubGhz RAW File
Version: 1
Frequency: 433920000
Preset: FuriHalSubGhzPresetOok650Async
Protocol: RAW
RAW_Data: 250 -500 500 -250
RAW_Data: -100 3000 -7
"""


def test_parse_sub_raw_merges_split_pulses():
    assert parse_sub_raw(RAW_FILE) == [
        PulseSample(True, 250), PulseSample(False, 500),
        PulseSample(True, 500), PulseSample(False, 350),
        PulseSample(True, 3000), PulseSample(False, 7),
    ]


def test_format_sub_raw_wraps_lines():
    pulses = [PulseSample(True, 100), PulseSample(False, 200), PulseSample(True, 300)]
    text = format_sub_raw(pulses, RadioPreset(315_000_000, "AM270"), per_line=2)
    assert "Frequency: 315000000" in text
    assert "RAW_Data: 100 -200\nRAW_Data: 300\n" in text
    assert parse_sub_raw(text) == pulses


def test_is_raw_capture():
    assert is_raw_capture(RAW_FILE)
    assert not is_raw_capture("Protocol: VW\nBit: 80\n")


def test_envelope_to_pulses_thresholds_against_peak():
    samples = np.array([0.0, 0.9, 1.0, 0.2, 0.1, 0.8], dtype=np.float32)
    assert envelope_to_pulses(samples, 1_000_000, 0.5) == [
        PulseSample(False, 1), PulseSample(True, 2), PulseSample(False, 2), PulseSample(True, 1),
    ]


def test_envelope_silence():
    assert envelope_to_pulses(np.zeros(16), 48_000) == []


def test_pulses_to_envelope_sample_counts():
    env = pulses_to_envelope([PulseSample(True, 50), PulseSample(False, 100)], 200_000)
    assert env.tolist() == [1.0] * 10 + [0.0] * 20


def test_wav_round_trip(tmp_path, messages):
    pulses = encoder_for(messages["Subaru"]).pulses()
    path = str(tmp_path / "subaru.wav")
    write_wav_envelope(path, pulses, 200_000)
    loaded = load_wav_envelope(path)
    assert [p.level for p in loaded] == [p.level for p in pulses]
    assert [p.duration_us for p in loaded] == [p.duration_us for p in pulses]


def test_wav_missing_channel(tmp_path):
    path = str(tmp_path / "env.wav")
    write_wav_envelope(path, [PulseSample(True, 100), PulseSample(False, 100)])
    with pytest.raises(ValueError):
        load_wav_envelope(path, channel=1)


def test_load_capture_raw_file_decodes(tmp_path, messages):
    pulses = encoder_for(messages["Suzuki"]).pulses()
    path = tmp_path / "suzuki.sub"
    path.write_text(format_sub_raw(pulses), encoding="utf-8")
    assert Receiver().feed_pulses(load_capture(str(path))) == [messages["Suzuki"]]


def test_load_capture_key_record_replays_encoder(tmp_path, messages):
    path = tmp_path / "vw.sub"
    path.write_text(serialize(messages["VW"]), encoding="utf-8")
    pulses = load_capture(str(path))
    assert pulses == encoder_for(messages["VW"]).pulses()
