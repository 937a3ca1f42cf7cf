import pytest

from KFCE.SMM.pulses import PulseSample, PULSE_END
from KFCE.SGM.pulse_encoder import EncoderStep, ManchesterEmitter, msb_bits
from KFCE.SGM.protocol_encoders import (
    FordV0Encoder, KiaV1Encoder, SuzukiEncoder, SubaruEncoder, VwEncoder,
)
from KFCE.SMM.payloads import subaru_decode
from KFCE.SVM.pulse_fsm import DecodedMessage
from KFCE.registry import encoder_for

from conftest import FORD_FIELDS, KIA_FIELDS, SUZUKI_FIELDS, SUBARU_FIELDS, VW_FIELDS


class CountingSuzukiEncoder(SuzukiEncoder):
    calls = 0

    def materialize(self):
        self.calls += 1
        return super().materialize()


def test_msb_bits():
    assert msb_bits(0b1011, 4) == [1, 0, 1, 1]
    assert msb_bits(1, 3) == [0, 0, 1]


def test_manchester_emitter_merges_same_level_halves():
    assert list(ManchesterEmitter([1, 0], 250, 500)) == [
        PulseSample(True, 250), PulseSample(False, 500), PulseSample(True, 250),
    ]
    assert list(ManchesterEmitter([1, 1], 250, 500)) == [
        PulseSample(True, 250), PulseSample(False, 250),
        PulseSample(True, 250), PulseSample(False, 250),
    ]


def test_manchester_emitter_lead_merges_with_first_bit():
    assert list(ManchesterEmitter([1], 800, 1600, lead=True)) == [
        PulseSample(True, 1600), PulseSample(False, 800),
    ]
    assert list(ManchesterEmitter([0], 800, 1600, lead=True)) == [
        PulseSample(True, 800), PulseSample(False, 800), PulseSample(True, 800),
    ]


def test_finished_encoder_keeps_returning_pulse_end():
    enc = SuzukiEncoder(SUZUKI_FIELDS)
    enc.pulses()
    assert enc.step is EncoderStep.STOP
    assert [enc.next_pulse() for _ in range(3)] == [PULSE_END] * 3


def test_stop_mid_frame():
    enc = VwEncoder(VW_FIELDS)
    for _ in range(100):
        enc.next_pulse()
    assert enc.step is EncoderStep.DATA
    enc.stop()
    assert enc.next_pulse() == PULSE_END
    assert enc.next_pulse() == PULSE_END


def test_stop_before_first_pulse():
    enc = KiaV1Encoder(KIA_FIELDS)
    enc.stop()
    assert enc.pulses() == []


def test_payload_materialized_once_per_session():
    enc = CountingSuzukiEncoder(SUZUKI_FIELDS)
    first = enc.pulses()
    assert enc.calls == 1
    enc.reset()
    assert enc.pulses() == first
    assert enc.calls == 2


def test_ford_rejects_prefix_with_leading_zero_bit():
    enc = FordV0Encoder(FORD_FIELDS._replace(prefix=0x80))
    with pytest.raises(ValueError):
        enc.next_pulse()


def test_ford_frame_layout():
    pulses = FordV0Encoder(FORD_FIELDS).pulses()
    assert pulses[0] == PulseSample(True, 250)
    assert pulses[1:21] == [PulseSample(False, 500), PulseSample(True, 500)] * 10
    assert pulses[21:24] == [PulseSample(False, 500), PulseSample(True, 250), PulseSample(False, 3500)]
    assert {p.duration_us for p in pulses[24:]} <= {250, 500}


def test_suzuki_frame_layout():
    pulses = SuzukiEncoder(SUZUKI_FIELDS).pulses()
    assert len(pulses) == 260 + 128
    assert pulses[260] == PulseSample(True, 500)
    assert pulses[-1] == PulseSample(False, 2000)


def test_subaru_frame_layout():
    pulses = SubaruEncoder(SUBARU_FIELDS).pulses()
    assert len(pulses) == 49 + 3 + 128
    assert pulses[49:52] == [PulseSample(False, 2750), PulseSample(True, 2750), PulseSample(False, 1600)]
    assert pulses[-1] == PulseSample(False, 4000)


def test_kia_frame_closes_with_end_gap():
    pulses = KiaV1Encoder(KIA_FIELDS, bursts=1).pulses()
    assert pulses[33] == PulseSample(False, 800)
    # First data bit is 1: the sync high merges with its first half.
    assert pulses[34] == PulseSample(True, 1600)
    # Last data bit is 1: its low half is absorbed by the end gap.
    assert pulses[-2].level
    assert pulses[-1] == PulseSample(False, 3000)


def test_kia_repeats_bursts():
    single = KiaV1Encoder(KIA_FIELDS, bursts=1).pulses()
    pulses = KiaV1Encoder(KIA_FIELDS).pulses()
    assert len(pulses) == 3 * len(single)
    gaps = [i for i, p in enumerate(pulses) if p == PulseSample(False, 10_000)]
    assert gaps == [len(single) - 1, 2 * len(single) - 1]
    assert pulses[-len(single):] == single


def test_kia_burst_payload_materialized_once():
    class CountingKiaEncoder(KiaV1Encoder):
        calls = 0

        def materialize(self):
            self.calls += 1
            return super().materialize()

    enc = CountingKiaEncoder(KIA_FIELDS)
    enc.pulses()
    assert enc.calls == 1
    assert enc.step is EncoderStep.STOP


def test_vw_sync_sequence():
    pulses = VwEncoder(VW_FIELDS).pulses()
    assert pulses[:86] == [PulseSample(True, 500), PulseSample(False, 500)] * 43
    assert pulses[86:93] == [
        PulseSample(True, 1000), PulseSample(False, 500),
        PulseSample(True, 750), PulseSample(False, 750),
        PulseSample(True, 750), PulseSample(False, 750),
        PulseSample(True, 500),
    ]
    # Type 0xB4 starts with a 1: the marker low stays short.
    assert pulses[93:95] == [PulseSample(False, 500), PulseSample(True, 500)]


def test_vw_leading_zero_merges_with_marker_low():
    pulses = VwEncoder(VW_FIELDS._replace(type=0x34)).pulses()
    assert pulses[91:94] == [PulseSample(False, 750), PulseSample(True, 500), PulseSample(False, 1000)]


def test_subaru_replays_captured_key():
    key = 0x17A5C3E1FFFFFFFF
    enc = encoder_for(DecodedMessage("Subaru", 64, key, subaru_decode(key)))
    enc.next_pulse()
    assert enc.payload == msb_bits(key, 64)
    # Without a key the payload is rebuilt from the fields.
    assert SubaruEncoder(SUBARU_FIELDS).key is None


def test_encoder_for_uses_message_fields(message):
    enc = encoder_for(message)
    assert enc.fields == message.fields
    assert enc.NAME == message.protocol
