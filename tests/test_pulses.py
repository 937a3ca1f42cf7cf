from KFCE.SMM.constants import FORD_V0_TIMING, SUBARU_TIMING, SUZUKI_TIMING, SUZUKI_GAP_US
from KFCE.SMM.pulses import PulseSample, PULSE_END, Symbol, matches, classify


def test_matches_is_strict():
    assert matches(349, 250, 100)
    assert not matches(350, 250, 100)
    assert matches(151, 250, 100)
    assert not matches(150, 250, 100)


def test_classify_short_and_long():
    assert classify(250, FORD_V0_TIMING) is Symbol.SHORT
    assert classify(520, FORD_V0_TIMING) is Symbol.LONG
    assert classify(375, FORD_V0_TIMING) is Symbol.INVALID


def test_classify_tolerance_boundary():
    assert classify(1600 + 249, SUBARU_TIMING) is Symbol.LONG
    assert classify(1600 + 250, SUBARU_TIMING) is Symbol.INVALID


def test_classify_gap_only_when_requested():
    assert classify(2100, SUZUKI_TIMING) is Symbol.INVALID
    assert classify(2100, SUZUKI_TIMING, gap_us=SUZUKI_GAP_US, gap_tolerance_us=400) is Symbol.GAP
    # Gap tolerance falls back to the protocol tolerance.
    assert classify(2150, SUZUKI_TIMING, gap_us=SUZUKI_GAP_US) is Symbol.INVALID


def test_pulse_end_is_zero_length_low():
    assert PULSE_END == PulseSample(False, 0)
