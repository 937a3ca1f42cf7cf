import pytest

from KFCE.SVM.bit_accumulator import (
    KeyStage, SplitKeyAccumulator, RawBitBuffer,
    CarryPairAccumulator, ByteAccumulator, RoutedAccumulator, vw_slot,
)


def push_value(acc, value, width):
    for i in range(width):
        acc.push((value >> (width - 1 - i)) & 1)


def test_split_key_stages():
    acc = SplitKeyAccumulator(64, 16)
    push_value(acc, 0x0123456789ABCDEF >> 1, 63)
    assert acc.stage is KeyStage.KEY1
    assert acc.push(1) is KeyStage.KEY2
    assert acc.key1 == 0x0123456789ABCDEF
    assert acc.bit_count == 64
    push_value(acc, 0xBEEF, 16)
    assert acc.stage is KeyStage.DONE
    assert acc.key2 == 0xBEEF
    assert acc.bit_count == 80
    with pytest.raises(OverflowError):
        acc.push(0)


def test_raw_buffer_counts_units_and_caps():
    buf = RawBitBuffer(4)
    assert buf.push(True, 2) == 2
    assert buf.push(False, 1) == 1
    assert buf.push(True, 2) == 1
    assert buf.bits == [1, 1, 0, 1]
    assert buf.full
    assert buf.push(False, 1) == 0


def test_carry_pair_moves_bit_between_halves():
    acc = CarryPairAccumulator(64)
    push_value(acc, 0xF00DCAFE12345678, 64)
    assert acc.high == 0xF00DCAFE
    assert acc.low == 0x12345678
    assert acc.value == 0xF00DCAFE12345678
    assert acc.full
    with pytest.raises(OverflowError):
        acc.push(1)


def test_byte_accumulator_msb_first():
    acc = ByteAccumulator(16)
    push_value(acc, 0xA55A, 16)
    assert acc.data == [0xA5, 0x5A]
    assert acc.value == 0xA55A


def test_vw_slot_mapping():
    assert vw_slot(79) == ("data2", 15)
    assert vw_slot(72) == ("data2", 8)
    assert vw_slot(71) == ("key", 63)
    assert vw_slot(8) == ("key", 0)
    assert vw_slot(7) == ("data2", 7)
    with pytest.raises(ValueError):
        vw_slot(80)


def test_routed_accumulator_splits_frame():
    acc = RoutedAccumulator(80)
    frame = (0xB4 << 72) | (0x0123456789ABCDEF << 8) | 0x52
    push_value(acc, frame, 80)
    assert acc.key == 0x0123456789ABCDEF
    assert acc.data2 == 0xB452
    assert acc.full
