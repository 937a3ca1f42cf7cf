import pytest

from KFCE.SMM.payloads import (
    FordV0Fields, KiaV1Fields, SuzukiFields, SubaruFields, VwFields,
    ford_v0_decode, ford_v0_encode,
    kia_v1_decode, kia_v1_encode,
    suzuki_decode, suzuki_encode,
    subaru_decode, subaru_encode, subaru_rotation_depth,
    vw_decode, vw_encode, vw_frame,
    parity8, to_bytes, from_bytes,
)

from conftest import FORD_FIELDS, KIA_FIELDS, SUZUKI_FIELDS, SUBARU_FIELDS, VW_FIELDS


def test_byte_helpers():
    assert to_bytes(0x0102, 3) == [0x00, 0x01, 0x02]
    assert from_bytes([0xAB, 0xCD]) == 0xABCD
    assert parity8(0x66) == 0
    assert parity8(0x01) == 1


def test_ford_even_parity_vector():
    assert ford_v0_encode(FORD_FIELDS) == (0xC0E9435225D9E9D9, 0x9966)
    assert ford_v0_decode(0xC0E9435225D9E9D9, 0x9966) == FORD_FIELDS


def test_ford_odd_parity_vector():
    fields = FORD_FIELDS._replace(bs=0x01, crc=0x5A)
    assert ford_v0_encode(fields) == (0xC0CF657403FFD9CF, 0xFEA5)
    assert ford_v0_decode(0xC0CF657403FFD9CF, 0xFEA5) == fields


@pytest.mark.parametrize("bs", [0x00, 0x01, 0x80, 0xFF])
def test_ford_round_trip(bs):
    fields = FordV0Fields(serial=0xFEDCBA98, button=0xA, count=0xFFFFF, bs=bs, crc=0x12, prefix=0x7E)
    assert ford_v0_decode(*ford_v0_encode(fields)) == fields


def test_ford_rejects_wide_count():
    with pytest.raises(ValueError):
        ford_v0_encode(FORD_FIELDS._replace(count=1 << 20))


def test_kia_packing():
    assert kia_v1_encode(KIA_FIELDS) == 0xDEADBEEF217EC3
    assert kia_v1_decode(0xDEADBEEF217EC3) == KIA_FIELDS


def test_suzuki_packing_and_nibble():
    assert suzuki_encode(SUZUKI_FIELDS) == 0xFBEEF123456735A0
    assert suzuki_decode(0xFBEEF123456735A0) == SUZUKI_FIELDS
    assert suzuki_decode(0x7BEEF123456735A0) is None


def test_suzuki_tail_passes_through():
    fields = SUZUKI_FIELDS._replace(tail=0x9)
    assert suzuki_decode(suzuki_encode(fields)).tail == 0x9


def test_subaru_zero_vector():
    assert subaru_encode(SubaruFields(0, 0, 0)) == 0x00000000C0C3F3C3
    assert subaru_decode(0x00000000C0C3F3C3) == SubaruFields(0, 0, 0)


def test_subaru_rotation_depth_wraps():
    assert subaru_rotation_depth(0) == 4
    assert subaru_rotation_depth(20) == 0
    assert subaru_rotation_depth(255) == 19


@pytest.mark.parametrize("count", [0x0000, 0x0001, 0x00FF, 0x0100, 0x1234, 0x8000, 0xFFFF])
@pytest.mark.parametrize("serial", [0x000000, 0xA5C3E1, 0xFFFFFF])
def test_subaru_round_trip(serial, count):
    fields = SubaruFields(serial=serial, button=0x2, count=count)
    assert subaru_decode(subaru_encode(fields)) == fields


def test_subaru_header_bytes_are_cleartext():
    data = subaru_encode(SUBARU_FIELDS)
    assert data >> 56 == 0x07
    assert (data >> 32) & 0xFFFFFF == 0xA5C3E1


def test_vw_split_and_frame():
    key, data2 = vw_encode(VW_FIELDS)
    assert (key, data2) == (0x0123456789ABCDEF, 0xB452)
    assert vw_decode(key, data2) == VW_FIELDS
    assert vw_frame(VW_FIELDS) == 0xB40123456789ABCDEF52
    assert VW_FIELDS.button == 0x2


def test_vw_rejects_wide_type():
    with pytest.raises(ValueError):
        vw_encode(VwFields(key=0, type=0x100, check=0))
