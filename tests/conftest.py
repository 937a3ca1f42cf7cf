import pytest

from KFCE.SMM.payloads import (
    FordV0Fields, KiaV1Fields, SuzukiFields, SubaruFields, VwFields,
    kia_v1_encode, suzuki_encode, subaru_encode,
)
from KFCE.SVM.pulse_fsm import DecodedMessage


FORD_FIELDS   = FordV0Fields(serial=0x00AABBCC, button=0x3, count=0x001234, bs=0x66, crc=0x99, prefix=0x3F)
KIA_FIELDS    = KiaV1Fields(serial=0xDEADBEEF, button=0x21, count=0x7E, crc=0xC3)
SUZUKI_FIELDS = SuzukiFields(serial=0x1234567, button=0x3, count=0xBEEF, crc=0x5A)
SUBARU_FIELDS = SubaruFields(serial=0xA5C3E1, button=0x7, count=0x1234)
VW_FIELDS     = VwFields(key=0x0123456789ABCDEF, type=0xB4, check=0x52)


def sample_messages():
    return {
        "Ford V0": DecodedMessage("Ford V0", 80, 0x3F16BCADDA261626, FORD_FIELDS),
        "Kia V1":  DecodedMessage("Kia V1", 56, kia_v1_encode(KIA_FIELDS), KIA_FIELDS),
        "Suzuki":  DecodedMessage("Suzuki", 64, suzuki_encode(SUZUKI_FIELDS), SUZUKI_FIELDS),
        "Subaru":  DecodedMessage("Subaru", 64, subaru_encode(SUBARU_FIELDS), SUBARU_FIELDS),
        "VW":      DecodedMessage("VW", 80, VW_FIELDS.key, VW_FIELDS),
    }


@pytest.fixture
def messages():
    return sample_messages()


@pytest.fixture(params=list(sample_messages()))
def message(request):
    return sample_messages()[request.param]
