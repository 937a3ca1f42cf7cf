# =============================================================================
# registry.py — Protocol lookup
# =============================================================================
#
# Maps the protocol name written into records ("Protocol: Ford V0") to its
# frame width, the Bit values a record may carry, and its decoder/encoder.

from __future__ import annotations
from typing import NamedTuple, Optional

from KFCE.SMM.constants import (
    FORD_V0_NAME, FORD_V0_BITS, FORD_V0_RECORD_BITS,
    KIA_V1_NAME, KIA_V1_BITS,
    SUZUKI_NAME, SUZUKI_BITS,
    SUBARU_NAME, SUBARU_BITS,
    VW_NAME, VW_BITS,
)
from KFCE.SGM.protocol_encoders import (
    FordV0Encoder, KiaV1Encoder, SuzukiEncoder, SubaruEncoder, VwEncoder,
)
from KFCE.SGM.pulse_encoder import PulseEncoder
from KFCE.SVM.protocol_decoders import (
    FordV0Decoder, KiaV1Decoder, SuzukiDecoder, SubaruDecoder, VwDecoder,
)
from KFCE.SVM.pulse_fsm import PulseDecoder, DecodedMessage, MessageCallback


class ProtocolEntry(NamedTuple):
    name:        str
    bit_count:   int
    record_bits: tuple[int, ...]
    decoder:     type[PulseDecoder]
    encoder:     type[PulseEncoder]


PROTOCOLS: dict[str, ProtocolEntry] = {
    entry.name: entry
    for entry in (
        # Older Ford records store only key-part-1 and declare 64 bits.
        ProtocolEntry(FORD_V0_NAME, FORD_V0_BITS, (FORD_V0_BITS, FORD_V0_RECORD_BITS),
                      FordV0Decoder, FordV0Encoder),
        ProtocolEntry(KIA_V1_NAME, KIA_V1_BITS, (KIA_V1_BITS,), KiaV1Decoder, KiaV1Encoder),
        ProtocolEntry(SUZUKI_NAME, SUZUKI_BITS, (SUZUKI_BITS,), SuzukiDecoder, SuzukiEncoder),
        ProtocolEntry(SUBARU_NAME, SUBARU_BITS, (SUBARU_BITS,), SubaruDecoder, SubaruEncoder),
        ProtocolEntry(VW_NAME, VW_BITS, (VW_BITS,), VwDecoder, VwEncoder),
    )
}


def get_protocol(name: str) -> ProtocolEntry:
    try:
        return PROTOCOLS[name]
    except KeyError:
        raise KeyError(
            f"unknown protocol {name!r}; expected one of {', '.join(PROTOCOLS)}"
        ) from None


def create_decoders(
    names: Optional[list[str]] = None,
    callback: Optional[MessageCallback] = None,
) -> list[PulseDecoder]:
    return [get_protocol(name).decoder(callback) for name in (names or list(PROTOCOLS))]


def encoder_for(message: DecodedMessage) -> PulseEncoder:
    return get_protocol(message.protocol).encoder.from_message(message)
