# =============================================================================
# KFCE/SVM/__init__.py — Signal Verification Module
# =============================================================================
#
# Everything that turns pulses back into messages, plus the tools that run
# the decoders against captures.
#
# Sub-modules:
#   manchester.py        — two Manchester FSMs + offline pair-alignment search
#   bit_accumulator.py   — protocol-specific shift registers
#   pulse_fsm.py         — generic pulse FSM driver, DecodedMessage
#   protocol_decoders.py — Ford V0, Kia V1, Suzuki, Subaru and VW decoders
#   receiver.py          — fans one pulse stream out to every decoder
#   capture_io.py        — .sub RAW and WAV envelope capture loading
#   keyfob_sim.py        — capture decoder CLI with PASS/FAIL verdict
#   validate.py          — self-validation suite for the whole codec
# =============================================================================
