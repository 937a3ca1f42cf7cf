# =============================================================================
# Key Fob Codec Engine (KFCE)
# =============================================================================
#
# Decodes and re-encodes vehicle key-fob RF transmissions from a stream of
# timed (level, duration_us) pulses.
#
# ── DATA FLOW ─────────────────────────────────────────────────────────────────
#   capture (.sub / .wav) → PulseSample stream → every decoder's feed()
#   decoder FSM → bit accumulator → payload transform → DecodedMessage
#   DecodedMessage → record text (SHM) → encoder → next_pulse() stream
#
# ── PACKAGE LAYOUT ────────────────────────────────────────────────────────────
#   SMM/  — timing constants, pulse classifier, payload transforms
#   SVM/  — Manchester FSMs, bit accumulators, protocol decoders, CLI
#   SGM/  — pull-based protocol encoders
#   SHM/  — record serialization and the deduplicating history store
#   registry.py — protocol name → decoder / encoder lookup
#
# ── PROTOCOLS ─────────────────────────────────────────────────────────────────
#   Ford V0  80 bit  mid-edge Manchester, XOR diffusion + nibble interleave
#   Kia V1   56 bit  oversampled raw buffer, offline Manchester alignment
#   Suzuki   64 bit  PWM, carry pair, 0xF manufacturer nibble
#   Subaru   64 bit  PWM, rolling-code descrambler
#   VW       80 bit  paired Manchester, index-mapped key/type/check
# =============================================================================
