# =============================================================================
# KFCE/SMM/__init__.py — Signal Mapping Module
# =============================================================================
#
# Single source of truth for protocol timing and payload layout.
#
# Sub-modules:
#   constants.py — per-protocol timing, preamble counts, gaps, button names
#   pulses.py    — PulseSample, end sentinel, pulse classifier
#   payloads.py  — reversible payload transforms for all five protocols
# =============================================================================
