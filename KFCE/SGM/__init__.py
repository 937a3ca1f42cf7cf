# =============================================================================
# KFCE/SGM/__init__.py — Signal Generation Module
# =============================================================================
#
# Pull-based encoders that turn a decoded message back into its pulse train.
#
# Sub-modules:
#   pulse_encoder.py     — encoder step machine, stop(), Manchester emitter
#   protocol_encoders.py — Ford V0, Kia V1, Suzuki, Subaru and VW encoders
# =============================================================================
