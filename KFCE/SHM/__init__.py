# =============================================================================
# KFCE/SHM/__init__.py — Signal History Module
# =============================================================================
#
# Persistence and bookkeeping around decoded messages; no protocol logic.
#
# Sub-modules:
#   records.py — flat "Key: Value" records, dedup hash, text description
#   history.py — bounded history store with 500 ms duplicate suppression
# =============================================================================
