#!/usr/bin/env python3
# =============================================================================
# keyfob_sim.py — Key Fob Receiver Emulator
# =============================================================================
#
# Runs every protocol decoder over a capture and reports what a receiver
# would have seen. Each decoded message is re-encoded and decoded again to
# confirm the codec reproduces it bit-for-bit.
#
# Usage:
#   python -m KFCE.SVM.keyfob_sim <capture.sub | key.sub | envelope.wav>
#   python -m KFCE.SVM.keyfob_sim capture.sub --protocol "Ford V0"
#   python -m KFCE.SVM.keyfob_sim envelope.wav --threshold 0.3
#   python -m KFCE.SVM.keyfob_sim capture.sub --dump-pulses 40
#   python -m KFCE.SVM.keyfob_sim capture.sub --save out/
#
# Output sections:
#   [1] Capture info      — pulse count, duration, level balance
#   [2] Decoder config    — timing windows of the selected protocols
#   [3] Decode report     — frames decoded, repeats suppressed
#   [4] Messages          — one block per unique message
#   [5] Re-encode check   — encoder → decoder round trip per message
#   [6] VERDICT           — PASS / FAIL with reason
#
# =============================================================================

from __future__ import annotations
import argparse
import logging
import os
import sys

from KFCE.SMM.pulses import PulseSample
from KFCE.SHM.history import History
from KFCE.SHM.records import serialize
from KFCE.SVM.capture_io import load_capture, DEFAULT_THRESHOLD
from KFCE.SVM.pulse_fsm import DecodedMessage
from KFCE.SVM.receiver import Receiver
from KFCE.registry import PROTOCOLS, get_protocol, encoder_for

DIVIDER = "=" * 68


def reencode_matches(message: DecodedMessage) -> bool:
    """Encode a message and confirm its own decoder returns it unchanged."""
    decoder = get_protocol(message.protocol).decoder()
    decoder.feed_pulses(encoder_for(message).pulses())
    return decoder.last_message == message


def _timing_summary(name: str) -> str:
    t = get_protocol(name).decoder.TIMING
    return (
        f"  {name:<8} short {t.short_us:>5} us  long {t.long_us:>5} us  "
        f"tol ±{t.tolerance_us} us  ({t.short_us - t.tolerance_us + 1}–"
        f"{t.short_us + t.tolerance_us - 1} / {t.long_us - t.tolerance_us + 1}–"
        f"{t.long_us + t.tolerance_us - 1})"
    )


def run_sim(
    capture_path: str,
    protocols: list[str],
    threshold: float,
    dump_pulses: int,
    save_dir: str | None,
) -> bool:
    """
    Run the full receive pipeline on one capture.
    Returns True when at least one message decoded and re-encoded cleanly.
    """
    verdict_pass = True
    reasons: list[str] = []

    # -----------------------------------------------------------------------
    # [1] Capture info
    # -----------------------------------------------------------------------
    print(f"\n{DIVIDER}")
    print(f"  Key Fob Receiver Emulator")
    print(DIVIDER)

    if not os.path.exists(capture_path):
        print(f"  [!!] File not found: {capture_path}")
        return False

    try:
        pulses: list[PulseSample] = load_capture(capture_path, threshold)
    except (OSError, ValueError) as exc:
        print(f"  [!!] Could not load capture: {exc}")
        return False

    total_us = sum(p.duration_us for p in pulses)
    high_us  = sum(p.duration_us for p in pulses if p.level)
    print(f"  File     : {os.path.basename(capture_path)}")
    print(f"  Pulses   : {len(pulses):,}")
    print(f"  Duration : {total_us / 1000:.1f} ms")
    if total_us:
        print(f"  Duty     : {high_us / total_us * 100:.1f}% high")

    if dump_pulses:
        print(f"\n  -- Pulse Dump (first {dump_pulses}) --")
        for i, p in enumerate(pulses[:dump_pulses]):
            print(f"  {i:>5}  {'H' if p.level else 'L'}  {p.duration_us:>6} us")

    # -----------------------------------------------------------------------
    # [2] Decoder config
    # -----------------------------------------------------------------------
    print(f"\n  -- Decoder Configuration --")
    for name in protocols:
        print(_timing_summary(name))

    # -----------------------------------------------------------------------
    # [3] Decode
    # -----------------------------------------------------------------------
    print(f"\n  -- Decode Report --")
    history = History()
    rx = Receiver(protocols)
    messages = rx.feed_pulses(pulses)
    unique = [m for m in messages if history.add(m)]

    print(f"  Frames decoded    : {len(messages)}")
    print(f"  Repeats collapsed : {len(messages) - len(unique)}")
    print(f"  Unique messages   : {len(unique)}")

    if not messages:
        verdict_pass = False
        reasons.append("no frame matched any selected protocol")
        print(f"  [FAIL] Nothing decoded")
    else:
        print(f"  [PASS] At least one frame decoded")

    # -----------------------------------------------------------------------
    # [4] Messages
    # -----------------------------------------------------------------------
    print(f"\n  -- Messages --")
    if not unique:
        print(f"  (none)")
    for idx in range(len(history)):
        print(f"  [{idx}] " + history.text(idx).replace("\n", "\n      "))

    # -----------------------------------------------------------------------
    # [5] Re-encode check
    # -----------------------------------------------------------------------
    print(f"\n  -- Re-encode Check --")
    for idx, message in enumerate(unique):
        try:
            ok = reencode_matches(message)
        except ValueError as exc:
            ok = False
            print(f"  [FAIL] [{idx}] {message.protocol}: {exc}")
        else:
            print(f"  {'[PASS]' if ok else '[FAIL]'} [{idx}] {message.protocol}")
        if not ok:
            verdict_pass = False
            reasons.append(f"[{idx}] {message.protocol} does not survive re-encoding")

    if save_dir and unique:
        os.makedirs(save_dir, exist_ok=True)
        for idx, message in enumerate(unique):
            name = message.protocol.replace(" ", "_").lower()
            out_path = os.path.join(save_dir, f"{name}_{idx:02d}.sub")
            with open(out_path, "w", encoding="utf-8") as fh:
                fh.write(serialize(message))
            print(f"  saved {out_path}")

    # -----------------------------------------------------------------------
    # [6] Verdict
    # -----------------------------------------------------------------------
    print(f"\n{DIVIDER}")
    if verdict_pass:
        print(f"  VERDICT: PASS — {len(unique)} message(s) decoded and reproduced")
    else:
        print(f"  VERDICT: FAIL")
        for r in reasons:
            print(f"    - {r}")
    print(f"{DIVIDER}\n")

    return verdict_pass


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------
def main() -> None:
    parser = argparse.ArgumentParser(
        description="Key Fob Receiver Emulator",
    )
    parser.add_argument("capture", help="Path to a .sub RAW/key file or a .wav envelope")
    parser.add_argument(
        "--protocol", action="append", choices=list(PROTOCOLS),
        help="Restrict decoding to this protocol (repeatable), default all",
    )
    parser.add_argument(
        "--threshold", type=float, default=DEFAULT_THRESHOLD,
        help="WAV envelope threshold as a fraction of peak, default 0.5",
    )
    parser.add_argument(
        "--dump-pulses", type=int, default=0, metavar="N",
        help="Print the first N pulses",
    )
    parser.add_argument(
        "--save", metavar="DIR",
        help="Write one record file per unique message into DIR",
    )
    parser.add_argument(
        "--verbose", action="store_true",
        help="Log decoder sync / reset events",
    )
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    ok = run_sim(
        capture_path=args.capture,
        protocols=args.protocol or list(PROTOCOLS),
        threshold=args.threshold,
        dump_pulses=args.dump_pulses,
        save_dir=args.save,
    )
    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
