# =============================================================================
# capture_io.py — Capture loading and RAW export
# =============================================================================
#
# Three kinds of input all end up as a list of PulseSample:
#
#   .sub RAW file   RAW_Data: lines of signed microsecond durations
#                   (positive = carrier on, negative = carrier off)
#   .sub key file   a message record (Protocol: ...), replayed through its
#                   encoder
#   .wav envelope   demodulated OOK envelope; samples above
#                   threshold * peak are high
#
# Consecutive RAW values of the same sign are one pulse split across lines
# and are merged.
# =============================================================================

from __future__ import annotations
import os
import re

import numpy as np
import soundfile as sf

from KFCE.SMM.constants import RadioPreset, DEFAULT_PRESET
from KFCE.SMM.pulses import PulseSample
from KFCE.SHM.records import deserialize
from KFCE.registry import encoder_for

RAW_LINE    = re.compile(r"^RAW_Data:\s*(.+)$", flags=re.MULTILINE)
RAW_VALUE   = re.compile(r"-?\d+")
RAW_PER_LINE = 512

DEFAULT_THRESHOLD = 0.5


# ---------------------------------------------------------------------------
# .sub files
# ---------------------------------------------------------------------------

def parse_sub_raw(text: str) -> list[PulseSample]:
    pulses: list[PulseSample] = []
    for line in RAW_LINE.findall(text):
        for token in RAW_VALUE.findall(line):
            value = int(token)
            if value == 0:
                continue
            level = value > 0
            if pulses and pulses[-1].level == level:
                prev = pulses.pop()
                pulses.append(PulseSample(level, prev.duration_us + abs(value)))
            else:
                pulses.append(PulseSample(level, abs(value)))
    return pulses


def format_sub_raw(
    pulses: list[PulseSample],
    preset: RadioPreset = DEFAULT_PRESET,
    per_line: int = RAW_PER_LINE,
) -> str:
    lines = [
        "Filetype: Flipper SubGhz RAW File",
        "Version: 1",
        f"Frequency: {preset.frequency_hz}",
        f"Preset: {preset.name}",
        "Protocol: RAW",
    ]
    values = [p.duration_us if p.level else -p.duration_us for p in pulses if p.duration_us]
    for start in range(0, len(values), per_line):
        chunk = values[start:start + per_line]
        lines.append("RAW_Data: " + " ".join(str(v) for v in chunk))
    return "\n".join(lines) + "\n"


def is_raw_capture(text: str) -> bool:
    return RAW_LINE.search(text) is not None


def record_pulses(text: str) -> list[PulseSample]:
    """Encode the message stored in a key record back into its pulse train."""
    message, _ = deserialize(text)
    return encoder_for(message).pulses()


# ---------------------------------------------------------------------------
# WAV envelopes
# ---------------------------------------------------------------------------

def envelope_to_pulses(
    samples: np.ndarray,
    sample_rate: int,
    threshold: float = DEFAULT_THRESHOLD,
) -> list[PulseSample]:
    """Threshold a 1-D envelope and return its run lengths in microseconds."""
    env = np.abs(np.asarray(samples, dtype=np.float64))
    if env.size == 0:
        return []
    peak = float(env.max())
    if peak == 0.0:
        return []

    high   = env >= threshold * peak
    edges  = np.flatnonzero(np.diff(high.astype(np.int8))) + 1
    bounds = np.concatenate(([0], edges, [high.size]))
    us_per_sample = 1_000_000 / sample_rate

    return [
        PulseSample(bool(high[start]), int(round((end - start) * us_per_sample)))
        for start, end in zip(bounds[:-1], bounds[1:])
    ]


def pulses_to_envelope(pulses: list[PulseSample], sample_rate: int) -> np.ndarray:
    """Render pulses as a 0/1 float32 envelope (inverse of envelope_to_pulses)."""
    runs = [
        np.full(int(round(p.duration_us * sample_rate / 1_000_000)), 1.0 if p.level else 0.0,
                dtype=np.float32)
        for p in pulses
    ]
    return np.concatenate(runs) if runs else np.zeros(0, dtype=np.float32)


def load_wav_envelope(
    path: str,
    threshold: float = DEFAULT_THRESHOLD,
    channel: int = 0,
) -> list[PulseSample]:
    data, sample_rate = sf.read(path, dtype="float32", always_2d=True)
    if not 0 <= channel < data.shape[1]:
        raise ValueError(f"{path}: channel {channel} not present ({data.shape[1]} channels)")
    return envelope_to_pulses(data[:, channel], sample_rate, threshold)


def write_wav_envelope(path: str, pulses: list[PulseSample], sample_rate: int = 200_000) -> None:
    sf.write(path, pulses_to_envelope(pulses, sample_rate), sample_rate, subtype="PCM_16")


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

def load_capture(path: str, threshold: float = DEFAULT_THRESHOLD) -> list[PulseSample]:
    """Load any supported capture file as a pulse list."""
    if os.path.splitext(path)[1].lower() == ".wav":
        return load_wav_envelope(path, threshold)
    with open(path, encoding="utf-8") as fh:
        text = fh.read()
    if is_raw_capture(text):
        return parse_sub_raw(text)
    return record_pulses(text)
