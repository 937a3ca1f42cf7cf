# =============================================================================
# receiver.py — One pulse stream, every decoder
# =============================================================================

from __future__ import annotations
from typing import Optional

from KFCE.SMM.pulses import PulseSample
from KFCE.SVM.pulse_fsm import DecodedMessage, MessageCallback
from KFCE.registry import create_decoders


class Receiver:
    """
    Feeds each pulse to every selected decoder and keeps the completed
    messages in arrival order.

    Usage:
        rx = Receiver()
        rx.feed_pulses(load_capture("capture.sub"))
        for msg in rx.messages: ...
    """

    def __init__(
        self,
        protocols: Optional[list[str]] = None,
        callback: Optional[MessageCallback] = None,
    ) -> None:
        self.callback = callback
        self.messages: list[DecodedMessage] = []
        self.pulse_count = 0
        self.decoders = create_decoders(protocols, self._on_message)

    def feed(self, level: bool, duration: int) -> None:
        self.pulse_count += 1
        for decoder in self.decoders:
            decoder.feed(level, duration)

    def feed_pulses(self, pulses: list[PulseSample]) -> list[DecodedMessage]:
        """Feed a whole capture; returns the messages it produced."""
        start = len(self.messages)
        for pulse in pulses:
            self.feed(pulse.level, pulse.duration_us)
        return self.messages[start:]

    def reset(self) -> None:
        for decoder in self.decoders:
            decoder.reset()
        self.messages = []
        self.pulse_count = 0

    def _on_message(self, message: DecodedMessage) -> None:
        self.messages.append(message)
        if self.callback is not None:
            self.callback(message)
