from __future__ import annotations

import math
from array import array
from typing import Protocol


class SpeechDetector(Protocol):
    def speech_probability(self, pcm16: bytes) -> float:
        """Return a speech score in [0, 1] for one mono PCM16 frame."""
        ...


def pcm16_rms(pcm16: bytes) -> float:
    """Return RMS energy for little-endian int16 PCM bytes."""
    if not pcm16:
        return 0.0

    samples = array("h")
    samples.frombytes(pcm16)
    if not samples:
        return 0.0

    sum_sq = 0.0
    for value in samples:
        fv = float(value)
        sum_sq += fv * fv
    return math.sqrt(sum_sq / len(samples))


class EnergyVAD:
    """RMS detector: a frame at or above the threshold scores 1.0, silence 0.0."""

    def __init__(self, rms_threshold: float = 250.0) -> None:
        if rms_threshold <= 0:
            raise ValueError("rms_threshold must be > 0")
        self.rms_threshold = float(rms_threshold)

    def speech_probability(self, pcm16: bytes) -> float:
        return min(1.0, pcm16_rms(pcm16) / self.rms_threshold)


def build_detector(name: str, *, sample_rate: int = 16000, rms_threshold: float = 250.0) -> SpeechDetector:
    kind = str(name or "silero").lower().strip()
    if kind == "silero":
        from subsirl.audio.vad_silero import SileroVad

        return SileroVad(sr=sample_rate)
    if kind == "webrtc":
        from subsirl.audio.vad_webrtc import WebRtcVad

        return WebRtcVad(sr=sample_rate)
    if kind == "energy":
        return EnergyVAD(rms_threshold=rms_threshold)
    raise ValueError(f"Unknown VAD detector: {name}")
