from __future__ import annotations

import logging
from array import array
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Iterable, Iterator, List, Optional, Tuple

from subsirl.app.logging_setup import log_event
from subsirl.audio.vad import SpeechDetector
from subsirl.audio.wav import encode_wav
from subsirl.contracts import AudioChunk, SpeechSegment


@dataclass(frozen=True)
class SegmenterConfig:
    positive_threshold: float = 0.9
    negative_threshold: float = 0.1
    debounce_frames: int = 1
    redemption_frames: int = 3
    pre_roll_frames: int = 5
    min_speech_frames: int = 2
    max_segment_frames: Optional[int] = None

    def validate(self) -> None:
        if not 0.0 <= self.negative_threshold <= self.positive_threshold <= 1.0:
            raise ValueError("thresholds must satisfy 0 <= negative <= positive <= 1")
        if self.debounce_frames < 1:
            raise ValueError("debounce_frames must be >= 1")
        if self.redemption_frames < 1:
            raise ValueError("redemption_frames must be >= 1")
        if self.pre_roll_frames < 0:
            raise ValueError("pre_roll_frames must be >= 0")
        if self.min_speech_frames < 0:
            raise ValueError("min_speech_frames must be >= 0")
        if self.max_segment_frames is not None and self.max_segment_frames < 1:
            raise ValueError("max_segment_frames must be >= 1 when set")


def _to_mono_pcm16(frame: bytes, channels: int) -> bytes:
    if channels <= 1:
        return frame
    samples = array("h")
    samples.frombytes(frame)
    mono = array("h")
    for i in range(0, len(samples), channels):
        mono.append(samples[i])
    return mono.tobytes()


# (mono pcm16, start_time, duration)
_Frame = Tuple[bytes, float, float]


class AudioSegmenter:
    """
    Two-state (silence / speaking) machine over per-frame speech scores.

    silence -> speaking once `debounce_frames` consecutive frames score at or
    above the positive threshold. speaking -> silence once `redemption_frames`
    frames score below the negative threshold with no speech frame in between;
    scores between the thresholds leave that count untouched.
    Each closed segment carries the pre-roll plus every frame from entry to
    exit and is WAV-encoded once.
    """

    def __init__(
        self,
        detector: SpeechDetector,
        cfg: SegmenterConfig | None = None,
        *,
        on_speech_start: Callable[[float], None] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.detector = detector
        self.cfg = cfg or SegmenterConfig()
        self.cfg.validate()
        self.on_speech_start = on_speech_start
        self.logger = logger

        self._speaking = False
        self._candidates: Deque[_Frame] = deque(
            maxlen=self.cfg.pre_roll_frames + self.cfg.debounce_frames
        )
        self._activation_run = 0
        self._frames: List[_Frame] = []
        self._speech_frames = 0
        self._redemption_run = 0
        self._sample_rate = 0

    @property
    def is_speaking(self) -> bool:
        return self._speaking

    def push(self, chunk: AudioChunk) -> SpeechSegment | None:
        mono = _to_mono_pcm16(chunk.pcm16, chunk.channels)
        self._sample_rate = int(chunk.sample_rate)
        frame = (mono, float(chunk.start_time), float(chunk.duration))
        prob = float(self.detector.speech_probability(mono))

        if not self._speaking:
            self._candidates.append(frame)
            if prob >= self.cfg.positive_threshold:
                self._activation_run += 1
            else:
                self._activation_run = 0
            if self._activation_run >= self.cfg.debounce_frames:
                self._start_segment()
            return None

        self._frames.append(frame)
        if prob >= self.cfg.positive_threshold:
            self._speech_frames += 1
            self._redemption_run = 0
        elif prob < self.cfg.negative_threshold:
            self._redemption_run += 1

        if self._redemption_run >= self.cfg.redemption_frames:
            return self._close("silence")
        if self.cfg.max_segment_frames is not None and len(self._frames) >= self.cfg.max_segment_frames:
            return self._close("max_segment_frames")
        return None

    def flush(self) -> SpeechSegment | None:
        """Close an open segment at end of stream."""
        self._candidates.clear()
        self._activation_run = 0
        if not self._speaking:
            return None
        return self._close("stream_end")

    def _start_segment(self) -> None:
        self._speaking = True
        self._frames = list(self._candidates)
        self._speech_frames = self._activation_run
        self._redemption_run = 0
        self._candidates.clear()
        self._activation_run = 0
        t0 = self._frames[0][1]
        log_event(self.logger, logging.DEBUG, "speech_start", t0=round(t0, 3))
        if self.on_speech_start is not None:
            self.on_speech_start(t0)

    def _close(self, reason: str) -> SpeechSegment | None:
        frames = self._frames
        speech_frames = self._speech_frames
        self._speaking = False
        self._frames = []
        self._speech_frames = 0
        self._redemption_run = 0

        if speech_frames < self.cfg.min_speech_frames or not frames:
            log_event(
                self.logger,
                logging.DEBUG,
                "segment_discarded_short",
                reason=reason,
                speech_frames=speech_frames,
                frames=len(frames),
            )
            return None

        t0 = frames[0][1]
        t1 = frames[-1][1] + frames[-1][2]
        segment = SpeechSegment(
            audio=encode_wav(b"".join(f[0] for f in frames), self._sample_rate, channels=1),
            sample_rate=self._sample_rate,
            start_time=t0,
            duration=max(0.0, t1 - t0),
            frames=len(frames),
            speech_frames=speech_frames,
        )
        log_event(
            self.logger,
            logging.DEBUG,
            "segment_closed",
            reason=reason,
            t0=round(t0, 3),
            dur=round(segment.duration, 3),
            frames=segment.frames,
            speech_frames=speech_frames,
        )
        return segment


def segments_from_chunks(
    chunks: Iterable[AudioChunk],
    detector: SpeechDetector,
    cfg: SegmenterConfig | None = None,
    *,
    logger: logging.Logger | None = None,
) -> Iterator[SpeechSegment]:
    """Group an AudioChunk stream into closed, WAV-encoded speech segments."""
    segmenter = AudioSegmenter(detector, cfg, logger=logger)
    for chunk in chunks:
        segment = segmenter.push(chunk)
        if segment is not None:
            yield segment
    segment = segmenter.flush()
    if segment is not None:
        yield segment
