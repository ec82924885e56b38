from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

@dataclass(frozen=True)
class Language:
    code: str
    english_name: str

@dataclass(frozen=True)
class LanguagePair:
    source: Language
    target: Language

@dataclass(frozen=True)
class TranslationRequest:
    text: str
    languages: LanguagePair

@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str
    provider: str

@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio captured from a live source (e.g., microphone).
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int
    start_time: float  # seconds since stream start
    duration: float    # seconds

@dataclass(frozen=True)
class SpeechSegment:
    """One closed VAD segment, already encoded as a WAV container."""
    audio: bytes
    sample_rate: int
    start_time: float
    duration: float
    frames: int
    speech_frames: int


class UtteranceStatus(str, Enum):
    PENDING = "pending"
    TRANSCRIBING = "transcribing"
    TRANSLATING = "translating"
    DONE = "done"
    FAILED = "failed"


@dataclass
class Utterance:
    sequence_id: int
    audio: bytes
    languages: LanguagePair
    start_time: float = 0.0
    duration: float = 0.0
    status: UtteranceStatus = UtteranceStatus.PENDING
    transcript: str = ""
    result: Optional[str] = field(default=None)
