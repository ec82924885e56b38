from __future__ import annotations

import asyncio
import io
import threading
import wave
from array import array
from types import SimpleNamespace
from typing import Iterator, Optional

from subsirl.app.runtime import LanguageSelection, _capture_segments, run_session
from subsirl.app.services import SessionServices
from subsirl.asr.base import Recognizer
from subsirl.audio.segmenter import SegmenterConfig
from subsirl.audio.vad import EnergyVAD
from subsirl.contracts import AudioChunk, Language, SpeechSegment
from subsirl.languages import language_pair
from subsirl.nlp.translator.echo import EchoTranslator
from subsirl.ui.sink import SubtitleSink

_SR = 16000
_FRAME = 160


def _chunk(amplitude: int, index: int) -> AudioChunk:
    return AudioChunk(
        pcm16=array("h", [amplitude] * _FRAME).tobytes(),
        sample_rate=_SR,
        channels=1,
        start_time=index * _FRAME / _SR,
        duration=_FRAME / _SR,
    )


class _ListSource:
    def __init__(self, amplitudes: list[int]) -> None:
        self.amplitudes = amplitudes
        self.closed = False

    def chunks(self) -> Iterator[AudioChunk]:
        try:
            for i, amp in enumerate(self.amplitudes):
                yield _chunk(amp, i)
        finally:
            self.closed = True


def _first_sample(audio: bytes) -> int:
    with wave.open(io.BytesIO(audio), "rb") as wf:
        samples = array("h")
        samples.frombytes(wf.readframes(1))
    return samples[0]


class _ByAmplitudeRecognizer(Recognizer):
    """Earlier utterances answer last."""

    transcripts = {3000: "one", 4000: "two", 5000: "three"}
    delays = {3000: 0.06, 4000: 0.03, 5000: 0.0}

    @property
    def name(self) -> str:
        return "fake"

    async def recognize(self, audio: bytes, source_language: Language) -> Optional[str]:
        amp = _first_sample(audio)
        await asyncio.sleep(self.delays[amp])
        return self.transcripts[amp]


_CFG = SegmenterConfig(pre_roll_frames=0, redemption_frames=2, min_speech_frames=1)


def test_run_session_delivers_in_capture_order() -> None:
    source = _ListSource([3000, 3000, 0, 0, 4000, 4000, 0, 0, 5000, 5000, 0, 0])
    services = SessionServices(
        source=source,
        detector=EnergyVAD(rms_threshold=1000.0),
        segmenter_cfg=_CFG,
        recognizer=_ByAmplitudeRecognizer(),
        translator=EchoTranslator(),
    )
    args = SimpleNamespace(
        stage_timeout_sec=5.0,
        max_concurrency=4,
        print_console=False,
        vad="energy",
        translator="echo",
    )
    sink = SubtitleSink()
    stop_event = threading.Event()

    stats = asyncio.run(
        run_session(
            args,
            sink,
            stop_event=stop_event,
            languages=LanguageSelection(language_pair("hi", "en")),
            services=services,
        )
    )

    assert sink.text == "[en] one [en] two [en] three"
    assert stats["frames"] == 12
    assert stats["submitted"] == 3
    assert stats["delivered"] == 3
    assert stats["in_flight"] == 0
    assert stop_event.is_set()
    assert source.closed


def test_capture_segments_flushes_open_segment() -> None:
    source = _ListSource([3000, 3000, 3000])
    segments: list[SpeechSegment] = []

    frames = _capture_segments(source, EnergyVAD(rms_threshold=1000.0), _CFG, threading.Event(), segments.append)

    assert frames == 3
    assert len(segments) == 1
    assert segments[0].frames == 3


def test_capture_segments_stops_and_closes_source() -> None:
    source = _ListSource([3000] * 50)
    stop_event = threading.Event()
    stop_event.set()
    segments: list[SpeechSegment] = []

    frames = _capture_segments(source, EnergyVAD(rms_threshold=1000.0), _CFG, stop_event, segments.append)

    assert frames == 0
    assert segments == []
    assert source.closed


def test_language_selection_swaps_pair() -> None:
    selection = LanguageSelection(language_pair("hi", "en"))
    selection.set(language_pair("ja", "en"))
    assert selection.current.source.code == "ja"
