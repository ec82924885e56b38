from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from typing import Any, Callable

from subsirl.app.logging_setup import log_event
from subsirl.app.services import SessionServices, build_session_services
from subsirl.audio.segmenter import AudioSegmenter, SegmenterConfig
from subsirl.audio.vad import SpeechDetector
from subsirl.contracts import LanguagePair, SpeechSegment, Utterance
from subsirl.live.delivery import OrderedDeliveryQueue, SubtitleTarget
from subsirl.live.pipeline import UtterancePipeline
from subsirl.nlp.postprocess import normalize_subtitle
from subsirl.ui.bridge import SubtitleBus


class LanguageSelection:
    """Current source/target pair. Utterances copy it when their segment closes."""

    def __init__(self, pair: LanguagePair) -> None:
        self._lock = threading.Lock()
        self._pair = pair

    @property
    def current(self) -> LanguagePair:
        with self._lock:
            return self._pair

    def set(self, pair: LanguagePair) -> None:
        with self._lock:
            self._pair = pair


def _drain_subtitle_bus(bus: SubtitleBus, sink: SubtitleTarget, max_items: int) -> int:
    drained = 0
    while drained < max_items:
        text = bus.pop()
        if text is None:
            break
        sink.append(text)
        drained += 1
    return drained


def _capture_segments(
    source: Any,
    detector: SpeechDetector,
    cfg: SegmenterConfig,
    stop_event: threading.Event,
    on_segment: Callable[[SpeechSegment], None],
    logger: logging.Logger | None = None,
) -> int:
    """Blocking capture + VAD loop; runs off the event loop thread."""
    segmenter = AudioSegmenter(detector, cfg, logger=logger)
    frames = 0
    with contextlib.closing(source.chunks()) as chunks:
        for chunk in chunks:
            if stop_event.is_set():
                break
            frames += 1
            segment = segmenter.push(chunk)
            if segment is not None:
                on_segment(segment)
    segment = segmenter.flush()
    if segment is not None:
        on_segment(segment)
    return frames


async def run_session(
    args: Any,
    sink: SubtitleTarget,
    *,
    stop_event: threading.Event,
    languages: LanguageSelection,
    logger: logging.Logger | None = None,
    services: SessionServices | None = None,
) -> dict[str, int]:
    services = services or build_session_services(args, logger)
    loop = asyncio.get_running_loop()
    started = time.perf_counter()

    pipeline = UtterancePipeline(
        recognizer=services.recognizer,
        translator=services.translator,
        stage_timeout_sec=float(args.stage_timeout_sec),
        logger=logger,
    )

    def _on_delivered(utt: Utterance) -> None:
        if getattr(args, "print_console", False):
            print(f"[#{utt.sequence_id} {utt.start_time:.2f}s] {normalize_subtitle(utt.result or '')}")

    queue = OrderedDeliveryQueue(
        pipeline=pipeline,
        sink=sink,
        max_concurrency=max(1, int(args.max_concurrency)),
        on_delivered=_on_delivered,
        logger=logger,
    )

    log_event(
        logger,
        logging.INFO,
        "session_start",
        vad=str(args.vad),
        translator=str(args.translator),
        source=languages.current.source.code,
        target=languages.current.target.code,
        max_concurrency=int(args.max_concurrency),
    )

    def _submit(segment: SpeechSegment, pair: LanguagePair) -> None:
        queue.submit(segment.audio, pair, start_time=segment.start_time, duration=segment.duration)

    def _on_segment(segment: SpeechSegment) -> None:
        pair = languages.current
        loop.call_soon_threadsafe(_submit, segment, pair)

    frames = 0
    async with queue:
        try:
            frames = await asyncio.to_thread(
                _capture_segments,
                services.source,
                services.detector,
                services.segmenter_cfg,
                stop_event,
                _on_segment,
                logger,
            )
        finally:
            stop_event.set()

    stats = dict(queue.stats)
    stats["frames"] = frames
    log_event(
        logger,
        logging.INFO,
        "session_stop",
        elapsed_sec=round(time.perf_counter() - started, 2),
        **stats,
    )
    return stats
