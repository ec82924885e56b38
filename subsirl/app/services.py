from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from subsirl.asr.base import Recognizer
from subsirl.asr.remote_whisper import RemoteWhisperRecognizer
from subsirl.audio.mic import SoundDeviceMicSource, WavFileSource
from subsirl.audio.segmenter import SegmenterConfig
from subsirl.audio.vad import SpeechDetector, build_detector
from subsirl.nlp.translator.base import Translator
from subsirl.nlp.translator.factory import get_translator
from subsirl.remote import build_async_client


@dataclass(frozen=True)
class SessionServices:
    source: Any
    detector: SpeechDetector
    segmenter_cfg: SegmenterConfig
    recognizer: Recognizer
    translator: Translator


def build_segmenter_config(args: Any) -> SegmenterConfig:
    max_frames = getattr(args, "max_segment_frames", None)
    cfg = SegmenterConfig(
        positive_threshold=float(args.positive_threshold),
        negative_threshold=float(args.negative_threshold),
        debounce_frames=int(args.debounce_frames),
        redemption_frames=int(args.redemption_frames),
        pre_roll_frames=int(args.pre_roll_frames),
        min_speech_frames=int(args.min_speech_frames),
        max_segment_frames=None if max_frames is None else int(max_frames),
    )
    cfg.validate()
    return cfg


def build_source(args: Any):
    if getattr(args, "input_wav", None):
        return WavFileSource(str(args.input_wav), frame_samples=int(args.frame_samples), realtime=True)
    return SoundDeviceMicSource(
        frame_samples=int(args.frame_samples),
        sample_rate=int(args.sr),
        channels=int(args.channels),
        device=args.device,
    )


def build_session_services(args: Any, logger: logging.Logger | None = None) -> SessionServices:
    client = build_async_client(
        base_url=str(args.api_base_url),
        api_key_env=str(args.api_key_env),
        timeout_sec=float(args.stage_timeout_sec),
    )
    recognizer = RemoteWhisperRecognizer(client, model=str(args.recognition_model), logger=logger)
    translator = get_translator(
        str(args.translator),
        client=client,
        model=str(args.translation_model),
        logger=logger,
    )
    detector = build_detector(str(args.vad), sample_rate=int(args.sr), rms_threshold=float(args.rms_th))
    return SessionServices(
        source=build_source(args),
        detector=detector,
        segmenter_cfg=build_segmenter_config(args),
        recognizer=recognizer,
        translator=translator,
    )
