# subsirl/live/pipeline.py
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Optional, TypeVar

from subsirl.app.logging_setup import log_event
from subsirl.asr.base import Recognizer
from subsirl.contracts import TranslationRequest, Utterance, UtteranceStatus
from subsirl.nlp.translator.base import Translator

T = TypeVar("T")


class UtterancePipeline:
    """
    Recognize then translate one utterance.

    Every terminal state is DONE with a possibly empty result: timeouts and
    client errors collapse into "" for that stage. An empty transcript skips
    the translation call entirely.
    """

    def __init__(
        self,
        *,
        recognizer: Recognizer,
        translator: Translator,
        stage_timeout_sec: float | None = 30.0,
        logger: logging.Logger | None = None,
    ) -> None:
        if stage_timeout_sec is not None and stage_timeout_sec <= 0:
            raise ValueError("stage_timeout_sec must be > 0 when set")
        self.recognizer = recognizer
        self.translator = translator
        self.stage_timeout_sec = stage_timeout_sec
        self.logger = logger

    async def _stage(self, utt: Utterance, stage: str, coro: Awaitable[T]) -> Optional[T]:
        try:
            return await asyncio.wait_for(coro, timeout=self.stage_timeout_sec)
        except asyncio.TimeoutError:
            log_event(
                self.logger,
                logging.WARNING,
                "stage_timeout",
                stage=stage,
                seq=utt.sequence_id,
                timeout_sec=self.stage_timeout_sec,
            )
        except Exception:
            if self.logger is not None:
                self.logger.exception("stage_error", extra={"stage": stage, "seq": utt.sequence_id})
        return None

    async def run(self, utt: Utterance) -> str:
        utt.status = UtteranceStatus.TRANSCRIBING
        text = await self._stage(
            utt,
            "recognize",
            self.recognizer.recognize(utt.audio, utt.languages.source),
        )
        utt.transcript = (text or "").strip()
        if not utt.transcript:
            utt.result = ""
            utt.status = UtteranceStatus.DONE
            log_event(self.logger, logging.INFO, "recognition_empty", seq=utt.sequence_id)
            return ""

        utt.status = UtteranceStatus.TRANSLATING
        req = TranslationRequest(text=utt.transcript, languages=utt.languages)
        res = await self._stage(utt, "translate", self.translator.translate(req))
        translated = str(getattr(res, "translated_text", "") or "") if res is not None else ""
        utt.result = translated
        utt.status = UtteranceStatus.DONE
        log_event(
            self.logger,
            logging.INFO,
            "utterance_translated",
            seq=utt.sequence_id,
            chars_src=len(utt.transcript),
            chars_dst=len(translated),
        )
        return translated
