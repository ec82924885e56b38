from __future__ import annotations

import logging
from typing import Any, Optional

from subsirl.app.logging_setup import log_event
from subsirl.asr.base import Recognizer
from subsirl.contracts import Language


class RemoteWhisperRecognizer(Recognizer):
    """
    Speech-to-text over an OpenAI-compatible `audio.transcriptions` endpoint.
    Failures of any kind come back as None; there are no retries here.
    """

    def __init__(
        self,
        client: Any,
        *,
        model: str = "whisper-large-v3",
        temperature: float = 0.1,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.logger = logger

    @property
    def name(self) -> str:
        return "remote-whisper"

    async def recognize(self, audio: bytes, source_language: Language) -> Optional[str]:
        if not audio:
            return None
        try:
            res = await self.client.audio.transcriptions.create(
                file=("audio.wav", audio, "audio/wav"),
                model=self.model,
                temperature=self.temperature,
                language=source_language.code.lower(),
            )
        except Exception as e:
            log_event(
                self.logger,
                logging.WARNING,
                "recognition_failed",
                error=f"{type(e).__name__}: {e}",
                audio_bytes=len(audio),
            )
            return None

        text = (getattr(res, "text", None) or "").strip()
        return text or None
