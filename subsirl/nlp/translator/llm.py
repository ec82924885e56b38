from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Iterable, Optional

from subsirl.app.logging_setup import log_event
from subsirl.contracts import LanguagePair, TranslationRequest, TranslationResult
from .base import Translator


def build_translation_prompt(text: str, languages: LanguagePair) -> str:
    return (
        f"Translate the following {languages.source.english_name} language text "
        f'to {languages.target.english_name}: "{text}"\n'
        "Make sure to just respond with translated text, nothing else.\n"
        "Translation:-"
    )


def join_fragments(fragments: Iterable[str], delimiter: str = " ") -> str:
    """Fold streamed fragments into one string, delimiter between non-empty parts."""
    return delimiter.join(f for f in fragments if f)


def _delta_content(chunk: Any) -> Optional[str]:
    choices = getattr(chunk, "choices", None) or []
    if not choices:
        return None
    delta = getattr(choices[0], "delta", None)
    return getattr(delta, "content", None)


async def collect_stream(stream: AsyncIterable[Any]) -> list[str]:
    fragments: list[str] = []
    async for chunk in stream:
        content = _delta_content(chunk)
        if content:
            fragments.append(content)
    return fragments


class StreamingLLMTranslator(Translator):
    """
    Translation through a streamed chat completion. The whole stream is
    consumed before returning; callers never see partial text. Any failure,
    mid-stream included, yields an empty translation.
    """

    def __init__(
        self,
        client: Any,
        *,
        model: str = "llama3-70b-8192",
        temperature: float = 0.7,
        max_tokens: int = 1024,
        delimiter: str = " ",
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.delimiter = delimiter
        self.logger = logger

    @property
    def name(self) -> str:
        return "llm"

    async def translate(self, req: TranslationRequest) -> TranslationResult:
        prompt = build_translation_prompt(req.text, req.languages)
        try:
            stream = await self.client.chat.completions.create(
                messages=[{"role": "user", "content": prompt}],
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
                top_p=1,
                stream=True,
            )
            fragments = await collect_stream(stream)
        except Exception as e:
            log_event(
                self.logger,
                logging.WARNING,
                "translation_failed",
                error=f"{type(e).__name__}: {e}",
                chars_src=len(req.text),
            )
            return TranslationResult(source_text=req.text, translated_text="", provider=self.name)

        text = join_fragments(fragments, self.delimiter)
        return TranslationResult(source_text=req.text, translated_text=text, provider=self.name)
