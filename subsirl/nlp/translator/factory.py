from __future__ import annotations
import logging
import os
from typing import Any
from .base import Translator
from .echo import EchoTranslator
from .llm import StreamingLLMTranslator

def get_translator(
    provider: str | None = None,
    *,
    client: Any = None,
    model: str = "llama3-70b-8192",
    logger: logging.Logger | None = None,
) -> Translator:
    provider = (provider or os.getenv("SUBSIRL_TRANSLATOR", "llm")).lower().strip()

    if provider == "echo":
        return EchoTranslator()
    if provider == "llm":
        if client is None:
            raise ValueError("llm translator needs an API client")
        return StreamingLLMTranslator(client, model=model, logger=logger)

    raise ValueError(f"Unknown translator provider: {provider}")
