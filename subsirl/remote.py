from __future__ import annotations

import os

from subsirl.app.config import ConfigError


def build_async_client(
    *,
    base_url: str = "https://api.groq.com/openai/v1",
    api_key_env: str = "GROQ_API_KEY",
    timeout_sec: float = 30.0,
):
    """AsyncOpenAI client shared by the recognition and translation services."""
    api_key = os.getenv(api_key_env, "").strip()
    if not api_key:
        raise ConfigError(f"API key not set. Export {api_key_env} before starting a session.")
    from openai import AsyncOpenAI

    # Retries stay off: one attempt per utterance and stage.
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_sec, max_retries=0)
