from __future__ import annotations

from subsirl.app.diagnostics import hint_for_exception, summarize_exception


def test_summarize_exception_picks_last_meaningful_line() -> None:
    detail = (
        "Traceback (most recent call last):\n"
        '  File "x.py", line 1, in <module>\n'
        "    boom()\n"
        "ConfigError: API key not set. Export GROQ_API_KEY before starting a session."
    )
    assert summarize_exception(detail).startswith("ConfigError: API key not set.")


def test_summarize_exception_truncates_long_line() -> None:
    detail = "ValueError: " + ("x" * 500)
    out = summarize_exception(detail, max_len=60)
    assert out.startswith("ValueError: ")
    assert out.endswith("...")
    assert len(out) <= 60


def test_summarize_exception_empty() -> None:
    assert summarize_exception("") == "Unknown runtime error."


def test_hint_for_exception_missing_api_key() -> None:
    hint = hint_for_exception("ConfigError: API key not set. Export GROQ_API_KEY")
    assert "--api-key-env" in hint


def test_hint_for_exception_auth_and_mic() -> None:
    assert "API key" in hint_for_exception("AuthenticationError: Error code: 401")
    assert "Microphone" in hint_for_exception("MicError: Failed to open microphone stream.")


def test_hint_for_exception_default() -> None:
    hint = hint_for_exception("RuntimeError: unknown")
    assert hint == "Check logs for full traceback."
