from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from subsirl.contracts import Language, LanguagePair, TranslationRequest
from subsirl.nlp.translator.echo import EchoTranslator
from subsirl.nlp.translator.factory import get_translator
from subsirl.nlp.translator.llm import (
    StreamingLLMTranslator,
    build_translation_prompt,
    join_fragments,
)

PAIR = LanguagePair(Language("hi", "Hindi"), Language("en", "English"))


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


async def _stream(fragments, fail_after: int | None = None):
    for i, frag in enumerate(fragments):
        if fail_after is not None and i == fail_after:
            raise ConnectionError("stream dropped")
        yield _chunk(frag)


class FakeCompletions:
    def __init__(self, fragments, fail_after: int | None = None, error: Exception | None = None) -> None:
        self.fragments = fragments
        self.fail_after = fail_after
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return _stream(self.fragments, self.fail_after)


def _client(completions: FakeCompletions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_prompt_names_languages_text_and_reply_rule() -> None:
    prompt = build_translation_prompt("kya haal hai", PAIR)
    assert "Hindi" in prompt
    assert "English" in prompt
    assert '"kya haal hai"' in prompt
    assert "just respond with translated text" in prompt


def test_join_fragments_inserts_single_delimiter() -> None:
    assert join_fragments(["Hello", "world"]) == "Hello world"
    assert join_fragments(["", "Hello", "", "world"]) == "Hello world"
    assert join_fragments([]) == ""


def test_translate_consumes_whole_stream() -> None:
    api = FakeCompletions(["Hello", None, "world"])
    tr = StreamingLLMTranslator(_client(api), model="llama3-70b-8192")

    res = asyncio.run(tr.translate(TranslationRequest(text="namaste duniya", languages=PAIR)))

    assert res.translated_text == "Hello world"
    assert res.source_text == "namaste duniya"
    assert res.provider == "llm"
    call = api.calls[0]
    assert call["stream"] is True
    assert call["model"] == "llama3-70b-8192"
    assert "namaste duniya" in call["messages"][0]["content"]


def test_translate_chunk_without_choices_is_ignored() -> None:
    class NoChoices(FakeCompletions):
        async def create(self, **kwargs):
            async def gen():
                yield SimpleNamespace(choices=[])
                yield _chunk("ok")

            return gen()

    tr = StreamingLLMTranslator(_client(NoChoices([])))
    res = asyncio.run(tr.translate(TranslationRequest(text="x", languages=PAIR)))
    assert res.translated_text == "ok"


def test_translate_mid_stream_failure_returns_empty() -> None:
    api = FakeCompletions(["Hello", "wor", "ld"], fail_after=2)
    tr = StreamingLLMTranslator(_client(api))

    res = asyncio.run(tr.translate(TranslationRequest(text="x", languages=PAIR)))

    assert res.translated_text == ""


def test_translate_request_failure_returns_empty() -> None:
    api = FakeCompletions([], error=TimeoutError("connect timeout"))
    tr = StreamingLLMTranslator(_client(api))

    res = asyncio.run(tr.translate(TranslationRequest(text="x", languages=PAIR)))

    assert res.translated_text == ""
    assert len(api.calls) == 1


def test_echo_translator_is_deterministic() -> None:
    res = asyncio.run(EchoTranslator().translate(TranslationRequest(text="namaste", languages=PAIR)))
    assert res.translated_text == "[en] namaste"
    assert res.provider == "echo"


def test_factory_providers(monkeypatch) -> None:
    assert isinstance(get_translator("echo"), EchoTranslator)
    assert isinstance(get_translator("llm", client=object()), StreamingLLMTranslator)
    with pytest.raises(ValueError):
        get_translator("llm")
    with pytest.raises(ValueError):
        get_translator("argos")

    monkeypatch.setenv("SUBSIRL_TRANSLATOR", "echo")
    assert isinstance(get_translator(None), EchoTranslator)
