from __future__ import annotations

from subsirl.app.runtime import _drain_subtitle_bus
from subsirl.nlp.postprocess import normalize_subtitle
from subsirl.nlp.translator.llm import join_fragments
from subsirl.ui.bridge import SubtitleBus
from subsirl.ui.sink import SubtitleSink
from subsirl.ui.view_qt import ViewConfig, render_text_to_html


def test_normalize_subtitle_cleans_spacing_and_quotes() -> None:
    assert normalize_subtitle('  "Hello"   world .  ') == "Hello world."
    assert normalize_subtitle("well , then") == "well, then"
    assert normalize_subtitle("") == ""


def test_sink_appends_and_scrolls() -> None:
    scrolled: list[str] = []
    sink = SubtitleSink(on_scroll=scrolled.append)

    sink.append("Good morning")
    sink.append(" how are you ?")

    assert sink.text == "Good morning how are you?"
    assert sink.entries == ["Good morning", "how are you?"]
    assert scrolled == ["Good morning", "Good morning how are you?"]


def test_sink_never_rewrites_earlier_text() -> None:
    sink = SubtitleSink()
    sink.append("first")
    before = sink.text
    sink.append("second")
    assert sink.text.startswith(before)


def test_sink_counts_empty_delivery_without_changing_text() -> None:
    scrolled: list[str] = []
    sink = SubtitleSink(on_scroll=scrolled.append)
    sink.append("one")
    sink.append("")
    sink.append("two")

    assert sink.delivered_count == 3
    assert sink.text == "one two"
    assert scrolled == ["one", "one two"]


def test_streamed_fragments_render_without_double_spaces() -> None:
    for fragments in (["Hello", "world"], ["Hello", " world"]):
        sink = SubtitleSink()
        sink.append(join_fragments(fragments))
        assert sink.text == "Hello world"


def test_subtitle_bus_keeps_every_item() -> None:
    bus = SubtitleBus()
    for i in range(500):
        bus.append(f"line-{i}")
    popped = []
    while (text := bus.pop()) is not None:
        popped.append(text)
    assert popped == [f"line-{i}" for i in range(500)]


def test_drain_subtitle_bus_respects_max_items() -> None:
    bus = SubtitleBus()
    sink = SubtitleSink()
    for i in range(3):
        bus.append(f"line-{i}")

    drained = _drain_subtitle_bus(bus, sink, max_items=2)
    assert drained == 2
    assert sink.entries == ["line-0", "line-1"]
    assert _drain_subtitle_bus(bus, sink, max_items=2) == 1
    assert _drain_subtitle_bus(bus, sink, max_items=2) == 0


def test_render_text_to_html_escapes_markup() -> None:
    html = render_text_to_html("a < b & c > d", ViewConfig(font_size=30))
    assert "a &lt; b &amp; c &gt; d" in html
    assert "font-size:30px" in html
