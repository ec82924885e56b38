from __future__ import annotations

from typing import Callable, List, Optional

from subsirl.nlp.postprocess import normalize_subtitle


class SubtitleSink:
    """
    Append-only transcript buffer for one session. Each delivery is normalized,
    joined to the buffer with a space, and followed by a scroll signal.
    """

    def __init__(self, on_scroll: Optional[Callable[[str], None]] = None) -> None:
        self.on_scroll = on_scroll
        self._entries: List[str] = []
        self._text = ""
        self.delivered_count = 0

    @property
    def text(self) -> str:
        return self._text

    @property
    def entries(self) -> List[str]:
        return list(self._entries)

    def append(self, text: str) -> None:
        self.delivered_count += 1
        line = normalize_subtitle(text)
        if not line:
            return
        self._entries.append(line)
        self._text = f"{self._text} {line}" if self._text else line
        if self.on_scroll is not None:
            self.on_scroll(self._text)
