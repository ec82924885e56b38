from __future__ import annotations

import queue
from typing import Optional


class SubtitleBus:
    """
    Thread-safe handoff from the session thread -> UI thread.
    Session appends delivered text. UI polls (non-blocking).
    Unbounded: a delivered subtitle is never dropped.
    """
    def __init__(self) -> None:
        self.q: "queue.Queue[str]" = queue.Queue()

    def append(self, text: str) -> None:
        self.q.put_nowait(text)

    def pop(self) -> Optional[str]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None
