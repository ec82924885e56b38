from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional
from subsirl.contracts import Language

class Recognizer(ABC):
    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def recognize(self, audio: bytes, source_language: Language) -> Optional[str]:
        """Return trimmed text, or None when nothing usable was recognized."""
