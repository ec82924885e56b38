from __future__ import annotations
from .base import Translator
from subsirl.contracts import TranslationRequest, TranslationResult

class EchoTranslator(Translator):
    @property
    def name(self) -> str:
        return "echo"

    async def translate(self, req: TranslationRequest) -> TranslationResult:
        # Deterministic, offline
        text = f"[{req.languages.target.code}] {req.text}"
        return TranslationResult(source_text=req.text, translated_text=text, provider=self.name)
