from __future__ import annotations

from typing import Dict, List

from subsirl.contracts import Language, LanguagePair

LANGUAGE_OPTIONS: List[Language] = [
    Language("hi", "Hindi"),
    Language("en", "English"),
    Language("es", "Spanish"),
    Language("fr", "French"),
    Language("de", "German"),
    Language("it", "Italian"),
    Language("pt", "Portuguese"),
    Language("ru", "Russian"),
    Language("ja", "Japanese"),
    Language("ko", "Korean"),
    Language("zh", "Chinese"),
    Language("ar", "Arabic"),
    Language("bn", "Bengali"),
    Language("ta", "Tamil"),
    Language("te", "Telugu"),
    Language("mr", "Marathi"),
    Language("ur", "Urdu"),
    Language("tr", "Turkish"),
    Language("nl", "Dutch"),
    Language("pl", "Polish"),
]

_BY_CODE: Dict[str, Language] = {lang.code: lang for lang in LANGUAGE_OPTIONS}


def language_for_code(code: str) -> Language:
    key = str(code or "").strip().lower()
    try:
        return _BY_CODE[key]
    except KeyError:
        raise ValueError(f"Unsupported language code: {code!r}") from None


def language_pair(source_code: str, target_code: str) -> LanguagePair:
    return LanguagePair(source=language_for_code(source_code), target=language_for_code(target_code))
