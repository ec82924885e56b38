# subsirl/nlp/postprocess.py
from __future__ import annotations
import re

_SPACE_BEFORE_PUNCT = re.compile(r"\s+([.,?!])")
_WHITESPACE = re.compile(r"\s+")

def normalize_subtitle(text: str) -> str:
    text = (text or "").replace('"', "")

    # "done ." -> "done.", "well , then" -> "well, then"
    text = _SPACE_BEFORE_PUNCT.sub(r"\1", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()
