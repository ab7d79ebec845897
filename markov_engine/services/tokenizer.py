"""
Word/punctuation tokenizer for Markov training and generation.

Rules:
- a word is a run of word characters, optionally joined by internal
  apostrophes or hyphens ("don't", "well-known")
- every other non-space character is its own punctuation token
- case is preserved
- tokenize() wraps the sequence in BOS/EOS boundary tokens

Tokens are interned strings, so equal tokens share identity.
"""
from __future__ import annotations

import re
import sys
from typing import Iterable, List

from .errors import EmptyInputError

BOS = sys.intern("<s>")
EOS = sys.intern("</s>")

_TOKEN_RE = re.compile(r"\w+(?:['’-]\w+)*|[^\w\s]")

# punctuation glued to the token before / after it when reassembling
_ATTACH_LEFT = set(".,!?;:%)]}…")
_ATTACH_RIGHT = set("([{")


def is_boundary(token: str) -> bool:
    return token == BOS or token == EOS


def tokenize(text: str, boundaries: bool = True) -> List[str]:
    """
    Split text into interned tokens.

    Args:
        text: Raw input text
        boundaries: Wrap the result in BOS/EOS markers

    Raises:
        EmptyInputError: text is empty, whitespace-only, or yields no tokens
    """
    if text is None or not text.strip():
        raise EmptyInputError("cannot tokenize empty text")

    tokens = [sys.intern(t) for t in _TOKEN_RE.findall(text)]
    if not tokens:
        raise EmptyInputError("text contains no tokens")

    if boundaries:
        return [BOS] + tokens + [EOS]
    return tokens


def detokenize(tokens: Iterable[str]) -> str:
    """Reassemble tokens into readable text, dropping boundary markers."""
    parts: List[str] = []
    glue_next = False
    for token in tokens:
        if is_boundary(token):
            continue
        if not parts or glue_next or token in _ATTACH_LEFT:
            if parts:
                parts[-1] += token
            else:
                parts.append(token)
        else:
            parts.append(token)
        glue_next = token in _ATTACH_RIGHT
    return " ".join(parts)
