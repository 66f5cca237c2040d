from __future__ import annotations

import math
from enum import Enum
from functools import lru_cache
from typing import Callable


class TokenizerKind(str, Enum):
    """
    Token estimation strategies.

    WHITESPACE and CHAR_RATIO are cheap approximations; CL100K counts real
    BPE tokens with tiktoken's cl100k_base encoding.
    """

    WHITESPACE = "whitespace"
    CHAR_RATIO = "char_ratio"
    CL100K = "cl100k"


CHARS_PER_TOKEN = 4

TokenEstimator = Callable[[str], int]


@lru_cache(maxsize=1)
def _cl100k():
    try:
        import tiktoken  # type: ignore
    except ImportError as e:
        raise RuntimeError("Missing dependency: tiktoken is required for TokenizerKind.CL100K.") from e
    return tiktoken.get_encoding("cl100k_base")


def _whitespace_tokens(text: str) -> int:
    return len(text.split())


def _char_ratio_tokens(text: str) -> int:
    n = len(text.strip())
    return int(math.ceil(n / CHARS_PER_TOKEN)) if n > 0 else 0


def _cl100k_tokens(text: str) -> int:
    return len(_cl100k().encode(text, disallowed_special=()))


_ESTIMATORS: dict[TokenizerKind, TokenEstimator] = {
    TokenizerKind.WHITESPACE: _whitespace_tokens,
    TokenizerKind.CHAR_RATIO: _char_ratio_tokens,
    TokenizerKind.CL100K: _cl100k_tokens,
}


def estimator_for(kind: TokenizerKind) -> TokenEstimator:
    return _ESTIMATORS[TokenizerKind(kind)]


def estimate_tokens(text: str, kind: TokenizerKind = TokenizerKind.CHAR_RATIO) -> int:
    """Approximate token count of `text` (always >= 0)."""
    return estimator_for(kind)(text)
