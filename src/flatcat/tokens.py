from __future__ import annotations

import threading
from typing import Any

import tiktoken

from flatcat.settings import DEFAULT_TOKEN_ENCODING

_ENCODER_CACHE: dict[str, Any] = {}
_ENCODER_CACHE_LOCK = threading.Lock()


def get_encoder(name: str = DEFAULT_TOKEN_ENCODING) -> Any:  # noqa: ANN401
    """Return the tiktoken encoding called ``name``, loading it at most once."""
    with _ENCODER_CACHE_LOCK:
        enc = _ENCODER_CACHE.get(name)
        if enc is None:
            enc = tiktoken.get_encoding(name)
            _ENCODER_CACHE[name] = enc
    return enc


def count_tokens(text: str, encoding: str = DEFAULT_TOKEN_ENCODING) -> int:
    """Count the tokens of ``text`` with a fixed tiktoken encoding.

    Special-token text such as ``<|endoftext|>`` is counted as a single special token.

    Args:
        text (str): the text to tokenize
        encoding (str): the tiktoken encoding name

    Returns:
        int: the number of tokens
    """
    if not text:
        return 0
    return len(get_encoder(encoding).encode(text, allowed_special="all"))
