"""Text codec backed by a Hugging Face ``tokenizers`` tokenizer file."""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from tokenizers import Tokenizer

from tokenloop.codec.base import TextCodec
from tokenloop.exceptions import CodecError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("tokenloop")


class TokenizerCodec(TextCodec):
    """Encode and decode with a ``tokenizers.Tokenizer``.

    Encoding adds the tokenizer's special tokens; decoding skips them.

    Args:
        tokenizer: A loaded tokenizer.
        path: File the tokenizer was loaded from, if any.
    """

    def __init__(self, tokenizer: Tokenizer, path: str | None = None) -> None:
        self._tokenizer = tokenizer
        self._path = path

    @classmethod
    def from_file(cls, path: str) -> TokenizerCodec:
        """Load a ``tokenizer.json`` file.

        Raises:
            CodecError: If the file cannot be read or parsed.
        """
        try:
            tokenizer = Tokenizer.from_file(path)
        except Exception as exc:
            raise CodecError(f"Failed to load tokenizer from {path}: {exc}") from exc
        logger.debug("Loaded tokenizer %s (vocab=%d)", path, tokenizer.get_vocab_size())
        return cls(tokenizer, path)

    @property
    def path(self) -> str | None:
        return self._path

    @property
    def vocab_size(self) -> int:
        return int(self._tokenizer.get_vocab_size())

    def encode(self, text: str) -> list[int]:
        try:
            encoding = self._tokenizer.encode(text, add_special_tokens=True)
        except Exception as exc:
            raise CodecError(f"Failed to tokenize prompt: {exc}") from exc
        return list(encoding.ids)

    def decode(self, ids: Sequence[int]) -> str:
        try:
            return self._tokenizer.decode([int(i) for i in ids], skip_special_tokens=True)
        except Exception as exc:
            raise CodecError(f"Failed to decode tokens: {exc}") from exc


_cache_lock = threading.Lock()
_cached: TokenizerCodec | None = None


def load_codec(path: str) -> TokenizerCodec:
    """Return a codec for *path*, reusing the last one loaded from the same path.

    Only one tokenizer is kept; asking for a different path replaces it.
    """
    global _cached
    with _cache_lock:
        if _cached is None or _cached.path != path:
            _cached = TokenizerCodec.from_file(path)
        return _cached
