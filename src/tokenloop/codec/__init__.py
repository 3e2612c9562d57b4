"""Text codec subsystem for tokenloop.

Converts prompt text to token ids and back. The ``tokenizers``-backed codec
is the built-in implementation.
"""

from tokenloop.codec.base import TextCodec
from tokenloop.codec.tokenizer import TokenizerCodec, load_codec

__all__ = [
    "TextCodec",
    "TokenizerCodec",
    "load_codec",
]
