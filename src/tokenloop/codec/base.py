"""Abstract base class for text codecs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class TextCodec(ABC):
    """Converts between prompt text and token ids.

    A codec is optional for generation: without one, prompts must be
    supplied as ids and results cannot be rendered as text.
    """

    @abstractmethod
    def encode(self, text: str) -> list[int]:
        """Return the token ids for *text*.

        Raises:
            CodecError: If the text cannot be encoded.
        """

    @abstractmethod
    def decode(self, ids: Sequence[int]) -> str:
        """Return the text for *ids*.

        Raises:
            CodecError: If an id is outside the vocabulary.
        """
