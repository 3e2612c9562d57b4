"""Shared pytest fixtures for tokenloop tests.

Provides reusable settings objects, a character-level fake codec, and
sample score arrays used across multiple test modules.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pytest

from tokenloop.codec.base import TextCodec
from tokenloop.config import GenerationSettings
from tokenloop.exceptions import CodecError


class CharCodec(TextCodec):
    """One token per character, via an explicit mapping.

    Unknown characters fail to encode; unknown ids fail to decode, like a
    real tokenizer given out-of-vocabulary input.
    """

    def __init__(self, mapping: dict[str, int]) -> None:
        self._to_id = dict(mapping)
        self._to_char = {v: k for k, v in mapping.items()}
        self.decode_calls = 0

    def encode(self, text: str) -> list[int]:
        try:
            return [self._to_id[ch] for ch in text]
        except KeyError as exc:
            raise CodecError(f"Unknown character {exc}") from exc

    def decode(self, ids: Sequence[int]) -> str:
        self.decode_calls += 1
        try:
            return "".join(self._to_char[i] for i in ids)
        except KeyError as exc:
            raise CodecError(f"Unknown token id {exc}") from exc


@pytest.fixture
def default_settings() -> GenerationSettings:
    """Settings with field defaults only (no .env file)."""
    return GenerationSettings(_env_file=None)  # type: ignore[call-arg]


@pytest.fixture
def silent_settings() -> GenerationSettings:
    """Settings with no logging for noise-free tests."""
    return GenerationSettings(_env_file=None, log_level="none")  # type: ignore[call-arg]


@pytest.fixture
def arithmetic_codec() -> CharCodec:
    """Codec for the ``"2+2="`` prompt: '2'->50, '+'->10, '='->61, '!'->99."""
    return CharCodec({"2": 50, "+": 10, "=": 61, "!": 99, "4": 52})


@pytest.fixture
def sample_scores_peaked() -> np.ndarray:
    """Rank-2 scores ``(seq=3, vocab=100)`` whose last row favors index 7.

    Earlier rows favor index 3, so a sampler reading the wrong row
    picks the wrong token.
    """
    scores = np.zeros((3, 100), dtype=np.float32)
    scores[:-1, 3] = 20.0
    scores[-1, 7] = 20.0
    return scores


@pytest.fixture
def sample_scores_large_vocab() -> np.ndarray:
    """Random rank-3 scores ``(1, 4, 32000)`` with a fixed seed."""
    rng = np.random.default_rng(seed=12345)
    return rng.standard_normal((1, 4, 32000)).astype(np.float32)
