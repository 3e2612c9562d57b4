"""Data types for the sampling subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class SamplingConfig:
    """Immutable per-request sampling parameters.

    Attributes:
        temperature: Score divisor. Values <= 0 are treated as 1.0.
        top_k: Keep only the k highest scores. ``None``, 0, or a value
            >= the vocabulary size disables the filter.
        top_p: Nucleus threshold, clamped to [0, 1]. ``None`` disables it.
        repetition_penalty: Applied to tokens already in the history when
            greater than 1.0.
        seed: Seed for the request's random generator. ``None`` draws
            fresh OS entropy, so results are not reproducible.
    """

    temperature: float = 1.0
    top_k: int | None = None
    top_p: float | None = None
    repetition_penalty: float = 1.0
    seed: int | None = None

    @property
    def effective_temperature(self) -> float:
        """Temperature actually applied to the scores."""
        return 1.0 if self.temperature <= 0 else self.temperature


@dataclass(frozen=True, slots=True)
class SampleResult:
    """Result of sampling one token.

    Attributes:
        token_id: Vocabulary index of the selected token.
        token_prob: Probability of the selected token within the final
            candidate set.
        num_candidates: Number of tokens surviving top-k and top-p filtering.
        diagnostics: Additional info (vocabulary size, filter stats, draw).
    """

    token_id: int
    token_prob: float
    num_candidates: int
    diagnostics: dict[str, Any]
