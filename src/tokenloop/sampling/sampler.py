"""Categorical token sampler.

Implements the full selection pipeline over one decode step's raw scores:
last-position extraction -> repetition penalty -> temperature -> top-k ->
top-p -> weighted categorical draw.

The draw never materializes normalized probabilities: a uniform value is
scaled by the total unnormalized mass and compared against the running sum
of shifted exponentials.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from tokenloop.exceptions import EmptyCandidateSetError, UnsupportedScoreRankError
from tokenloop.sampling.types import SampleResult, SamplingConfig

if TYPE_CHECKING:
    from collections.abc import Sequence


def make_rng(seed: int | None) -> np.random.Generator:
    """Create the random generator owned by one generation request.

    Args:
        seed: Seed for reproducible draws, or ``None`` for OS entropy.

    Returns:
        A fresh ``numpy.random.Generator``.
    """
    return np.random.default_rng(seed)


def extract_last_scores(scores: np.ndarray) -> np.ndarray:
    """Return the score row for the last sequence position.

    Args:
        scores: Raw engine output, rank 2 ``(seq, vocab)`` or rank 3
            ``(batch, seq, vocab)``. For rank 3 the first batch entry is used.

    Returns:
        1-D float64 copy of the last row.

    Raises:
        UnsupportedScoreRankError: For any other rank.
    """
    scores = np.asarray(scores)
    if scores.ndim == 3:
        row = scores[0, -1]
    elif scores.ndim == 2:
        row = scores[-1]
    else:
        raise UnsupportedScoreRankError(f"Unsupported logits rank {scores.ndim}")
    return np.array(row, dtype=np.float64)


class TokenSampler:
    """Stateless token sampler.

    Randomness is supplied by the caller on every call, so one sampler can
    serve any number of requests without sharing random state.
    """

    def sample(
        self,
        scores: np.ndarray,
        history: Sequence[int],
        config: SamplingConfig,
        rng: np.random.Generator,
    ) -> SampleResult:
        """Select one token from a decode step's raw scores.

        Args:
            scores: Raw engine output of rank 2 or 3.
            history: Every token id in the sequence so far.
            config: Sampling parameters for this request.
            rng: The request's random generator.

        Returns:
            SampleResult with the selected vocabulary index and diagnostics.

        Raises:
            UnsupportedScoreRankError: If *scores* is not rank 2 or 3.
            EmptyCandidateSetError: If no candidate survives filtering.
        """
        logits = extract_last_scores(scores)
        vocab_size = len(logits)

        # 1. Repetition penalty.
        logits = self._apply_repetition_penalty(logits, history, config.repetition_penalty)

        # 2. Temperature scaling.
        temperature = config.effective_temperature
        if temperature != 1.0:
            logits = logits / temperature

        # 3. Top-k filtering.
        indices, values = self._apply_top_k(logits, config.top_k)
        effective_k = len(indices)

        # 4. Top-p (nucleus) filtering.
        if config.top_p is not None:
            indices, values = self._apply_top_p(indices, values, config.top_p)

        if len(indices) == 0:
            raise EmptyCandidateSetError("No candidates after sampling filters")

        # 5. Weighted categorical draw.
        position, prob, draw = self._draw(values, rng)

        return SampleResult(
            token_id=int(indices[position]),
            token_prob=prob,
            num_candidates=len(indices),
            diagnostics={
                "vocab_size": vocab_size,
                "effective_top_k": effective_k,
                "temperature": temperature,
                "draw": draw,
            },
        )

    @staticmethod
    def _apply_repetition_penalty(
        logits: np.ndarray, history: Sequence[int], penalty: float
    ) -> np.ndarray:
        """Push the scores of previously seen tokens down.

        Positive scores are divided by *penalty*, zero and negative scores
        are multiplied by it. Ids outside the vocabulary are ignored.

        Args:
            logits: 1-D score array.
            history: Token ids generated or supplied so far.
            penalty: Penalty factor; only applied if > 1.0.

        Returns:
            A penalized copy, or *logits* unchanged.
        """
        if penalty <= 1.0 or len(history) == 0:
            return logits

        seen = np.unique(np.asarray(history, dtype=np.int64))
        seen = seen[(seen >= 0) & (seen < len(logits))]
        if len(seen) == 0:
            return logits

        result = logits.copy()
        picked = result[seen]
        result[seen] = np.where(picked > 0, picked / penalty, picked * penalty)
        return result

    @staticmethod
    def _apply_top_k(logits: np.ndarray, k: int | None) -> tuple[np.ndarray, np.ndarray]:
        """Keep the k highest scores.

        Args:
            logits: 1-D score array.
            k: Number of scores to keep. ``None``, <= 0, or >= vocab
                size disables filtering.

        Returns:
            Tuple of (vocabulary indices, scores) of the surviving candidates.
        """
        vocab_size = len(logits)
        if k is None or k <= 0 or k >= vocab_size:
            return np.arange(vocab_size), logits

        # argpartition gives O(n) selection of the top-k indices.
        kept = np.argpartition(logits, vocab_size - k)[vocab_size - k :]
        return kept, logits[kept]

    @staticmethod
    def _apply_top_p(
        indices: np.ndarray, values: np.ndarray, top_p: float
    ) -> tuple[np.ndarray, np.ndarray]:
        """Nucleus filtering over the current candidates.

        Sorts by descending score and keeps the smallest prefix whose
        softmax mass reaches *top_p*. The top candidate always survives.

        Args:
            indices: Vocabulary indices of the candidates.
            values: Scores of the candidates.
            top_p: Threshold, clamped to [0, 1].

        Returns:
            Tuple of (indices, scores), sorted by descending score.
        """
        if len(values) == 0:
            return indices, values

        top_p = min(max(top_p, 0.0), 1.0)
        order = np.argsort(-values, kind="stable")
        indices = indices[order]
        values = values[order]

        exp_shifted = np.exp(values - values[0])
        cumulative = np.cumsum(exp_shifted / np.sum(exp_shifted))

        reached = np.nonzero(cumulative >= top_p)[0]
        cutoff = int(reached[0]) + 1 if len(reached) else len(values)
        return indices[:cutoff], values[:cutoff]

    @staticmethod
    def _draw(values: np.ndarray, rng: np.random.Generator) -> tuple[int, float, float]:
        """Draw one candidate position proportionally to exp(score).

        Args:
            values: Candidate scores (non-empty).
            rng: Random generator providing the uniform value.

        Returns:
            Tuple of (candidate position, probability, scaled draw).

        Raises:
            EmptyCandidateSetError: If no candidate has a finite score.
        """
        max_score = np.max(values)
        if not np.isfinite(max_score):
            raise EmptyCandidateSetError("No candidate has a finite score")

        weights = np.exp(values - max_score)
        cumulative = np.cumsum(weights)
        total = float(cumulative[-1])

        draw = float(rng.random()) * total
        position = int(np.searchsorted(cumulative, draw, side="right"))
        # Rounding can leave the draw at the very end of the mass.
        position = min(position, len(values) - 1)

        return position, float(weights[position] / total), draw
