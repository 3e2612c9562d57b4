"""In-process engine that returns the same scores at every step.

Useful for tests and dry runs of the decode loop without a model file:
it validates the bound inputs against its declared signature like a real
runtime would, then emits a fixed score row for every sequence position.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from tokenloop.engine.base import ExecutionEngine
from tokenloop.engine.registry import register_engine
from tokenloop.tensors.types import ElementType, TensorSlot

if TYPE_CHECKING:
    from collections.abc import Sequence

_DEFAULT_VOCAB_SIZE = 128


@register_engine("static_scores")
class StaticScoresEngine(ExecutionEngine):
    """Deterministic engine emitting a fixed score row.

    Each call returns ``{output_name: array of shape (1, seq_len, vocab)}``
    where every position holds *scores*. All executed input sets are kept
    in :attr:`calls` for inspection.

    Args:
        scores: 1-D score row. Defaults to all zeros (a uniform distribution).
        inputs: Declared input slots. Defaults to a dynamic ``input_ids``
            and ``attention_mask`` pair of int64.
        output_name: Name of the single output.
        primary_name: Input whose last dimension gives the sequence length.
    """

    def __init__(
        self,
        scores: np.ndarray | None = None,
        inputs: Sequence[TensorSlot] | None = None,
        output_name: str = "logits",
        primary_name: str = "input_ids",
    ) -> None:
        if scores is None:
            scores = np.zeros(_DEFAULT_VOCAB_SIZE, dtype=np.float32)
        self._scores = np.asarray(scores, dtype=np.float32).reshape(-1)
        if inputs is None:
            inputs = (
                TensorSlot(primary_name, ElementType.INT64, (None, None)),
                TensorSlot("attention_mask", ElementType.INT64, (None, None)),
            )
        self._inputs = list(inputs)
        self._output_name = output_name
        self._primary_name = primary_name
        self._closed = False
        self.calls: list[dict[str, np.ndarray]] = []

    @classmethod
    def favoring(
        cls,
        token_id: int,
        vocab_size: int = _DEFAULT_VOCAB_SIZE,
        margin: float = 50.0,
        **kwargs: object,
    ) -> StaticScoresEngine:
        """Engine whose scores put almost all probability mass on *token_id*.

        Args:
            token_id: Vocabulary index to favor.
            vocab_size: Length of the score row.
            margin: Score of the favored token; all others score 0.
            **kwargs: Passed through to the constructor.
        """
        scores = np.zeros(vocab_size, dtype=np.float32)
        scores[token_id] = margin
        return cls(scores=scores, **kwargs)  # type: ignore[arg-type]

    @property
    def name(self) -> str:
        """Return ``'static_scores'``."""
        return "static_scores"

    @property
    def is_available(self) -> bool:
        """Available until closed."""
        return not self._closed

    @property
    def vocab_size(self) -> int:
        """Length of the emitted score row."""
        return len(self._scores)

    def declared_inputs(self) -> list[TensorSlot]:
        """Return a copy of the declared slots."""
        return list(self._inputs)

    def execute(self, inputs: Sequence[tuple[str, np.ndarray]]) -> dict[str, np.ndarray]:
        """Check *inputs* against the declared slots and emit the scores.

        Raises:
            RuntimeError: If the engine was closed.
            ValueError: If the input names or dtypes do not match the
                declared slots.
        """
        if self._closed:
            raise RuntimeError("Engine is closed")

        named = dict(inputs)
        expected = {slot.name for slot in self._inputs}
        if set(named) != expected:
            raise ValueError(
                f"Input names {sorted(named)} do not match declared inputs {sorted(expected)}"
            )
        for slot in self._inputs:
            if named[slot.name].dtype != slot.element_type.dtype:
                raise ValueError(
                    f"Input {slot.name!r} has dtype {named[slot.name].dtype}, "
                    f"expected {slot.element_type.value}"
                )

        self.calls.append({name: tensor.copy() for name, tensor in named.items()})

        seq_len = int(named[self._primary_name].shape[-1]) if self._primary_name in named else 1
        logits = np.broadcast_to(self._scores, (1, seq_len, len(self._scores))).copy()
        return {self._output_name: logits}

    def close(self) -> None:
        """Mark the engine closed; later ``execute`` calls fail."""
        self._closed = True
