"""Abstract base class for all execution engines.

An execution engine runs a loaded model: it reports the inputs the model
declares and executes one forward pass over a full set of named input
tensors. The generation loop needs nothing else from it, so every backend
(onnxruntime, an accelerator SDK, an in-process stub) implements just this
interface. Any one-time runtime setup is the engine's own business and
happens before its first use.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    import numpy as np

    from tokenloop.tensors.types import TensorSlot


class ExecutionEngine(ABC):
    """Abstract base for all execution engines.

    Engines are not safe for concurrent requests: callers serialize access
    or load one engine per in-flight request.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable engine identifier (e.g., ``'onnxruntime'``)."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the engine can currently execute."""

    @abstractmethod
    def declared_inputs(self) -> list[TensorSlot]:
        """Return the model's declared input slots in declaration order."""

    @abstractmethod
    def execute(self, inputs: Sequence[tuple[str, np.ndarray]]) -> dict[str, np.ndarray]:
        """Run one forward pass.

        Args:
            inputs: ``(name, tensor)`` pairs, one per declared input.

        Returns:
            Mapping from output name to output tensor.

        Raises:
            Exception: Engine-specific error on malformed or mismatched input.
        """

    @abstractmethod
    def close(self) -> None:
        """Release all resources held by this engine."""

    def __enter__(self) -> ExecutionEngine:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
