"""Data types describing the inputs an execution engine declares."""

from __future__ import annotations

import enum
from dataclasses import dataclass

import numpy as np

ResolvedShape = tuple[int, ...]
"""Concrete dimensions for one input slot, one entry per declared dimension."""


class ElementType(enum.Enum):
    """Element type of a declared input tensor.

    The integer kinds can carry token ids, masks and positions. The float
    and bool kinds only ever appear as zero-filled placeholders.
    """

    INT64 = "int64"
    INT32 = "int32"
    INT8 = "int8"
    UINT8 = "uint8"
    UINT16 = "uint16"
    UINT32 = "uint32"
    UINT64 = "uint64"
    FLOAT16 = "float16"
    FLOAT32 = "float32"
    FLOAT64 = "float64"
    BOOL = "bool"

    @property
    def dtype(self) -> np.dtype:
        """The matching numpy dtype."""
        return np.dtype(self.value)

    @property
    def is_integer(self) -> bool:
        """Whether token ids can be narrowed into this type."""
        return self in _INTEGER_TYPES


_INTEGER_TYPES = frozenset(
    {
        ElementType.INT64,
        ElementType.INT32,
        ElementType.INT8,
        ElementType.UINT8,
        ElementType.UINT16,
        ElementType.UINT32,
        ElementType.UINT64,
    }
)


@dataclass(frozen=True, slots=True)
class TensorSlot:
    """One input declared by an execution engine.

    Attributes:
        name: Input name as the engine reports it.
        element_type: Declared element type.
        shape: Declared dimensions. ``None`` (or a negative size) marks a
            dynamic dimension that is only known once inputs are bound.
    """

    name: str
    element_type: ElementType
    shape: tuple[int | None, ...]

    @property
    def rank(self) -> int:
        """Number of declared dimensions."""
        return len(self.shape)


def is_dynamic(dim: int | None) -> bool:
    """Return True if *dim* is unresolved until binding."""
    return dim is None or dim < 0
