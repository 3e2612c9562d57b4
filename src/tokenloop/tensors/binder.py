"""Builds the named input tensors for one decode step."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np

from tokenloop.exceptions import UnsupportedTensorTypeError
from tokenloop.tensors.naming import NamingConvention, SlotRole
from tokenloop.tensors.shapes import resolve_dynamic_shape, token_shape

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tokenloop.tensors.types import ElementType, ResolvedShape, TensorSlot

logger = logging.getLogger("tokenloop")


def build_int_tensor(
    element_type: ElementType,
    shape: ResolvedShape,
    values: Sequence[int] | np.ndarray,
) -> np.ndarray:
    """Build an integer tensor, narrowing int64 values to the declared width.

    Narrowing wraps around like a C cast, so ids that do not fit the
    declared type are truncated rather than rejected.

    Args:
        element_type: Declared element type of the slot.
        shape: Target shape; must hold exactly ``len(values)`` elements.
        values: Values as 64-bit signed integers.

    Returns:
        A contiguous array of the declared dtype and *shape*.

    Raises:
        UnsupportedTensorTypeError: If *element_type* is not an integer kind.
    """
    if not element_type.is_integer:
        raise UnsupportedTensorTypeError(
            f"Unsupported integer tensor type: {element_type.value}"
        )
    data = np.asarray(values, dtype=np.int64).astype(element_type.dtype)
    return data.reshape(shape)


class InputBinder:
    """Maps a token history onto every input an engine declares.

    The binder is stateless apart from its naming convention and never
    modifies the history it is given.
    """

    def __init__(self, convention: NamingConvention | None = None) -> None:
        self._convention = convention or NamingConvention()

    @property
    def convention(self) -> NamingConvention:
        """Naming convention used to classify slots."""
        return self._convention

    def bind(
        self,
        slots: Sequence[TensorSlot],
        token_ids: Sequence[int],
        primary_name: str,
    ) -> list[tuple[str, np.ndarray]]:
        """Build the (name, tensor) pairs for one execution call.

        Args:
            slots: Inputs declared by the engine, in declaration order.
            token_ids: Full token history.
            primary_name: Name of the slot receiving the token sequence.

        Returns:
            One entry per slot, in the order of *slots*.

        Raises:
            UnsupportedTensorTypeError: If a token, mask, position or type-id
                slot declares a non-integer element type.
        """
        seq_len = len(token_ids)
        inputs: list[tuple[str, np.ndarray]] = []

        for slot in slots:
            role = self._convention.classify(slot.name, primary_name)

            if role is SlotRole.PRIMARY:
                values: Sequence[int] | np.ndarray = token_ids
            elif role is SlotRole.ATTENTION_MASK:
                values = np.ones(seq_len, dtype=np.int64)
            elif role is SlotRole.POSITION_IDS:
                values = np.arange(seq_len, dtype=np.int64)
            elif role is SlotRole.TOKEN_TYPE_IDS:
                values = np.zeros(seq_len, dtype=np.int64)
            else:
                resolved = resolve_dynamic_shape(slot.name, slot.shape, seq_len, self._convention)
                inputs.append((slot.name, np.zeros(resolved, dtype=slot.element_type.dtype)))
                logger.debug(
                    "bound placeholder %s role=%s shape=%s", slot.name, role.value, resolved
                )
                continue

            tensor = build_int_tensor(slot.element_type, token_shape(slot.shape, seq_len), values)
            inputs.append((slot.name, tensor))

        return inputs
