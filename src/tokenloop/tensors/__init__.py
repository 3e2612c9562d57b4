"""Input tensor subsystem for tokenloop.

Describes the inputs an engine declares, classifies them by name, resolves
dynamic shapes, and binds a token history to a full input set::

    from tokenloop.tensors import InputBinder, TensorSlot, ElementType
"""

from tokenloop.tensors.binder import InputBinder, build_int_tensor
from tokenloop.tensors.naming import NamingConvention, SlotRole
from tokenloop.tensors.shapes import resolve_dynamic_shape, token_shape
from tokenloop.tensors.types import ElementType, ResolvedShape, TensorSlot, is_dynamic

__all__ = [
    "ElementType",
    "InputBinder",
    "NamingConvention",
    "ResolvedShape",
    "SlotRole",
    "TensorSlot",
    "build_int_tensor",
    "is_dynamic",
    "resolve_dynamic_shape",
    "token_shape",
]
