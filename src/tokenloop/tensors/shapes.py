"""Concrete shapes for inputs declared with dynamic dimensions.

Which dynamic dimension means "batch" and which means "sequence" or
"cache length" is not part of any declared contract. The resolver guesses
from position and slot name:

- the first dynamic dimension is the batch and becomes 1;
- on a cache slot every later dynamic dimension becomes 0 (an empty cache
  that the engine extends itself);
- on any other slot every later dynamic dimension becomes the current
  sequence length.

This is best-effort. Models whose signatures break the pattern (a dynamic
head count, say) will bind incorrectly; such models need their own
:class:`~tokenloop.tensors.naming.NamingConvention` or engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from tokenloop.tensors.naming import NamingConvention
from tokenloop.tensors.types import is_dynamic

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tokenloop.tensors.types import ResolvedShape

_DEFAULT_CONVENTION = NamingConvention()


def resolve_dynamic_shape(
    name: str,
    shape: Sequence[int | None],
    seq_len: int,
    convention: NamingConvention | None = None,
) -> ResolvedShape:
    """Resolve every dynamic dimension of a declared shape.

    Args:
        name: Slot name, used to detect cache state.
        shape: Declared dimensions (``None`` or negative = dynamic).
        seq_len: Current length of the token sequence.
        convention: Naming convention; the default markers when ``None``.

    Returns:
        Tuple of concrete dimensions, same length as *shape*.
    """
    convention = convention or _DEFAULT_CONVENTION
    is_cache = convention.is_cache(name)
    used_batch = False
    resolved: list[int] = []

    for dim in shape:
        if not is_dynamic(dim):
            resolved.append(int(dim))  # type: ignore[arg-type]
            continue

        if not used_batch:
            resolved.append(1)
            used_batch = True
        elif is_cache:
            resolved.append(0)
        else:
            resolved.append(seq_len)

    return tuple(resolved)


def token_shape(shape: Sequence[int | None], seq_len: int) -> ResolvedShape:
    """Shape of a per-token tensor (ids, mask, positions).

    Args:
        shape: Declared dimensions of the slot.
        seq_len: Current length of the token sequence.

    Returns:
        ``(seq_len,)`` for a rank-1 slot, otherwise ``(1, seq_len)``.
    """
    if len(shape) == 1:
        return (seq_len,)
    return (1, seq_len)
