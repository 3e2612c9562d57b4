"""Name-based classification of declared input slots.

Exported models do not say which input is the attention mask or which one
holds cache state; the only signal is the name. All of that string matching
lives here so other export conventions only need a different
:class:`NamingConvention`.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING

from tokenloop.config import split_markers

if TYPE_CHECKING:
    from tokenloop.config import GenerationSettings


class SlotRole(enum.Enum):
    """What an input slot receives during binding."""

    PRIMARY = "primary"
    ATTENTION_MASK = "attention_mask"
    POSITION_IDS = "position_ids"
    TOKEN_TYPE_IDS = "token_type_ids"
    CACHE = "cache"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class NamingConvention:
    """Substring markers identifying each auxiliary input.

    A slot matches a role when its name contains any of that role's
    markers. Roles are tried in a fixed order: primary (exact name),
    attention mask, position ids, token type ids, cache.
    """

    attention_mask: tuple[str, ...] = ("attention_mask",)
    position_ids: tuple[str, ...] = ("position_ids",)
    token_type_ids: tuple[str, ...] = ("token_type_ids",)
    cache: tuple[str, ...] = ("past_key_values", "past")

    @classmethod
    def from_settings(cls, settings: GenerationSettings) -> NamingConvention:
        """Build the convention from the comma-separated marker fields."""
        return cls(
            attention_mask=split_markers(settings.attention_mask_markers),
            position_ids=split_markers(settings.position_ids_markers),
            token_type_ids=split_markers(settings.token_type_ids_markers),
            cache=split_markers(settings.cache_markers),
        )

    def is_cache(self, name: str) -> bool:
        """Return True if *name* denotes recurrent/cache state."""
        return _contains_any(name, self.cache)

    def classify(self, name: str, primary_name: str) -> SlotRole:
        """Return the role of the slot called *name*.

        Args:
            name: Declared input name.
            primary_name: Name of the slot receiving the token sequence.

        Returns:
            The first matching role, or ``SlotRole.OTHER``.
        """
        if name == primary_name:
            return SlotRole.PRIMARY
        if _contains_any(name, self.attention_mask):
            return SlotRole.ATTENTION_MASK
        if _contains_any(name, self.position_ids):
            return SlotRole.POSITION_IDS
        if _contains_any(name, self.token_type_ids):
            return SlotRole.TOKEN_TYPE_IDS
        if self.is_cache(name):
            return SlotRole.CACHE
        return SlotRole.OTHER


def _contains_any(name: str, markers: tuple[str, ...]) -> bool:
    return any(marker in name for marker in markers)
