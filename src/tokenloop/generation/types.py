"""Data types for the decode loop."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class DecodeState(enum.Enum):
    """Lifecycle of one generation request.

    ``IDLE -> ENCODING -> STEPPING -> DECODED``, or ``FAILED`` from any
    non-terminal state. The zero-budget path goes straight from
    ``ENCODING`` to ``DECODED``.
    """

    IDLE = "idle"
    ENCODING = "encoding"
    STEPPING = "stepping"
    DECODED = "decoded"
    FAILED = "failed"


class StopReason(enum.Enum):
    """Why the decode loop ended."""

    BUDGET_EXHAUSTED = "budget_exhausted"
    STOP_TOKEN = "stop_token"


@dataclass(frozen=True, slots=True)
class GenerationResult:
    """Outcome of a successful generation request.

    Attributes:
        token_ids: The full sequence, prompt ids followed by generated ids.
        prompt_length: Number of leading ids that came from the prompt.
        text: Decoded text, or a diagnostic summary when no codec is
            available to render ids.
        stop_reason: Whether the budget ran out or the stop token appeared.
        steps: Number of execution calls made.
    """

    token_ids: tuple[int, ...]
    prompt_length: int
    text: str
    stop_reason: StopReason
    steps: int

    @property
    def new_token_ids(self) -> tuple[int, ...]:
        """Ids appended by the decode loop (stop token included)."""
        return self.token_ids[self.prompt_length :]
