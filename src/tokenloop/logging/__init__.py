"""Diagnostic logging subsystem for tokenloop.

Provides immutable per-step records and a configurable logger that
supports none/summary/full verbosity and in-memory diagnostic mode.
"""

from tokenloop.logging.logger import GenerationLogger
from tokenloop.logging.types import StepRecord

__all__ = [
    "GenerationLogger",
    "StepRecord",
]
