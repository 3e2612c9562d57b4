"""Decode loop subsystem for tokenloop.

Runs one generation request from prompt to text over an execution engine.
"""

from tokenloop.generation.generator import TextGenerator
from tokenloop.generation.types import DecodeState, GenerationResult, StopReason

__all__ = [
    "DecodeState",
    "GenerationResult",
    "StopReason",
    "TextGenerator",
]
