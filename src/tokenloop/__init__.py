"""tokenloop: autoregressive text generation over pluggable execution engines.

Binds a growing token sequence to whatever inputs an exported model
declares, runs one decode step at a time on an execution engine such as
onnxruntime, and samples the next token with repetition penalty,
temperature, top-k and top-p.
"""

from __future__ import annotations

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("tokenloop")
except PackageNotFoundError:
    __version__ = "0.0.0"

from tokenloop.config import GenerationSettings, resolve_config, validate_overrides
from tokenloop.exceptions import (
    CodecError,
    ConfigValidationError,
    EmptyCandidateSetError,
    EmptySequenceError,
    EngineExecutionError,
    EngineUnavailableError,
    MissingCapabilityError,
    TokenLoopError,
    UnsupportedScoreRankError,
    UnsupportedTensorTypeError,
)
from tokenloop.generation import DecodeState, GenerationResult, StopReason, TextGenerator
from tokenloop.sampling import SamplingConfig

__all__ = [
    "CodecError",
    "ConfigValidationError",
    "DecodeState",
    "EmptyCandidateSetError",
    "EmptySequenceError",
    "EngineExecutionError",
    "EngineUnavailableError",
    "GenerationResult",
    "GenerationSettings",
    "MissingCapabilityError",
    "SamplingConfig",
    "StopReason",
    "TextGenerator",
    "TokenLoopError",
    "UnsupportedScoreRankError",
    "UnsupportedTensorTypeError",
    "__version__",
    "resolve_config",
    "validate_overrides",
]
