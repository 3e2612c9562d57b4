"""Exception hierarchy for tokenloop.

All exceptions derive from TokenLoopError, enabling broad catch patterns
at the application boundary while allowing fine-grained handling internally.
Every error is terminal for the request that raised it; nothing is retried.
"""


class TokenLoopError(Exception):
    """Base exception for all tokenloop errors."""


class ConfigValidationError(TokenLoopError):
    """Configuration field validation failed.

    Raised when per-request overrides contain unknown keys or attempt to
    override non-overridable infrastructure fields.
    """


class MissingCapabilityError(TokenLoopError):
    """A required collaborator is not available.

    Raised when the prompt is text but no text codec is configured to
    turn it into token ids.
    """


class UnsupportedTensorTypeError(TokenLoopError, TypeError):
    """A declared input element type cannot hold integer ids or masks."""


class UnsupportedScoreRankError(TokenLoopError, ValueError):
    """The engine returned a score tensor whose rank is not 2 or 3."""


class EmptyCandidateSetError(TokenLoopError):
    """Token sampling failed.

    Raised when no candidate tokens survive repetition penalty, top-k and
    top-p filtering, making it impossible to draw a token.
    """


class EngineExecutionError(TokenLoopError):
    """The execution engine failed to run a decode step.

    Wraps the engine's own exception, which is kept as ``__cause__``.
    """


class EngineUnavailableError(TokenLoopError):
    """An execution engine could not be constructed.

    Raised when the runtime package is not installed or the model file
    does not exist.
    """


class CodecError(TokenLoopError):
    """Encoding a prompt or decoding token ids failed."""


class EmptySequenceError(TokenLoopError, ValueError):
    """The initial token sequence is empty but new tokens were requested."""
