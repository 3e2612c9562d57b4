"""Data types for the diagnostic logging subsystem."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class StepRecord:
    """Immutable record of a single decode step.

    Attributes:
        step: Zero-based index of the step within the request.
        sequence_length: Length of the token sequence fed to the engine.
        token_id: Vocabulary index of the sampled token.
        token_prob: Probability of the token within the final candidates.
        num_candidates: Number of tokens surviving filtering.
        execute_ms: Time spent in the engine's execute call (milliseconds).
        sample_ms: Time spent sampling (milliseconds).
        total_ms: Total time for the step, binding included (milliseconds).
        output_shape: Shape of the raw score tensor, e.g. ``"1x4x32000"``.
        config_hash: 16-char SHA-256 prefix of the active config.
    """

    # Position
    step: int
    sequence_length: int

    # Selection
    token_id: int
    token_prob: float
    num_candidates: int

    # Timing
    execute_ms: float
    sample_ms: float
    total_ms: float

    # Output and config snapshot
    output_shape: str
    config_hash: str
