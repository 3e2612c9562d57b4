"""Configuration system for tokenloop.

Uses pydantic-settings for declarative, layered configuration:
init kwargs -> environment variables (TOKENLOOP_*) -> .env file -> field defaults.

Per-request overrides are applied via resolve_config() which creates a new
config instance without mutating the defaults. Infrastructure fields (which
engine, which model, how tensors are named) are protected from per-request
override.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from tokenloop.exceptions import ConfigValidationError
from tokenloop.sampling.types import SamplingConfig

# Fields that can be overridden per request.
_PER_REQUEST_FIELDS: frozenset[str] = frozenset(
    {
        "temperature",
        "top_k",
        "top_p",
        "repetition_penalty",
        "seed",
        "max_new_tokens",
        "stop_token_id",
        "log_level",
        "diagnostic_mode",
    }
)

# All known config field names (populated after class definition).
_ALL_FIELDS: frozenset[str] = frozenset()


class GenerationSettings(BaseSettings):
    """Configuration for tokenloop.

    Resolution order: init kwargs -> env vars (TOKENLOOP_*) -> .env file -> defaults.

    Fields are divided into two groups:
    - **Infrastructure**: engine type, model and tokenizer paths, tensor
      names and naming markers. NOT overridable per request.
    - **Generation parameters**: sampling, budget, stop token, logging.
      Overridable per request via ``resolve_config()``.
    """

    model_config = SettingsConfigDict(
        env_prefix="TOKENLOOP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        protected_namespaces=(),
    )

    # --- Infrastructure (NOT per-request overridable) ---

    engine_type: str = Field(
        default="onnxruntime",
        description="Execution engine identifier in the engine registry",
    )
    model_path: str = Field(
        default="",
        description="Path of the model file loaded by the execution engine",
    )
    tokenizer_path: str = Field(
        default="",
        description="Path of a tokenizer.json file (empty = no text codec)",
    )
    primary_input_name: str = Field(
        default="input_ids",
        description="Name of the input slot that receives the token sequence",
    )
    output_name: str = Field(
        default="logits",
        description="Name of the output holding the raw next-token scores",
    )
    ort_optimization_level: str = Field(
        default="basic",
        description="onnxruntime graph optimization: 'disabled', 'basic', 'extended', 'all'",
    )
    ort_providers: str = Field(
        default="",
        description="Comma-separated onnxruntime execution providers (empty = runtime default)",
    )

    # --- Input naming convention (NOT per-request overridable) ---

    attention_mask_markers: str = Field(
        default="attention_mask",
        description="Comma-separated substrings marking attention mask inputs",
    )
    position_ids_markers: str = Field(
        default="position_ids",
        description="Comma-separated substrings marking position id inputs",
    )
    token_type_ids_markers: str = Field(
        default="token_type_ids",
        description="Comma-separated substrings marking token type id inputs",
    )
    cache_markers: str = Field(
        default="past_key_values,past",
        description="Comma-separated substrings marking recurrent/cache state inputs",
    )

    # --- Sampling (per-request overridable) ---

    temperature: float = Field(
        default=1.0,
        description="Score divisor; values <= 0 are treated as 1.0",
    )
    top_k: int | None = Field(
        default=None,
        description="Top-k filtering (None, 0 or >= vocab size disables)",
    )
    top_p: float | None = Field(
        default=None,
        description="Nucleus sampling threshold, clamped to [0, 1] (None disables)",
    )
    repetition_penalty: float = Field(
        default=1.0,
        description="Penalty for tokens already in the history (only applied if > 1.0)",
    )
    seed: int | None = Field(
        default=None,
        description="Seed for the per-request random generator (None = OS entropy)",
    )

    # --- Decoding (per-request overridable) ---

    max_new_tokens: int = Field(
        default=128,
        ge=0,
        description="Maximum number of tokens appended to the prompt",
    )
    stop_token_id: int | None = Field(
        default=None,
        description="Token id that ends generation once sampled",
    )

    # --- Logging (per-request overridable) ---

    log_level: str = Field(
        default="summary",
        description="Logging verbosity: 'none', 'summary', 'full'",
    )
    diagnostic_mode: bool = Field(
        default=False,
        description="Store all step records in memory for analysis",
    )

    def sampling_config(self) -> SamplingConfig:
        """Return the immutable sampling parameters of this configuration."""
        return SamplingConfig(
            temperature=self.temperature,
            top_k=self.top_k,
            top_p=self.top_p,
            repetition_penalty=self.repetition_penalty,
            seed=self.seed,
        )


# Populate _ALL_FIELDS now that the class is defined.
_ALL_FIELDS = frozenset(GenerationSettings.model_fields.keys())


def split_markers(value: str) -> tuple[str, ...]:
    """Split a comma-separated marker list, dropping blanks.

    Args:
        value: Raw field value such as ``"past_key_values,past"``.

    Returns:
        Tuple of stripped, non-empty markers in their original order.
    """
    return tuple(part.strip() for part in value.split(",") if part.strip())


def validate_overrides(overrides: dict[str, Any]) -> None:
    """Validate per-request override keys without creating a config.

    Args:
        overrides: Mapping of field name to override value.

    Raises:
        ConfigValidationError: If any key is unknown or non-overridable.
    """
    for key in overrides:
        if key not in _ALL_FIELDS:
            raise ConfigValidationError(f"Unknown config field: '{key}'")
        if key not in _PER_REQUEST_FIELDS:
            raise ConfigValidationError(
                f"Field '{key}' is an infrastructure field and cannot be "
                f"overridden per request"
            )


def resolve_config(
    defaults: GenerationSettings,
    overrides: dict[str, Any] | None,
) -> GenerationSettings:
    """Create a new config instance merging defaults with per-request overrides.

    Args:
        defaults: The base configuration loaded from environment.
        overrides: Per-request field overrides, keyed by field name.

    Returns:
        A new GenerationSettings with overrides applied, or *defaults*
        itself when there is nothing to override.

    Raises:
        ConfigValidationError: If any key is unknown or non-overridable, or
            an override value fails validation.
    """
    if not overrides:
        return defaults

    validate_overrides(overrides)

    # model_copy(update=...) skips validation, so string "100" would not
    # be coerced to int 100. model_validate runs the full validator.
    merged = defaults.model_dump()
    merged.update(overrides)
    try:
        return GenerationSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigValidationError(f"Invalid override value: {exc}") from exc
