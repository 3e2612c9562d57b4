"""The decode loop: the integration layer for tokenloop.

Orchestrates one generation request:
    prompt -> ids -> (bind inputs -> execute -> sample -> append)* -> text.

Each step depends on the token sampled by the previous one, so a request
runs strictly sequentially. A generator owns its engine and codec; it
serves one request at a time and makes no concurrency guarantee. Callers
wanting cancellation or deadlines must stop calling between requests, since
the loop exposes no hook for it.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import TYPE_CHECKING, Any

import numpy as np

from tokenloop.codec.tokenizer import load_codec
from tokenloop.config import GenerationSettings, resolve_config
from tokenloop.engine.registry import build_engine
from tokenloop.exceptions import (
    CodecError,
    ConfigValidationError,
    EmptySequenceError,
    EngineExecutionError,
    EngineUnavailableError,
    MissingCapabilityError,
    TokenLoopError,
)
from tokenloop.generation.types import DecodeState, GenerationResult, StopReason
from tokenloop.logging.logger import GenerationLogger
from tokenloop.logging.types import StepRecord
from tokenloop.sampling.sampler import TokenSampler, make_rng
from tokenloop.tensors.binder import InputBinder
from tokenloop.tensors.naming import NamingConvention

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tokenloop.codec.base import TextCodec
    from tokenloop.engine.base import ExecutionEngine
    from tokenloop.sampling.types import SamplingConfig
    from tokenloop.tensors.types import TensorSlot

logger = logging.getLogger("tokenloop")

_SAMPLING_FIELDS = frozenset(
    {"temperature", "top_k", "top_p", "repetition_penalty", "seed"}
)


def _config_hash(config: GenerationSettings) -> str:
    """Compute a short hash of the config for logging.

    Args:
        config: The generation configuration to hash.

    Returns:
        First 16 hex characters of the SHA-256 digest of the config dump.
    """
    raw = config.model_dump_json().encode("utf-8")
    return hashlib.sha256(raw).hexdigest()[:16]


def _shape_str(array: np.ndarray) -> str:
    return "x".join(str(dim) for dim in array.shape)


def _elapsed_ms(start_ns: int) -> float:
    return (time.perf_counter_ns() - start_ns) / 1_000_000.0


class TextGenerator:
    """Autoregressive text generation over an execution engine.

    Args:
        engine: Runs the model; only ``declared_inputs`` and ``execute``
            are used.
        codec: Optional text codec. Without one, prompts must be ids and
            results fall back to a diagnostic summary.
        settings: Defaults for every generation parameter. Loaded from the
            environment when ``None``.
    """

    def __init__(
        self,
        engine: ExecutionEngine,
        codec: TextCodec | None = None,
        settings: GenerationSettings | None = None,
    ) -> None:
        self._engine = engine
        self._codec = codec
        self._settings = settings if settings is not None else GenerationSettings()
        self._binder = InputBinder(NamingConvention.from_settings(self._settings))
        self._sampler = TokenSampler()
        self._logger = GenerationLogger(self._settings)
        self._state = DecodeState.IDLE

    @classmethod
    def from_settings(cls, settings: GenerationSettings | None = None) -> TextGenerator:
        """Build the engine and (if ``tokenizer_path`` is set) the codec from settings.

        Raises:
            KeyError: If ``engine_type`` is not registered.
            EngineUnavailableError: If the engine cannot be constructed.
            CodecError: If the tokenizer file cannot be loaded.
        """
        settings = settings if settings is not None else GenerationSettings()
        engine = build_engine(settings)
        codec = load_codec(settings.tokenizer_path) if settings.tokenizer_path else None
        return cls(engine, codec, settings)

    @property
    def engine(self) -> ExecutionEngine:
        return self._engine

    @property
    def codec(self) -> TextCodec | None:
        return self._codec

    @property
    def settings(self) -> GenerationSettings:
        """Default configuration for requests."""
        return self._settings

    @property
    def state(self) -> DecodeState:
        """State of the current request, or the terminal state of the last one."""
        return self._state

    @property
    def generation_logger(self) -> GenerationLogger:
        """The diagnostic logger for this generator."""
        return self._logger

    def generate(
        self,
        prompt: str | Sequence[int],
        config: SamplingConfig | None = None,
        max_new_tokens: int | None = None,
        stop_token_id: int | None = None,
        primary_input_name: str | None = None,
        output_name: str | None = None,
        overrides: dict[str, Any] | None = None,
    ) -> GenerationResult:
        """Generate up to *max_new_tokens* tokens after *prompt*.

        Arguments left as ``None`` take their value from the settings,
        after applying *overrides*.

        Args:
            prompt: Prompt text (encoded with the codec) or token ids.
            config: Sampling parameters.
            max_new_tokens: Token budget. 0 runs no execution step at all.
            stop_token_id: Token that ends the loop once sampled. It is
                kept in the output.
            primary_input_name: Input slot receiving the token sequence.
            output_name: Engine output holding the scores.
            overrides: Per-request settings overrides (see
                :func:`~tokenloop.config.resolve_config`).

        Returns:
            GenerationResult with the full sequence and rendered text.

        Raises:
            ConfigValidationError: If *overrides* names an unknown or
                infrastructure field or holds an invalid value, if it sets
                sampling fields while *config* is given, or if the budget
                is negative.
            EngineUnavailableError: If the engine is closed or otherwise
                unavailable.
            MissingCapabilityError: If *prompt* is text and there is no codec.
            EmptySequenceError: If the prompt yields no ids and the budget
                is non-zero.
            UnsupportedTensorTypeError: If an id/mask slot is not integer.
            UnsupportedScoreRankError: If the scores are not rank 2 or 3.
            EmptyCandidateSetError: If sampling filters leave nothing.
            EngineExecutionError: If the engine fails.
            CodecError: If encoding or decoding fails.
        """
        self._state = DecodeState.IDLE
        try:
            return self._run(
                prompt,
                config,
                max_new_tokens,
                stop_token_id,
                primary_input_name,
                output_name,
                overrides,
            )
        except Exception:
            logger.debug("Generation failed in state %s", self._state.value)
            self._state = DecodeState.FAILED
            raise

    def _run(
        self,
        prompt: str | Sequence[int],
        config: SamplingConfig | None,
        max_new_tokens: int | None,
        stop_token_id: int | None,
        primary_input_name: str | None,
        output_name: str | None,
        overrides: dict[str, Any] | None,
    ) -> GenerationResult:
        t_request_ns = time.perf_counter_ns()
        settings = resolve_config(self._settings, overrides)
        request_config = None if settings is self._settings else settings
        if config is None:
            config = settings.sampling_config()
        elif overrides:
            clashing = sorted(_SAMPLING_FIELDS.intersection(overrides))
            if clashing:
                raise ConfigValidationError(
                    f"Sampling overrides {clashing} conflict with an explicit SamplingConfig"
                )
        budget = settings.max_new_tokens if max_new_tokens is None else max_new_tokens
        stop_token_id = settings.stop_token_id if stop_token_id is None else stop_token_id
        primary_input_name = primary_input_name or settings.primary_input_name
        output_name = output_name or settings.output_name
        if budget < 0:
            raise ConfigValidationError(f"max_new_tokens must be >= 0, got {budget}")
        if not self._engine.is_available:
            raise EngineUnavailableError(
                f"Execution engine {self._engine.name!r} is not available"
            )

        # --- Idle -> Encoding ---
        self._state = DecodeState.ENCODING
        ids = self._initial_ids(prompt)
        prompt_length = len(ids)

        if budget == 0:
            if self._codec is not None:
                text = self._decode(ids)
            elif isinstance(prompt, str):
                text = prompt
            else:
                text = " ".join(str(i) for i in ids)
            self._state = DecodeState.DECODED
            result = GenerationResult(
                token_ids=tuple(ids),
                prompt_length=prompt_length,
                text=text,
                stop_reason=StopReason.BUDGET_EXHAUSTED,
                steps=0,
            )
            self._logger.log_request(result, _elapsed_ms(t_request_ns), request_config)
            return result

        if not ids:
            raise EmptySequenceError("Cannot generate from an empty token sequence")

        # --- Encoding -> Stepping ---
        self._state = DecodeState.STEPPING
        rng = make_rng(config.seed)
        hash_str = _config_hash(settings)
        stop_reason = StopReason.BUDGET_EXHAUSTED
        last_output: np.ndarray | None = None
        steps = 0

        for step in range(budget):
            t_start_ns = time.perf_counter_ns()

            inputs = self._binder.bind(self._declared_inputs(), ids, primary_input_name)

            t_exec_ns = time.perf_counter_ns()
            last_output = self._execute(inputs, output_name)
            t_sample_ns = time.perf_counter_ns()

            sampled = self._sampler.sample(last_output, ids, config, rng)
            t_end_ns = time.perf_counter_ns()

            steps += 1
            ids.append(sampled.token_id)

            self._logger.log_step(
                StepRecord(
                    step=step,
                    sequence_length=len(ids) - 1,
                    token_id=sampled.token_id,
                    token_prob=sampled.token_prob,
                    num_candidates=sampled.num_candidates,
                    execute_ms=(t_sample_ns - t_exec_ns) / 1_000_000.0,
                    sample_ms=(t_end_ns - t_sample_ns) / 1_000_000.0,
                    total_ms=(t_end_ns - t_start_ns) / 1_000_000.0,
                    output_shape=_shape_str(last_output),
                    config_hash=hash_str,
                ),
                request_config,
            )

            if stop_token_id is not None and sampled.token_id == stop_token_id:
                stop_reason = StopReason.STOP_TOKEN
                break

        # --- Stepping -> Decoded ---
        if self._codec is not None:
            text = self._decode(ids)
        else:
            text = self._summary(last_output)

        self._state = DecodeState.DECODED
        result = GenerationResult(
            token_ids=tuple(ids),
            prompt_length=prompt_length,
            text=text,
            stop_reason=stop_reason,
            steps=steps,
        )
        self._logger.log_request(result, _elapsed_ms(t_request_ns), request_config)
        return result

    def _initial_ids(self, prompt: str | Sequence[int]) -> list[int]:
        """Return a fresh, mutable copy of the prompt ids."""
        if not isinstance(prompt, str):
            return [int(i) for i in prompt]
        if self._codec is None:
            raise MissingCapabilityError(
                "A text codec is required when the prompt is not given as token ids"
            )
        try:
            return [int(i) for i in self._codec.encode(prompt)]
        except TokenLoopError:
            raise
        except Exception as exc:
            raise CodecError(f"Failed to tokenize prompt: {exc}") from exc

    def _decode(self, ids: Sequence[int]) -> str:
        if self._codec is None:
            raise MissingCapabilityError("No text codec available to decode token ids")
        try:
            return self._codec.decode(ids)
        except TokenLoopError:
            raise
        except Exception as exc:
            raise CodecError(f"Failed to decode tokens: {exc}") from exc

    def _declared_inputs(self) -> list[TensorSlot]:
        try:
            return self._engine.declared_inputs()
        except TokenLoopError:
            raise
        except Exception as exc:
            raise EngineExecutionError(
                f"{self._engine.name}: failed to read declared inputs: {exc}"
            ) from exc

    def _execute(self, inputs: list[tuple[str, np.ndarray]], output_name: str) -> np.ndarray:
        try:
            outputs = self._engine.execute(inputs)
        except TokenLoopError:
            raise
        except Exception as exc:
            raise EngineExecutionError(f"{self._engine.name}: execution failed: {exc}") from exc

        if output_name not in outputs:
            available = ", ".join(sorted(outputs)) or "(none)"
            raise EngineExecutionError(
                f"{self._engine.name}: no output named {output_name!r}. Available: {available}"
            )
        return np.asarray(outputs[output_name])

    def _summary(self, output: np.ndarray | None) -> str:
        """Describe the last raw output when ids cannot be rendered as text."""
        if output is None:
            return f"[{self._engine.name}] no output"
        first = float(output.flat[0]) if output.size else 0.0
        return f"[{self._engine.name}] output shape={_shape_str(output)} first={first}"

    def close(self) -> None:
        """Release the engine."""
        self._engine.close()
