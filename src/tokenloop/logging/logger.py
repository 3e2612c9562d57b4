"""Per-step and per-request logging for the decode loop.

Everything goes to the ``"tokenloop"`` logger. The verbosity is taken from
the active settings, so a per-request ``log_level`` override silences (or
expands) only that request.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tokenloop.config import GenerationSettings
    from tokenloop.generation.types import GenerationResult
    from tokenloop.logging.types import StepRecord

logger = logging.getLogger("tokenloop")

_LEVELS = ("none", "summary", "full")


class GenerationLogger:
    """Emits one log event per decode step and one per finished request.

    ``log_level`` selects the output:

    ``"none"``
        Nothing is logged. Step records are still kept when
        ``diagnostic_mode`` is set.
    ``"summary"``
        A single ``step=...`` line per step and a ``generated ...`` line
        per request.
    ``"full"``
        The whole step record as JSON, plus the request line.

    With ``diagnostic_mode`` every :class:`StepRecord` is kept in memory
    until :meth:`clear` is called; see :meth:`get_summary_stats`.

    The settings given at construction are the defaults. A request running
    with overridden settings passes them to :meth:`log_step` and
    :meth:`log_request`, and its records land in the same store.
    """

    def __init__(self, config: GenerationSettings) -> None:
        self._log_level = _checked_level(config.log_level)
        self._diagnostic_mode = config.diagnostic_mode
        self._records: list[StepRecord] = []

    @property
    def log_level(self) -> str:
        return self._log_level

    def _options(self, config: GenerationSettings | None) -> tuple[str, bool]:
        if config is None:
            return self._log_level, self._diagnostic_mode
        return _checked_level(config.log_level), config.diagnostic_mode

    def log_step(self, record: StepRecord, config: GenerationSettings | None = None) -> None:
        """Record one decode step.

        Args:
            record: The finished step.
            config: Settings of the running request, when they differ from
                the defaults.
        """
        log_level, diagnostic_mode = self._options(config)
        if diagnostic_mode:
            self._records.append(record)

        if log_level == "summary":
            logger.info(
                "step=%d len=%d token=%d prob=%.4f candidates=%d "
                "execute=%.2fms sample=%.2fms total=%.2fms",
                record.step,
                record.sequence_length,
                record.token_id,
                record.token_prob,
                record.num_candidates,
                record.execute_ms,
                record.sample_ms,
                record.total_ms,
            )
        elif log_level == "full":
            logger.info("step_record: %s", json.dumps(asdict(record), default=str))

    def log_request(
        self,
        result: GenerationResult,
        elapsed_ms: float,
        config: GenerationSettings | None = None,
    ) -> None:
        """Record the end of a request.

        Args:
            result: The finished generation.
            elapsed_ms: Wall time of the whole request, encoding and
                decoding included.
            config: Settings of the running request, when they differ from
                the defaults.
        """
        log_level, _ = self._options(config)
        if log_level == "none":
            return
        new_tokens = len(result.new_token_ids)
        rate = new_tokens / (elapsed_ms / 1000.0) if elapsed_ms > 0 else 0.0
        logger.info(
            "generated %d tokens after a %d-token prompt in %d steps (%s) "
            "%.1fms, %.1f tok/s",
            new_tokens,
            result.prompt_length,
            result.steps,
            result.stop_reason.value,
            elapsed_ms,
            rate,
        )

    def get_diagnostic_data(self) -> list[StepRecord]:
        """Stored step records, oldest first (empty unless diagnostic mode)."""
        return list(self._records)

    def clear(self) -> None:
        """Drop all stored step records."""
        self._records.clear()

    def get_summary_stats(self) -> dict[str, Any]:
        """Aggregate the stored step records.

        Returns:
            Step count, probability and candidate means, timing means and
            maxima, and the decode throughput in tokens per second. Empty
            if nothing is stored.
        """
        if not self._records:
            return {}

        count = len(self._records)
        probs = [r.token_prob for r in self._records]
        total_ms = sum(r.total_ms for r in self._records)
        return {
            "total_steps": count,
            "mean_prob": sum(probs) / count,
            "min_prob": min(probs),
            "mean_candidates": sum(r.num_candidates for r in self._records) / count,
            "mean_execute_ms": sum(r.execute_ms for r in self._records) / count,
            "mean_sample_ms": sum(r.sample_ms for r in self._records) / count,
            "mean_total_ms": total_ms / count,
            "max_total_ms": max(r.total_ms for r in self._records),
            "tokens_per_second": count / (total_ms / 1000.0) if total_ms > 0 else 0.0,
        }


def _checked_level(level: str) -> str:
    if level in _LEVELS:
        return level
    logger.warning("Unknown log_level %r, falling back to 'summary'", level)
    return "summary"
