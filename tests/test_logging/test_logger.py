"""Tests for GenerationLogger and StepRecord."""

from __future__ import annotations

import logging

import pytest

from tokenloop.config import GenerationSettings
from tokenloop.generation.types import GenerationResult, StopReason
from tokenloop.logging.logger import GenerationLogger
from tokenloop.logging.types import StepRecord


def _make_record(**overrides: object) -> StepRecord:
    """Create a StepRecord with sensible defaults, overridable."""
    defaults: dict[str, object] = {
        "step": 2,
        "sequence_length": 6,
        "token_id": 42,
        "token_prob": 0.25,
        "num_candidates": 40,
        "execute_ms": 4.0,
        "sample_ms": 0.5,
        "total_ms": 5.0,
        "output_shape": "1x6x100",
        "config_hash": "abcdef1234567890",
    }
    defaults.update(overrides)
    return StepRecord(**defaults)  # type: ignore[arg-type]


def _make_logger(**overrides: object) -> GenerationLogger:
    config = GenerationSettings(_env_file=None, **overrides)  # type: ignore[call-arg]
    return GenerationLogger(config)


class TestStepRecord:
    def test_frozen(self) -> None:
        record = _make_record()
        with pytest.raises(AttributeError):
            record.token_id = 99  # type: ignore[misc]

    def test_slots(self) -> None:
        assert hasattr(_make_record(), "__slots__")


class TestGenerationLogger:
    def test_log_level_none_no_output(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="none")
        with caplog.at_level(logging.DEBUG, logger="tokenloop"):
            log.log_step(_make_record())
        assert len(caplog.records) == 0

    def test_log_level_summary_output(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="summary")
        with caplog.at_level(logging.DEBUG, logger="tokenloop"):
            log.log_step(_make_record())
        assert len(caplog.records) == 1
        msg = caplog.records[0].message
        assert "step=2" in msg
        assert "token=42" in msg
        assert "candidates=40" in msg

    def test_log_level_full_json(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="full")
        with caplog.at_level(logging.DEBUG, logger="tokenloop"):
            log.log_step(_make_record())
        msg = caplog.records[0].message
        assert msg.startswith("step_record:")
        assert '"token_id": 42' in msg
        assert '"output_shape": "1x6x100"' in msg

    def test_diagnostic_mode_stores_records(self) -> None:
        log = _make_logger(log_level="none", diagnostic_mode=True)
        log.log_step(_make_record(step=0))
        log.log_step(_make_record(step=1))
        assert [r.step for r in log.get_diagnostic_data()] == [0, 1]

    def test_no_storage_without_diagnostic_mode(self) -> None:
        log = _make_logger(log_level="none")
        log.log_step(_make_record())
        assert log.get_diagnostic_data() == []
        assert log.get_summary_stats() == {}

    def test_summary_stats(self) -> None:
        log = _make_logger(log_level="none", diagnostic_mode=True)
        log.log_step(_make_record(token_prob=0.2, total_ms=2.0, num_candidates=10))
        log.log_step(_make_record(token_prob=0.6, total_ms=6.0, num_candidates=30))
        stats = log.get_summary_stats()
        assert stats["total_steps"] == 2
        assert stats["mean_prob"] == pytest.approx(0.4)
        assert stats["min_prob"] == pytest.approx(0.2)
        assert stats["mean_candidates"] == pytest.approx(20.0)
        assert stats["max_total_ms"] == 6.0
        assert stats["mean_sample_ms"] == pytest.approx(0.5)
        assert stats["tokens_per_second"] == pytest.approx(250.0)

    def test_clear(self) -> None:
        log = _make_logger(log_level="none", diagnostic_mode=True)
        log.log_step(_make_record())
        log.clear()
        assert log.get_diagnostic_data() == []

    def test_unknown_level_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="tokenloop"):
            log = _make_logger(log_level="verbose")
        assert log.log_level == "summary"
        assert "Unknown log_level" in caplog.text


class TestRequestLogging:
    def _result(self) -> GenerationResult:
        return GenerationResult(
            token_ids=(1, 2, 3, 4),
            prompt_length=1,
            text="",
            stop_reason=StopReason.STOP_TOKEN,
            steps=3,
        )

    def test_summary_line(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="summary")
        with caplog.at_level(logging.INFO, logger="tokenloop"):
            log.log_request(self._result(), elapsed_ms=1500.0)
        msg = caplog.records[0].message
        assert "generated 3 tokens after a 1-token prompt in 3 steps (stop_token)" in msg
        assert "2.0 tok/s" in msg

    def test_none_is_silent(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="none")
        with caplog.at_level(logging.DEBUG, logger="tokenloop"):
            log.log_request(self._result(), elapsed_ms=10.0)
        assert caplog.records == []


class TestPerRequestSettings:
    def test_request_settings_share_store(self) -> None:
        log = _make_logger(log_level="none")
        request = GenerationSettings(  # type: ignore[call-arg]
            _env_file=None, log_level="none", diagnostic_mode=True
        )
        log.log_step(_make_record(step=0))
        log.log_step(_make_record(step=1), request)
        assert [r.step for r in log.get_diagnostic_data()] == [1]

    def test_request_log_level(self, caplog: pytest.LogCaptureFixture) -> None:
        log = _make_logger(log_level="none")
        request = GenerationSettings(_env_file=None, log_level="full")  # type: ignore[call-arg]
        with caplog.at_level(logging.INFO, logger="tokenloop"):
            log.log_step(_make_record(), request)
            log.log_step(_make_record())
        assert len(caplog.records) == 1
        assert caplog.records[0].message.startswith("step_record:")
