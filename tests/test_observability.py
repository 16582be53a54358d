"""
Tests for logging, metrics, health checks, configuration and the
shared registry instance.
"""

import json
import logging

import pytest

from starregistry import shared
from starregistry.config import RegistryConfig
from starregistry.core import Block, Ledger, encode_payload
from starregistry.observability import (
    MetricsCollector,
    StructuredFormatter,
    TextFormatter,
    check_health,
    get_logger,
    setup_logging,
)


def _record(**extra):
    record = logging.LogRecord(
        "starregistry.test", logging.INFO, __file__, 1, "Block %s", ("appended",), None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLogging:
    """Test structured log output."""

    def test_structured_formatter_includes_extras(self):
        output = json.loads(StructuredFormatter().format(_record(height=3, hash="ab")))

        assert output["message"] == "Block appended"
        assert output["level"] == "INFO"
        assert output["logger"] == "starregistry.test"
        assert output["height"] == 3
        assert output["hash"] == "ab"
        assert "args" not in output
        assert "msg" not in output

    def test_structured_formatter_stringifies_unserializable(self):
        output = json.loads(StructuredFormatter().format(_record(obj=object())))
        assert output["obj"].startswith("<object object")

    def test_text_formatter_appends_extras(self):
        line = TextFormatter().format(_record(height=3))
        assert "INFO" in line
        assert "starregistry.test: Block appended" in line
        assert line.endswith("(height=3)")

    def test_context_logger_moves_kwargs_into_extra(self, caplog):
        caplog.set_level(logging.INFO, logger="starregistry.ctx")
        logger = get_logger("starregistry.ctx")

        logger.info("Star registered", address="A1", height=1)

        record = caplog.records[-1]
        assert record.getMessage() == "Star registered"
        assert record.address == "A1"
        assert record.height == 1

    def test_setup_logging_honours_format(self, monkeypatch):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            monkeypatch.setenv("STARREGISTRY_LOG_FORMAT", "json")
            monkeypatch.setenv("STARREGISTRY_LOG_LEVEL", "warning")
            setup_logging()
            assert root.level == logging.WARNING
            assert isinstance(root.handlers[-1].formatter, StructuredFormatter)

            monkeypatch.setenv("STARREGISTRY_LOG_FORMAT", "text")
            setup_logging()
            assert isinstance(root.handlers[-1].formatter, TextFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestMetrics:
    """Test the in-memory metrics collector."""

    def test_counts_and_summary(self):
        metrics = MetricsCollector()
        for latency in (1.0, 2.0, 3.0, 4.0):
            metrics.record_append(latency)
        metrics.record_submission("accepted")
        metrics.record_submission("accepted")
        metrics.record_submission("rejected_timeout")
        metrics.record_decode_failure()

        summary = metrics.get_summary()

        assert summary["blocks_appended"] == 4
        assert summary["decode_failures"] == 1
        assert summary["submissions"] == {"accepted": 2, "rejected_timeout": 1}
        assert summary["append_latency_p50_ms"] == 3.0

    def test_empty_summary(self):
        summary = MetricsCollector().get_summary()
        assert summary["blocks_appended"] == 0
        assert summary["append_latency_p99_ms"] is None

    def test_latency_samples_are_bounded(self):
        metrics = MetricsCollector()
        for i in range(1500):
            metrics.record_append(float(i))
        assert len(metrics.append_latencies_ms) == 1000
        assert metrics.blocks_appended == 1500

    def test_reset(self):
        metrics = MetricsCollector()
        metrics.record_append(1.0)
        metrics.record_submission("accepted")
        metrics.reset()
        assert metrics.get_summary()["submissions"] == {}
        assert metrics.blocks_appended == 0


class TestHealth:
    """Test health checks."""

    def test_liveness_only(self):
        status = check_health()
        assert status.healthy
        assert status.checks == {"liveness": {"status": "healthy"}}

    def test_healthy_ledger(self):
        ledger = Ledger()
        status = check_health(ledger)

        assert status.healthy
        assert status.checks["block_store"]["height"] == 0
        assert status.checks["chain_integrity"]["valid"] is True

    def test_tampered_ledger_is_unhealthy(self):
        ledger = Ledger()
        ledger.append(Block.from_payload({"star": {"owner": "A1"}}))
        ledger.get_by_height(1).body = encode_payload({"star": {"owner": "B2"}})

        status = check_health(ledger)

        assert not status.healthy
        assert status.checks["chain_integrity"]["status"] == "unhealthy"
        assert status.checks["chain_integrity"]["findings"] == ["Block 1 is invalid."]


class TestRegistryConfig:
    """Test configuration loading."""

    def test_defaults(self):
        config = RegistryConfig()
        assert config.challenge_window == 300
        assert config.challenge_suffix == "starRegistry"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("STARREGISTRY_CHALLENGE_WINDOW", "60")
        monkeypatch.setenv("STARREGISTRY_CHALLENGE_SUFFIX", "skyRegistry")

        config = RegistryConfig.from_env()

        assert config.challenge_window == 60
        assert config.challenge_suffix == "skyRegistry"

    def test_from_env_defaults(self, monkeypatch):
        monkeypatch.delenv("STARREGISTRY_CHALLENGE_WINDOW", raising=False)
        monkeypatch.delenv("STARREGISTRY_CHALLENGE_SUFFIX", raising=False)
        assert RegistryConfig.from_env() == RegistryConfig()

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"challenge_window": 0},
            {"challenge_window": -5},
            {"challenge_suffix": ""},
            {"challenge_suffix": "star:Registry"},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RegistryConfig(**kwargs)


class TestSharedRegistry:
    """Test the process-wide registry instance."""

    @pytest.fixture(autouse=True)
    def fresh_shared(self):
        shared.reset()
        yield
        shared.reset()

    def test_same_instance_every_call(self):
        assert shared.get_ledger() is shared.get_ledger()
        assert shared.get_ledger().height == 0

    def test_protocol_uses_env_config(self, monkeypatch):
        monkeypatch.setenv("STARREGISTRY_CHALLENGE_WINDOW", "42")
        assert shared.get_protocol().config.challenge_window == 42

    def test_query_index_sees_shared_ledger(self):
        ledger = shared.get_ledger()
        ledger.append(Block.from_payload({"star": {"owner": "A1"}}))
        assert shared.get_query_index().stars_by_owner("A1") == [{"owner": "A1"}]

    def test_reset_builds_new_chain(self):
        first = shared.get_ledger()
        shared.reset()
        assert shared.get_ledger() is not first
