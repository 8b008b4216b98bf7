"""Tests for the structured logging system (vesting_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from vesting_kernel.domain.dtos import Release, TransferDirection
from vesting_kernel.exceptions import TransferFailedError
from vesting_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Reset logging state between tests."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_log(stream: StringIO) -> dict:
    """Parse the first JSON log line from a stream."""
    line = stream.getvalue().strip().split("\n")[0]
    return json.loads(line)


def _parse_all_logs(stream: StringIO) -> list[dict]:
    """Parse all JSON log lines from a stream."""
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


# ---------------------------------------------------------------------------
# StructuredFormatter tests
# ---------------------------------------------------------------------------


class TestStructuredFormatter:
    """Tests for JSON log output format."""

    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "vesting_kernel.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("claimed", extra={"schedule_index": 3, "amount": 500})

        record = _parse_log(stream)
        assert record["schedule_index"] == 3
        assert record["amount"] == 500

    def test_big_amounts_stay_exact(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("claimed", extra={"amount": 2**200})

        assert _parse_log(stream)["amount"] == 2**200

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", beneficiary="alice")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["beneficiary"] == "alice"

    def test_exception_fields(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise ValueError("boom")
        except ValueError:
            get_logger("test").error("failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "traceback" in record

    def test_kernel_exception_code_extracted(self):
        """Kernel exceptions carry a .code attribute and structured data."""
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        from vesting_kernel.exceptions import AlreadyRevokedError

        try:
            raise AlreadyRevokedError("alice", 2)
        except AlreadyRevokedError:
            get_logger("test").error("revoke_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "ALREADY_REVOKED"
        assert record["exc_type"] == "AlreadyRevokedError"
        assert record["exc_beneficiary"] == "alice"
        assert record["exc_index"] == 2

    def test_no_context_fields_when_empty(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("bare_message")

        record = _parse_log(stream)
        assert "correlation_id" not in record
        assert "beneficiary" not in record

    def test_uuid_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info("with_uuid", extra={"event_id": uid})

        assert _parse_log(stream)["event_id"] == str(uid)

    def test_schedule_ref_from_context_and_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(beneficiary="alice"):
            get_logger("test").info("schedule_created", extra={"schedule_index": 2})
        get_logger("test").info("no_beneficiary", extra={"schedule_index": 2})

        first, second = _parse_all_logs(stream)
        assert first["schedule_ref"] == "alice#2"
        assert "schedule_ref" not in second

    def test_releases_and_enums_rendered_natively(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "payout",
            extra={"direction": TransferDirection.OUT, "release": Release(0, "TOKEN", 2**70)},
        )

        record = _parse_log(stream)
        assert record["direction"] == "out"
        assert record["release"] == {"index": 0, "asset": "TOKEN", "amount": 2**70}

    def test_transfer_failure_lists_completed_releases(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        error = TransferFailedError("out", "alice", "OTHER", 250, "frozen", (Release(0, "TOKEN", 500),))
        try:
            raise error
        except TransferFailedError:
            get_logger("test").error("claim_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_code"] == "TRANSFER_FAILED"
        assert record["exc_amount"] == 250
        assert record["exc_completed"] == [{"index": 0, "asset": "TOKEN", "amount": 500}]

    def test_valid_json_every_line(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        logs = _parse_all_logs(stream)
        # Default level is INFO, so the debug line is dropped
        assert len(logs) == 2
        for record in logs:
            assert {"ts", "level", "logger", "message"} <= record.keys()


# ---------------------------------------------------------------------------
# LogContext tests
# ---------------------------------------------------------------------------


class TestLogContext:
    """Tests for context propagation."""

    def test_set_and_get(self):
        LogContext.set(correlation_id="x", operation="claim")
        assert LogContext.get_all() == {"correlation_id": "x", "operation": "claim"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_context_manager(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner"):
            assert LogContext.get_all()["correlation_id"] == "inner"
        assert LogContext.get_all()["correlation_id"] == "outer"

    def test_bind_restores_none(self):
        """bind() restores to None if there was no previous value."""
        with LogContext.bind(correlation_id="temp"):
            assert LogContext.get_all()["correlation_id"] == "temp"
        assert "correlation_id" not in LogContext.get_all()

    def test_bind_ignores_none_values(self):
        LogContext.set(actor_id="treasury")
        with LogContext.bind(actor_id=None, operation="revoke"):
            assert LogContext.get_all() == {"actor_id": "treasury", "operation": "revoke"}

    def test_all_fields(self):
        LogContext.set(
            correlation_id="c",
            actor_id="a",
            operation="o",
            beneficiary="b",
            asset="s",
            trace_id="t",
        )
        ctx = LogContext.get_all()
        assert len(ctx) == 6
        assert ctx["asset"] == "s"

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError, match="schedule"):
            LogContext.set(schedule="alice#0")
        with pytest.raises(TypeError):
            with LogContext.bind(amount="5"):
                pass
        assert LogContext.get_all() == {}

    def test_nested_bind_restores_each_layer(self):
        with LogContext.bind(operation="claim", beneficiary="alice"):
            with LogContext.bind(operation="create_schedule", asset="TOKEN"):
                assert LogContext.get_all() == {
                    "operation": "create_schedule",
                    "beneficiary": "alice",
                    "asset": "TOKEN",
                }
            assert LogContext.get_all() == {"operation": "claim", "beneficiary": "alice"}
        assert LogContext.get_all() == {}


# ---------------------------------------------------------------------------
# configure_logging tests
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """Tests for initialization."""

    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)  # second call is no-op
        assert len(logging.getLogger("vesting_kernel").handlers) == 1

    def test_get_logger_returns_child(self):
        assert get_logger("services.accounting_engine").name == "vesting_kernel.services.accounting_engine"

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("deep.nested.module").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["message"] == "hierarchy_test"
        assert record["logger"] == "vesting_kernel.deep.nested.module"


# ---------------------------------------------------------------------------
# Engine operation logs
# ---------------------------------------------------------------------------


class TestEngineLogs:
    """Engine operations carry their caller context into every record."""

    def test_claim_logs_carry_context(self, engine, alice, clock, create_schedule, captured_logs):
        create_schedule()
        clock.advance(50)
        engine.claim(alice)

        claimed = [r for r in captured_logs() if r["message"] == "tokens_claimed"]
        assert len(claimed) == 1
        assert claimed[0]["actor_id"] == "alice"
        assert claimed[0]["operation"] == "claim"
        assert claimed[0]["released"] == {"TOKEN": 500}
        assert "operation" not in LogContext.get_all()

    def test_create_logs_correlation_id(self, create_schedule, captured_logs):
        create_schedule()

        created = [r for r in captured_logs() if r["message"] == "schedule_created"]
        assert created[0]["correlation_id"] == "test-correlation"
        assert created[0]["beneficiary"] == "alice"
        assert created[0]["total_amount"] == 1000
        assert created[0]["schedule_ref"] == "alice#0"

    def test_rejected_operation_logged(self, engine, alice, create_schedule, captured_logs):
        from vesting_kernel.exceptions import UnauthorizedError

        create_schedule()
        with pytest.raises(UnauthorizedError):
            engine.revoke(alice, "alice", 0)

        aborted = [r for r in captured_logs() if r["message"] == "operation_aborted"]
        assert aborted[0]["level"] == "WARNING"
        assert aborted[0]["exc_code"] == "UNAUTHORIZED"
