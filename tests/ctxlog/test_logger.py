"""
End-to-end tests for the logger.

Tests verify:
- One newline-terminated JSON record per call
- The ambient context is merged into the record
- Settings (service fallback, stack toggle, output stream) are honoured
"""

import asyncio
import io
import json

import pytest

from ctxlog import LogContext, configure_logging, logger, with_log_context
from ctxlog.logger import Logger, get_logger


class TestLoggerOutput:
    def test_info_without_context(self, captured):
        captured.logger.info("hello")

        assert len(captured.lines) == 1
        record = captured.last
        assert record["level"] == "info"
        assert record["message"] == "hello"
        assert record["details"]["timestamp"]
        for key in ("tags", "category", "metadata", "stack"):
            assert key not in record["details"]
        assert "sessionId" not in record

    def test_newline_terminated(self, captured):
        captured.logger.info("a")
        captured.logger.info("b")

        assert captured.stream.getvalue().endswith("\n")
        assert [r["message"] for r in captured.records] == ["a", "b"]

    @pytest.mark.parametrize("level", ["debug", "info", "warn", "error", "verbose"])
    def test_every_level(self, captured, level):
        getattr(captured.logger, level)(f"{level} message")

        assert captured.last["level"] == level
        assert captured.last["message"] == f"{level} message"

    def test_error_with_exception(self, captured):
        try:
            raise ValueError("x")
        except ValueError as e:
            captured.logger.error("failed", e)

        record = captured.last
        assert "failed" in record["message"]
        assert "x" in record["message"]
        assert "ValueError: x" in record["details"]["stack"]

    def test_single_exception_argument(self, captured):
        captured.logger.warn(RuntimeError("disk almost full "))

        assert captured.last["message"] == "disk almost full"
        assert captured.last["details"]["stack"]

    def test_non_serializable_message_falls_back_to_repr(self, captured):
        class Opaque:
            def __repr__(self):
                return "<Opaque>"

        captured.logger.info(Opaque())

        assert captured.last["message"] == "<Opaque>"

    def test_structured_message(self, captured):
        captured.logger.debug({"rows": 10})

        assert captured.last["message"] == {"rows": 10}


class TestLoggerContext:
    def test_context_fields_included(self, captured, request_context):
        with_log_context(request_context, lambda: captured.logger.info("contextual message"))

        record = captured.last
        assert record["sessionId"] == "req-123"
        assert record["details"]["category"] == "http-request"
        assert record["details"]["tags"] == ["api", "user-service"]
        assert record["details"]["metadata"] == {"userId": "456", "endpoint": "/api/users"}

    def test_session_and_tags(self, captured):
        ctx = LogContext.create(session_id="s1", tags=["a"])

        with_log_context(ctx, lambda: captured.logger.info("hi"))

        assert captured.last["sessionId"] == "s1"
        assert captured.last["details"]["tags"] == ["a"]

    def test_nested_context(self, captured, request_context):
        def outer():
            captured.logger.info("outer")
            enriched = request_context.with_tags("database").with_metadata({"operation": "SELECT"})
            with_log_context(enriched, lambda: captured.logger.debug("inner"))
            captured.logger.info("after")

        with_log_context(request_context, outer)
        captured.logger.info("outside")

        outer_rec, inner_rec, after_rec, outside_rec = captured.records
        assert "database" not in outer_rec["details"]["tags"]
        assert "database" in inner_rec["details"]["tags"]
        assert inner_rec["details"]["metadata"]["operation"] == "SELECT"
        assert after_rec["details"] == {**outer_rec["details"], "timestamp": after_rec["details"]["timestamp"]}
        assert "sessionId" not in outside_rec

    def test_transaction_service_and_source_records(self, captured):
        ctx = (
            LogContext.create()
            .with_transaction_id("tx-9")
            .with_service("ingest")
            .with_source_records([("filings", "f-1")])
        )

        with_log_context(ctx, lambda: captured.logger.info("ingested"))

        assert captured.last["transactionId"] == "tx-9"
        assert captured.last["details"]["service"] == "ingest"
        assert captured.last["details"]["sourceRecords"] == ["filings:f-1"]

    @pytest.mark.asyncio
    async def test_concurrent_requests_log_their_own_context(self, captured):
        async def handle(user_id: str):
            captured.logger.info(f"start {user_id}")
            await asyncio.sleep(0.01)
            captured.logger.info(f"end {user_id}")

        await asyncio.gather(
            *(
                with_log_context(LogContext.create(session_id=f"req-{uid}"), handle, uid)
                for uid in ("1", "2", "3")
            )
        )

        records = captured.records
        assert len(records) == 6
        for record in records:
            assert record["message"].split()[1] == record["sessionId"].removeprefix("req-")


class TestLoggerSettings:
    def test_service_fallback(self, captured):
        configure_logging(service="billing")

        captured.logger.info("x")

        assert captured.last["details"]["service"] == "billing"

    def test_service_from_environment(self, captured, monkeypatch):
        monkeypatch.setenv("CTXLOG_SERVICE", "from-env")

        captured.logger.info("x")

        assert captured.last["details"]["service"] == "from-env"

    def test_stack_disabled(self, captured):
        configure_logging(include_stack=False)

        captured.logger.error("failed", ValueError("x"))

        assert "stack" not in captured.last["details"]
        assert captured.last["message"] == "failed x"


class TestDefaultLogger:
    def test_writes_to_stdout(self, capsys):
        logger.info("hello")

        out = capsys.readouterr().out
        assert out.endswith("\n")
        assert json.loads(out)["message"] == "hello"

    def test_stderr_stream(self, capsys, monkeypatch):
        monkeypatch.setenv("CTXLOG_STREAM", "stderr")

        logger.info("to stderr")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert json.loads(captured.err)["message"] == "to stderr"

    def test_configured_output(self, captured):
        configure_logging(output=captured.stream)

        logger.info("redirected")

        assert captured.last["message"] == "redirected"

    def test_get_logger(self, captured):
        assert get_logger() is logger
        bound = get_logger(captured.stream)
        assert isinstance(bound, Logger)

        bound.info("bound")

        assert captured.last["message"] == "bound"

    def test_wrong_arity(self):
        with pytest.raises(TypeError):
            logger.info()  # type: ignore[call-arg]
        with pytest.raises(TypeError):
            logger.info("a", "b", "c")  # type: ignore[call-arg]


class TestWrappedLoggerReuse:
    def test_reused_across_calls(self, captured):
        captured.logger.info("first")
        bound = captured.logger._wrapped()
        captured.logger.info("second")

        assert captured.logger._wrapped() is bound
        assert len(captured.records) == 2

    def test_rebuilt_when_stream_changes(self, captured):
        default = Logger()
        configure_logging(output=captured.stream)
        default.info("to first stream")
        first = default._wrapped()

        other = io.StringIO()
        configure_logging(output=other, force=True)
        default.info("to second stream")

        assert default._wrapped() is not first
        assert captured.last["message"] == "to first stream"
        assert json.loads(other.getvalue())["message"] == "to second stream"
