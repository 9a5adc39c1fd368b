"""Tests for structured logging and request tracing."""

import asyncio
import json
import logging
import sys

import pytest

from src.logging_config.config import LogFormat, LoggingConfig, LogLevel
from src.logging_config.context import (
    RequestContext,
    generate_request_id,
    get_actor_id,
    get_context_dict,
    get_request_id,
)
from src.logging_config.middleware import (
    ACTOR_ID_HEADER,
    REQUEST_ID_HEADER,
    RequestTracingMiddleware,
    scope_header,
)
from src.logging_config.performance import log_performance
from src.logging_config.setup import ConsoleFormatter, StructuredFormatter, configure_logging


def _record(msg="test", level=logging.INFO, name="test", lineno=1, exc_info=None, **extra):
    record = logging.LogRecord(
        name=name, level=level, pathname="test.py",
        lineno=lineno, msg=msg, args=(), exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestLoggingConfig:

    def test_defaults(self):
        config = LoggingConfig()
        assert config.level == LogLevel.INFO
        assert config.format == LogFormat.JSON
        assert config.slow_threshold_ms == 500.0
        assert config.service_name == "workroom"
        assert config.exclude_paths == ["/health"]
        assert "sqlalchemy.engine" in config.quiet_loggers


class TestRequestContext:

    def test_request_ids_unique(self):
        assert len({generate_request_id() for _ in range(50)}) == 50

    def test_binds_and_restores(self):
        with RequestContext(request_id="req-1", actor_id="u1"):
            assert get_request_id() == "req-1"
            assert get_actor_id() == "u1"
        assert get_request_id() == ""
        assert get_actor_id() == ""
        assert get_context_dict() == {}

    def test_generates_missing_request_id(self):
        with RequestContext() as ctx:
            assert ctx.request_id
            assert get_request_id() == ctx.request_id

    def test_extra_fields_and_empty_values_dropped(self):
        with RequestContext(request_id="r1", workspace_id="ws-1"):
            assert get_context_dict() == {"request_id": "r1", "workspace_id": "ws-1"}

    def test_nesting(self):
        with RequestContext(request_id="outer"):
            with RequestContext(request_id="inner"):
                assert get_request_id() == "inner"
            assert get_request_id() == "outer"


class TestStructuredFormatter:

    def test_json_line(self):
        parsed = json.loads(StructuredFormatter().format(_record("Member added", name="src.workspaces")))
        assert parsed["message"] == "Member added"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "src.workspaces"
        assert parsed["service"] == "workroom"
        assert "timestamp" in parsed

    def test_caller(self):
        assert json.loads(StructuredFormatter().format(_record(lineno=42)))["caller"].endswith(":42")
        assert "caller" not in json.loads(StructuredFormatter(include_caller=False).format(_record()))

    def test_request_context_and_domain_fields(self):
        record = _record(workspace_id="ws-1", invitation_id="inv-1", duration_ms=42.5)
        with RequestContext(request_id="req-9", actor_id="u1"):
            parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["request_id"] == "req-9"
        assert parsed["actor_id"] == "u1"
        assert parsed["workspace_id"] == "ws-1"
        assert parsed["invitation_id"] == "inv-1"
        assert parsed["duration_ms"] == 42.5

    def test_exception(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record("failed", level=logging.ERROR, exc_info=sys.exc_info())
        parsed = json.loads(StructuredFormatter().format(record))
        assert parsed["exception"]["type"] == "ValueError"
        assert parsed["exception"]["message"] == "boom"


class TestConsoleFormatter:

    def test_line(self):
        output = ConsoleFormatter().format(_record("hello", name="src.api", workspace_id="ws-1"))
        assert "src.api: hello" in output
        assert "workspace_id=ws-1" in output

    def test_context(self):
        with RequestContext(request_id="abc"):
            assert "request_id=abc" in ConsoleFormatter().format(_record())

    def test_error_is_red(self):
        assert "\033[31m" in ConsoleFormatter().format(_record(level=logging.ERROR))


class TestConfigureLogging:

    def test_json(self):
        configure_logging(LoggingConfig(format=LogFormat.JSON))
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)

    def test_console_and_level(self):
        configure_logging(LoggingConfig(format=LogFormat.CONSOLE, level=LogLevel.DEBUG))
        root = logging.getLogger()
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)
        assert root.level == logging.DEBUG

    def test_quiets_sqlalchemy(self):
        configure_logging()
        assert logging.getLogger("sqlalchemy.engine").level >= logging.WARNING

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WORKROOM_LOG_LEVEL", "debug")
        monkeypatch.setenv("WORKROOM_LOG_FORMAT", "CONSOLE")
        configure_logging(LoggingConfig(level=LogLevel.ERROR, format=LogFormat.JSON))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, ConsoleFormatter)


class TestPerformanceLogging:

    def test_returns_result_and_keeps_metadata(self):
        @log_performance(threshold_ms=10000)
        def provision():
            """Create the default workspace."""
            return 42

        assert provision() == 42
        assert provision.__name__ == "provision"
        assert provision.__doc__ == "Create the default workspace."

    def test_unexpected_exception_logged_at_error(self, caplog):
        @log_performance(threshold_ms=10000, logger_name="perf.test")
        def failing():
            raise ValueError("db down")

        with caplog.at_level(logging.DEBUG, logger="perf.test"):
            with pytest.raises(ValueError):
                failing()
        assert any(r.levelno == logging.ERROR and "failed" in r.message for r in caplog.records)

    def test_expected_exception_logged_at_info(self, caplog):
        @log_performance(threshold_ms=10000, logger_name="perf.test", expected=(KeyError,))
        def rejecting():
            raise KeyError("gone")

        with caplog.at_level(logging.DEBUG, logger="perf.test"):
            with pytest.raises(KeyError):
                rejecting()
        assert any(r.levelno == logging.INFO and "rejected" in r.message for r in caplog.records)
        assert not any(r.levelno >= logging.ERROR for r in caplog.records)

    def test_slow_call_logged_at_warning(self, caplog):
        @log_performance(threshold_ms=0, logger_name="perf.test")
        def slow():
            return "ok"

        with caplog.at_level(logging.DEBUG, logger="perf.test"):
            slow()
        assert any(r.levelno == logging.WARNING and "Slow operation" in r.message for r in caplog.records)


def _run(middleware, path="/v1/workspaces", headers=()):
    sent = []

    async def receive():
        return {"type": "http.request", "body": b""}

    async def send(message):
        sent.append(message)

    scope = {"type": "http", "method": "GET", "path": path, "headers": list(headers)}
    asyncio.run(middleware(scope, receive, send))
    return sent


class TestRequestTracingMiddleware:

    @staticmethod
    def _app(seen):
        async def app(scope, receive, send):
            seen["request_id"] = get_request_id()
            seen["actor_id"] = get_actor_id()
            await send({"type": "http.response.start", "status": 404, "headers": []})
            await send({"type": "http.response.body", "body": b""})
        return app

    def test_header_constants(self):
        assert REQUEST_ID_HEADER == "X-Request-ID"
        assert ACTOR_ID_HEADER == "X-User-Id"

    def test_scope_header(self):
        scope = {"headers": [(b"x-user-id", b" u1 "), (b"x-empty", b"")]}
        assert scope_header(scope, "X-User-Id") == "u1"
        assert scope_header(scope, "X-Empty") is None
        assert scope_header(scope, "X-Missing") is None

    def test_propagates_and_echoes_request_id(self, caplog):
        seen = {}
        middleware = RequestTracingMiddleware(self._app(seen))
        headers = [(b"x-request-id", b"req-7"), (b"x-user-id", b"u2")]

        with caplog.at_level(logging.INFO, logger="src.logging_config.middleware"):
            sent = _run(middleware, headers=headers)

        assert seen == {"request_id": "req-7", "actor_id": "u2"}
        assert (b"x-request-id", b"req-7") in sent[0]["headers"]
        [record] = caplog.records
        assert record.levelno == logging.WARNING
        assert record.status_code == 404
        assert record.message == "GET /v1/workspaces -> 404"

    def test_generates_request_id(self):
        seen = {}
        sent = _run(RequestTracingMiddleware(self._app(seen)))
        echoed = dict(sent[0]["headers"])[b"x-request-id"].decode()
        assert echoed == seen["request_id"]
        assert echoed

    def test_excluded_path_not_logged(self, caplog):
        with caplog.at_level(logging.INFO, logger="src.logging_config.middleware"):
            _run(RequestTracingMiddleware(self._app({})), path="/health")
        assert caplog.records == []
