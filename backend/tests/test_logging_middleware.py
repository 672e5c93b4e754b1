"""
Tests for request logging middleware and logging helpers.
"""

import json
import logging
import logging.handlers
from types import SimpleNamespace

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI, HTTPException
from fastapi.responses import StreamingResponse

from persona_chat.core.logging_config import (
    JSONFormatter,
    TurnLoggerAdapter,
    filter_sensitive_data,
    setup_logging,
    truncate_large_data,
)
from persona_chat.middleware import RequestLoggingMiddleware

MIDDLEWARE_LOGGER = "persona_chat.middleware.logging_middleware"


def build_app():
    app = FastAPI()

    @app.post("/login")
    async def login(body: dict):
        return {"access_token": "abc.def", "user": body.get("username")}

    @app.get("/fail")
    async def fail():
        raise HTTPException(status_code=404, detail="Conversation not found")

    @app.post("/stream")
    async def stream():
        async def body():
            yield "Hello "
            yield "world"
        return StreamingResponse(
            body(), media_type="text/plain; charset=utf-8", headers={"X-Conversation-Id": "c-42"}
        )

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.add_middleware(RequestLoggingMiddleware)
    return app


@pytest_asyncio.fixture
async def client():
    transport = httpx.ASGITransport(app=build_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def completed(caplog):
    return [r for r in caplog.records if r.name == MIDDLEWARE_LOGGER and "completed" in r.getMessage()]


class TestRequestLoggingMiddleware:

    @pytest.mark.asyncio
    async def test_json_bodies_are_filtered(self, client, caplog):
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)

        resp = await client.post("/login", json={"username": "alice", "password": "hunter2"})

        assert resp.status_code == 200
        assert resp.json()["access_token"] == "abc.def"
        record = completed(caplog)[0]
        fields = record.extra_fields
        assert fields["status_code"] == 200
        assert "hunter2" not in fields["request_body"]
        assert json.loads(fields["request_body"])["username"] == "alice"
        assert json.loads(fields["response_body"])["access_token"] == "***FILTERED***"

    @pytest.mark.asyncio
    async def test_streamed_body_not_buffered(self, client, caplog):
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)

        resp = await client.post("/stream")

        assert resp.text == "Hello world"
        fields = completed(caplog)[0].extra_fields
        assert fields["response_body"] is None
        assert fields["response_size"] == len("Hello world")
        assert fields["conversation_id"] == "c-42"

    @pytest.mark.asyncio
    async def test_error_reason_and_level(self, client, caplog):
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)

        resp = await client.get("/fail")

        assert resp.status_code == 404
        record = completed(caplog)[0]
        assert record.levelno == logging.WARNING
        assert record.extra_fields["error_reason"] == "Conversation not found"

    @pytest.mark.asyncio
    async def test_excluded_paths_not_logged(self, client, caplog):
        caplog.set_level(logging.INFO, logger=MIDDLEWARE_LOGGER)

        await client.get("/health")

        assert [r for r in caplog.records if r.name == MIDDLEWARE_LOGGER] == []


class TestLoggingHelpers:

    def test_filter_sensitive_data_nested(self):
        data = {"user": {"password": "x", "name": "a"}, "items": [{"api_key": "k"}], "Authorization": "Bearer t"}
        filtered = filter_sensitive_data(data)
        assert filtered["user"] == {"password": "***FILTERED***", "name": "a"}
        assert filtered["items"] == [{"api_key": "***FILTERED***"}]
        assert filtered["Authorization"] == "***FILTERED***"

    def test_truncate_large_data(self):
        assert truncate_large_data("short", max_length=10) == "short"
        truncated = truncate_large_data("x" * 20, max_length=10)
        assert truncated.startswith("x" * 10)
        assert "total length: 20" in truncated

    def test_json_formatter_includes_extra_fields(self):
        record = logging.makeLogRecord({
            "name": "persona_chat.test", "levelname": "INFO", "levelno": logging.INFO,
            "msg": "Turn started", "extra_fields": {"conversation_id": "c-1"},
        })
        payload = json.loads(JSONFormatter().format(record))
        assert payload["message"] == "Turn started"
        assert payload["conversation_id"] == "c-1"
        assert payload["level"] == "INFO"

    def test_turn_adapter_stamps_context(self, caplog):
        caplog.set_level(logging.INFO, logger="persona_chat.test")
        log = TurnLoggerAdapter(logging.getLogger("persona_chat.test"), {"user_id": "u-1"})
        log.extra["conversation_id"] = "c-1"

        log.info("Turn started")

        record = caplog.records[-1]
        assert record.getMessage() == "Turn started [user_id=u-1 conversation_id=c-1]"
        assert record.extra_fields == {"user_id": "u-1", "conversation_id": "c-1"}

    def test_setup_logging_file_handler(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        config = SimpleNamespace(
            log_level="debug",
            log_console_enabled=False,
            log_file_enabled=True,
            log_file_path=str(tmp_path / "logs" / "app.log"),
            log_json_format=True,
            log_llm_calls=False,
        )
        try:
            setup_logging(config)
            assert root.level == logging.DEBUG
            assert (tmp_path / "logs").is_dir()
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
            assert logging.getLogger("persona_chat.llm").level == logging.WARNING
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            logging.getLogger("persona_chat.llm").setLevel(logging.NOTSET)
