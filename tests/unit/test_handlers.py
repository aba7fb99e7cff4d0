"""
Unit tests for job handlers.
"""

from unittest.mock import patch

import httpx
import pytest

from listqueue.types.job import JobContext
from listqueue.worker.handlers import (
    execute_job,
    get_handler,
    handle_echo,
    handle_failing_job,
    handle_http_request,
    handle_random_failure,
    handle_send_email,
    list_handlers,
    register_handler,
)


def make_context(name: str = "echo", payload=None, attempt: int = 1) -> JobContext:
    return JobContext(
        job_id="job-1",
        name=name,
        attempt=attempt,
        max_attempts=3,
        payload=payload if payload is not None else {"message": "test"},
        claimed_at=None,
        worker_id="test-worker",
    )


class TestJobHandlers:
    """Tests for job handlers."""

    def test_list_handlers(self):
        handlers = list_handlers()

        assert "echo" in handlers
        assert "sleep" in handlers
        assert "failing_job" in handlers
        assert "send_email" in handlers

    def test_get_handler_exists(self):
        assert get_handler("echo") is handle_echo

    def test_get_handler_not_exists(self):
        assert get_handler("nonexistent") is None

    async def test_echo_handler(self):
        context = make_context()

        result = await handle_echo(context)

        assert result.success is True
        assert result.output == {"echo": context.payload}

    async def test_failing_handler(self):
        result = await handle_failing_job(make_context("failing_job", attempt=2))

        assert result.success is False
        assert "attempt 2" in result.error

    async def test_random_failure_always_fails(self):
        context = make_context(
            "random_failure", {"failure_rate": 1.0, "duration_seconds": 0}
        )

        result = await handle_random_failure(context)

        assert result.success is False

    async def test_random_failure_never_fails(self):
        context = make_context(
            "random_failure", {"failure_rate": 0.0, "duration_seconds": 0}
        )

        result = await handle_random_failure(context)

        assert result.success is True

    async def test_send_email(self):
        context = make_context(
            "send_email",
            {"to": "user@example.com", "subject": "hi", "delay_seconds": 0},
        )

        result = await handle_send_email(context)

        assert result.success is True
        assert result.output == {"delivered_to": "user@example.com"}

    async def test_send_email_requires_recipient(self):
        result = await handle_send_email(make_context("send_email", {"delay_seconds": 0}))

        assert result.success is False

    async def test_http_request_requires_url(self):
        result = await handle_http_request(make_context("http_request", {}))

        assert result.success is False
        assert "url" in result.error

    async def test_http_request_transport_error(self):
        context = make_context("http_request", {"url": "http://unreachable.invalid"})

        with patch.object(
            httpx.AsyncClient,
            "request",
            side_effect=httpx.ConnectError("connection refused"),
        ):
            result = await handle_http_request(context)

        assert result.success is False
        assert "HTTP request failed" in result.error


class TestExecuteJob:
    """Tests for handler dispatch by job name."""

    async def test_execute_job_with_valid_name(self):
        result = await execute_job(make_context("echo"))

        assert result.success is True

    async def test_execute_job_with_unknown_name(self):
        result = await execute_job(make_context("nonexistent_handler"))

        assert result.success is False
        assert "No handler registered" in result.error

    async def test_execute_job_catches_handler_exceptions(self):
        @register_handler("test_explodes")
        async def explodes(context: JobContext):
            raise RuntimeError("kaboom")

        result = await execute_job(make_context("test_explodes"))

        assert result.success is False
        assert "kaboom" in result.error

    async def test_non_mapping_payload(self):
        result = await execute_job(make_context("send_email", payload=["not", "a", "dict"]))

        assert result.success is False
        assert "'to'" in result.error
