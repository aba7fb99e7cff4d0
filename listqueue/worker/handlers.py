"""
Job handlers registry and implementations.

A job's ``name`` selects its handler. Handlers must be idempotent: delivery is
at-least-once, so a job may run again after a crash or after the sweeper
reclaims a job that was slow rather than dead.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable

import httpx

from listqueue.types.job import JobContext, JobResult

logger = logging.getLogger(__name__)

# Type alias for job handler functions
JobHandler = Callable[[JobContext], Awaitable[JobResult]]

# Handler registry
_handlers: dict[str, JobHandler] = {}


def register_handler(name: str) -> Callable[[JobHandler], JobHandler]:
    """
    Decorator to register a job handler.

    Args:
        name: The job name this handler processes.

    Example:
        @register_handler("send_email")
        async def handle_send_email(context: JobContext) -> JobResult:
            ...
    """
    def decorator(handler: JobHandler) -> JobHandler:
        _handlers[name] = handler
        logger.debug(f"Registered handler for job name: {name}")
        return handler
    return decorator


def get_handler(name: str) -> JobHandler | None:
    """Get the handler for a job name, or None if none is registered."""
    return _handlers.get(name)


def list_handlers() -> list[str]:
    """List all registered job names."""
    return list(_handlers.keys())


# ============================================================================
# Built-in job handlers
# ============================================================================


@register_handler("echo")
async def handle_echo(context: JobContext) -> JobResult:
    """Return the payload unchanged."""
    return JobResult(success=True, output={"echo": context.payload})


@register_handler("sleep")
async def handle_sleep(context: JobContext) -> JobResult:
    """
    Sleep handler for testing delays.

    Payload should contain:
    - duration_seconds: How long to sleep
    """
    duration = context.data.get("duration_seconds", 1)
    await asyncio.sleep(duration)
    return JobResult(success=True, output={"slept_for": duration})


@register_handler("failing_job")
async def handle_failing_job(context: JobContext) -> JobResult:
    """
    Handler that always fails - for testing retry logic.
    """
    logger.info(
        "Failing job executing (will fail)",
        extra={"job_id": context.job_id, "attempt": context.attempt}
    )
    return JobResult(
        success=False,
        error=f"Intentional failure on attempt {context.attempt}",
    )


@register_handler("random_failure")
async def handle_random_failure(context: JobContext) -> JobResult:
    """
    Time-consuming task that fails at random.

    Payload may contain:
    - failure_rate: Probability of failure (0.0 to 1.0), default 0.5
    - duration_seconds: Simulated work time, default 5
    """
    failure_rate = context.data.get("failure_rate", 0.5)
    duration = context.data.get("duration_seconds", 5)

    await asyncio.sleep(duration)

    if random.random() < failure_rate:
        logger.warning(
            "Random failure triggered",
            extra={"job_id": context.job_id, "attempt": context.attempt}
        )
        return JobResult(
            success=False,
            error=f"Random failure on attempt {context.attempt}",
        )

    return JobResult(success=True, output={"message": "Succeeded this time!"})


@register_handler("send_email")
async def handle_send_email(context: JobContext) -> JobResult:
    """
    Mock mail delivery.

    Payload should contain:
    - to: Recipient address
    - from, subject, body: Optional message fields
    - delay_seconds: Simulated delivery time, default 1.5
    """
    data = context.data
    recipient = data.get("to")
    if not recipient:
        return JobResult(success=False, error="Missing 'to' in payload")

    await asyncio.sleep(data.get("delay_seconds", 1.5))

    logger.info(
        "Sending email",
        extra={"job_id": context.job_id, "to": recipient, "subject": data.get("subject")}
    )
    return JobResult(success=True, output={"delivered_to": recipient})


@register_handler("http_request")
async def handle_http_request(context: JobContext) -> JobResult:
    """
    Make an HTTP request.

    Payload should contain:
    - url: The URL to request
    - method: HTTP method (GET, POST, etc.)
    - headers: Optional headers
    - body: Optional request body
    """
    data = context.data
    url = data.get("url")
    method = data.get("method", "GET").upper()

    if not url:
        return JobResult(success=False, error="Missing 'url' in payload")

    try:
        async with httpx.AsyncClient() as client:
            response = await client.request(
                method=method,
                url=url,
                headers=data.get("headers", {}),
                json=data.get("body") if method in ["POST", "PUT", "PATCH"] else None,
                timeout=30.0,
            )
    except httpx.HTTPError as e:
        return JobResult(success=False, error=f"HTTP request failed: {e}")

    return JobResult(
        success=response.is_success,
        output={
            "status_code": response.status_code,
            "body": response.text[:1000],
        },
        error=None if response.is_success else f"HTTP {response.status_code}",
    )


async def execute_job(context: JobContext) -> JobResult:
    """
    Execute a job using the handler registered for its name.

    Handler exceptions are converted into failed results.
    """
    handler = get_handler(context.name)

    if handler is None:
        logger.error(
            f"No handler for job name: {context.name}",
            extra={"job_id": context.job_id}
        )
        return JobResult(
            success=False,
            error=f"No handler registered for job name: {context.name}",
        )

    try:
        return await handler(context)
    except Exception as e:
        logger.exception(
            "Handler raised exception",
            extra={"job_id": context.job_id, "error": str(e)}
        )
        return JobResult(success=False, error=f"Handler exception: {e}")
