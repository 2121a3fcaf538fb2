"""Retrieving schema documents by locator and preparing them for compilation."""
from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Mapping

import httpx
import orjson

from schemacheck.errors import SchemaFetchError
from schemacheck.fetch.session import FetchSession
from schemacheck.ingest.loader import METADATA_KEY
from schemacheck.observability.metrics import MetricsRegistry
from schemacheck.observability.tracing import log_fetch_failure, log_fetch_result, span

DEFAULT_FETCH_TIMEOUT = 5.0


def _fail(metrics: MetricsRegistry, locator: str, cause: BaseException | str, *, timed_out: bool = False) -> SchemaFetchError:
    metrics.incr("fetch_failures")
    if timed_out:
        metrics.incr("fetch_timeouts")
    log_fetch_failure(url=locator, reason=str(cause) or type(cause).__name__, timed_out=timed_out)
    return SchemaFetchError(locator, cause, timed_out=timed_out)


async def fetch_schema(
    *,
    session: FetchSession,
    locator: str,
    metrics: MetricsRegistry,
    timeout: float = DEFAULT_FETCH_TIMEOUT,
) -> Dict[str, Any]:
    """Fetch the schema document at ``locator`` within ``timeout`` seconds.

    A non-2xx response, a transport error, a timeout or a body that is not a
    JSON object all raise ``SchemaFetchError``. There is no retry.
    """
    try:
        with span(name="fetch", url=locator):
            start = time.perf_counter()
            response = await asyncio.wait_for(session.fetch(locator, timeout=timeout), timeout=timeout)
    except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
        raise _fail(metrics, locator, exc, timed_out=True) from exc
    except (httpx.HTTPError, OSError) as exc:
        raise _fail(metrics, locator, exc) from exc

    elapsed_ms = int((time.perf_counter() - start) * 1000)
    log_fetch_result(
        url=locator,
        status=response.status_code,
        bytes_read=len(response.content or b""),
        elapsed_ms=elapsed_ms,
    )
    if not response.is_success:
        raise _fail(metrics, locator, f"HTTP {response.status_code}")

    try:
        payload = orjson.loads(response.content)
    except orjson.JSONDecodeError as exc:
        raise _fail(metrics, locator, exc) from exc
    if not isinstance(payload, dict):
        raise _fail(metrics, locator, "response is not a JSON object")

    metrics.incr("schemas_fetched")
    return payload


def strip_metadata(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a shallow copy of ``document`` without its ``$schema`` key."""
    return {key: value for key, value in document.items() if key != METADATA_KEY}


def prepare_schema(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Make a fetched schema compilable.

    The ``$schema`` pointer is dropped because the compiler would otherwise try
    to dereference network-only meta-schema URIs. Applying this twice is the
    same as applying it once.
    """
    return strip_metadata(document)
