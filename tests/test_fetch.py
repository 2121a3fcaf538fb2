import asyncio

import httpx
import pytest

from schemacheck.errors import SchemaFetchError
from schemacheck.fetch.fetcher import fetch_schema, prepare_schema
from schemacheck.fetch.session import FetchSession
from schemacheck.observability.metrics import MetricsRegistry


class SequenceSession(FetchSession):
    def __init__(self, responses):
        super().__init__(client=None)
        self._responses = list(responses)

    async def fetch(self, url: str, *, headers=None, timeout: float = 5.0) -> httpx.Response:  # type: ignore[override]
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        status, body = item
        return httpx.Response(status, content=body, request=httpx.Request("GET", url))


class SlowSession(FetchSession):
    def __init__(self, seconds: float):
        super().__init__(client=None)
        self._seconds = seconds

    async def fetch(self, url: str, *, headers=None, timeout: float = 5.0) -> httpx.Response:  # type: ignore[override]
        await asyncio.sleep(self._seconds)
        return httpx.Response(200, json={}, request=httpx.Request("GET", url))


def _fetch(session, metrics, timeout=5.0):
    return asyncio.run(
        fetch_schema(session=session, locator="https://x/s.json", metrics=metrics, timeout=timeout)
    )


def test_fetch_returns_json_object():
    metrics = MetricsRegistry()
    session = SequenceSession([(200, b'{"type": "object"}')])
    assert _fetch(session, metrics) == {"type": "object"}
    assert metrics.get("schemas_fetched") == 1


@pytest.mark.parametrize(
    "item",
    [
        (404, b"not found"),
        (500, b'{"type": "object"}'),
        (200, b"<html>maintenance</html>"),
        (200, b'["not", "an", "object"]'),
        httpx.ConnectError("connection refused"),
    ],
)
def test_fetch_failures_are_schema_fetch_errors(item):
    metrics = MetricsRegistry()
    with pytest.raises(SchemaFetchError) as excinfo:
        _fetch(SequenceSession([item]), metrics)
    assert excinfo.value.locator == "https://x/s.json"
    assert not excinfo.value.timed_out
    assert metrics.get("fetch_failures") == 1
    assert metrics.get("schemas_fetched") == 0


def test_slow_fetch_times_out():
    metrics = MetricsRegistry()
    with pytest.raises(SchemaFetchError) as excinfo:
        _fetch(SlowSession(1.0), metrics, timeout=0.05)
    assert excinfo.value.timed_out
    assert isinstance(excinfo.value.cause, asyncio.TimeoutError)
    assert metrics.get("fetch_timeouts") == 1


def test_transport_timeout_is_reported_as_timeout():
    metrics = MetricsRegistry()
    with pytest.raises(SchemaFetchError) as excinfo:
        _fetch(SequenceSession([httpx.ReadTimeout("read timed out")]), metrics)
    assert excinfo.value.timed_out
    assert isinstance(excinfo.value.cause, httpx.TimeoutException)


def test_fetch_file_scheme(tmp_path):
    schema_path = tmp_path / "invoice.json"
    schema_path.write_text('{"type": "object"}', encoding="utf-8")
    metrics = MetricsRegistry()

    async def _run():
        session = FetchSession(client=None)
        found = await fetch_schema(session=session, locator=f"file://{schema_path}", metrics=metrics)
        assert found == {"type": "object"}
        with pytest.raises(SchemaFetchError):
            await fetch_schema(session=session, locator=f"file://{tmp_path / 'absent.json'}", metrics=metrics)

    asyncio.run(_run())


def test_prepare_schema_strips_metadata_idempotently():
    schema = {"$schema": "https://x/meta.json", "type": "object"}
    once = prepare_schema(schema)
    assert once == {"type": "object"}
    assert prepare_schema(once) == once
    assert schema["$schema"] == "https://x/meta.json"


def test_unreadable_file_scheme_is_a_fetch_error(tmp_path):
    metrics = MetricsRegistry()

    async def _run():
        await fetch_schema(session=FetchSession(client=None), locator=f"file://{tmp_path}", metrics=metrics)

    with pytest.raises(SchemaFetchError) as excinfo:
        asyncio.run(_run())
    assert isinstance(excinfo.value.cause, IsADirectoryError)
    assert not excinfo.value.timed_out
    assert excinfo.value.exit_code == 3
    assert metrics.get("fetch_failures") == 1
