"""Factories for httpx-backed schema fetch sessions."""
from __future__ import annotations

import asyncio
import contextlib
from pathlib import Path
from typing import AsyncIterator, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx


class FetchSession:
    """Thin wrapper over ``httpx.AsyncClient`` that also serves ``file://`` URLs."""

    def __init__(self, client: Optional[httpx.AsyncClient]) -> None:
        self._client = client

    async def fetch(self, url: str, *, headers: Optional[Dict[str, str]] = None, timeout: float = 5.0) -> httpx.Response:
        """Fetch a URL returning an HTTPX response object."""
        parsed = urlparse(url)
        if parsed.scheme == "file":
            location = unquote(parsed.netloc + parsed.path) or parsed.path
            target = Path(location)
            if not target.is_absolute():
                target = Path.cwd() / target
            request = httpx.Request("GET", url)
            try:
                body = await asyncio.to_thread(target.read_bytes)
            except FileNotFoundError:
                return httpx.Response(404, request=request)
            return httpx.Response(200, content=body, request=request)
        if self._client is None:
            raise RuntimeError("No fetch session available")
        return await self._client.get(url, headers=headers, timeout=timeout)


@contextlib.asynccontextmanager
async def create_fetch_session(
    *,
    user_agent: str,
    timeout: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AsyncIterator[FetchSession]:
    """Yield a configured `FetchSession` for the duration of the context."""
    headers = {"User-Agent": user_agent, "Accept": "application/json"}
    async with httpx.AsyncClient(
        headers=headers,
        timeout=timeout,
        transport=transport,
        follow_redirects=True,
    ) as client:
        yield FetchSession(client)
