import asyncio
from typing import Dict, List, Tuple

import httpx
import pytest

PARENT_URL = "https://x/parent.json"
INVOICE_URL = "https://x/invoice.json"

PARENT_SCHEMA = {"properties": {"invoice": {"$ref": f"{INVOICE_URL}#/properties/invoice"}}}


def invoice_schema(id_type: str) -> dict:
    return {
        "$schema": "https://x/meta-schema.json",
        "type": "object",
        "properties": {
            "invoice": {
                "type": "object",
                "properties": {"id": {"type": id_type}},
                "required": ["id"],
            }
        },
        "additionalProperties": False,
    }


class SchemaServer:
    """In-memory schema host served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.delays: Dict[str, float] = {}
        self.requests: List[str] = []

    def add(self, url: str, payload, status: int = 200) -> None:
        body = payload if isinstance(payload, bytes) else httpx.Response(200, json=payload).content
        self.routes[url] = (status, body)

    def delay(self, url: str, seconds: float) -> None:
        self.delays[url] = seconds

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url in self.delays:
            await asyncio.sleep(self.delays[url])
        if url not in self.routes:
            return httpx.Response(404, request=request)
        status, body = self.routes[url]
        return httpx.Response(status, content=body, request=request)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)


@pytest.fixture()
def schema_server():
    server = SchemaServer()
    server.add(PARENT_URL, PARENT_SCHEMA)
    return server
