"""Fake upstream responses shared by the resolver tests."""

import asyncio

import httpx

from linkmeta.services.fetcher import PRIMARY_USER_AGENT


class EndlessStream(httpx.AsyncByteStream):
    """Response body that never finishes: ``head`` then ``filler`` forever."""

    def __init__(self, head: bytes, filler: bytes = b"x" * 1024):
        self.head = head
        self.filler = filler
        self.sent = 0

    async def __aiter__(self):
        self.sent += len(self.head)
        yield self.head
        while True:
            self.sent += len(self.filler)
            yield self.filler


class ChunkedStream(httpx.AsyncByteStream):
    """Response body delivered as the given chunks."""

    def __init__(self, *chunks: bytes):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk


class HangingStream(httpx.AsyncByteStream):
    """Response body that sends ``head`` and then stalls."""

    def __init__(self, head: bytes = b"<!DOCTYPE html><html><head>"):
        self.head = head

    async def __aiter__(self):
        yield self.head
        await asyncio.sleep(3600)


def html_response(
    body: str | bytes,
    status_code: int = 200,
    content_type: str = "text/html; charset=utf-8",
) -> httpx.Response:
    content = body.encode("utf-8") if isinstance(body, str) else body
    return httpx.Response(status_code, headers={"content-type": content_type}, content=content)


def is_primary(request: httpx.Request) -> bool:
    return request.headers.get("user-agent") == PRIMARY_USER_AGENT
