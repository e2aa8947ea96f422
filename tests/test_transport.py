"""Tests for client.transport: httpx.MockTransport, no sockets."""

import asyncio
import json

import httpx
import pytest

from client.transport import HttpTransport, ServerUnreachable, TransportError

BASE = "http://testserver"


def _transport(handler):
    client = httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler))
    return HttpTransport(base_url=BASE, client=client)


def _fetch(transport, session_id="user_1"):
    async def _run():
        try:
            return await transport.fetch_files(session_id)
        finally:
            await transport.aclose()
    return asyncio.run(_run())


def test_fetch_files_posts_get_files_action():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        files = {"hero": {"hero.html": "<h1>", "hero.css": "", "hero.js": ""}}
        return httpx.Response(200, json={"success": True, "files": files, "components": ["hero"]})

    files = _fetch(_transport(handler))
    assert seen["path"] == "/api/manage-files"
    assert seen["body"] == {"action": "getFiles", "userId": "user_1"}
    assert files["hero"]["hero.html"] == "<h1>"


def test_connect_error_is_unreachable():
    def handler(request):
        raise httpx.ConnectError("Connection refused", request=request)

    with pytest.raises(ServerUnreachable):
        _fetch(_transport(handler))


def test_http_error_status():
    with pytest.raises(TransportError, match="HTTP 500") as exc_info:
        _fetch(_transport(lambda request: httpx.Response(500, json={"error": "boom"})))
    assert not isinstance(exc_info.value, ServerUnreachable)


def test_invalid_json():
    with pytest.raises(TransportError, match="Invalid JSON"):
        _fetch(_transport(lambda request: httpx.Response(200, content=b"<html>")))


def test_unsuccessful_payload():
    with pytest.raises(TransportError):
        _fetch(_transport(lambda request: httpx.Response(200, json={"success": False})))


def test_read_timeout():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(TransportError, match="timed out"):
        _fetch(_transport(handler))
