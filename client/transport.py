"""HTTP access to the file-management endpoint for the polling client."""

import logging

import httpx

from config.defaults import get_setting

log = logging.getLogger(__name__)

FILES_ENDPOINT = "/api/manage-files"


class TransportError(Exception):
    """A read failed but the server may still be reachable."""


class ServerUnreachable(TransportError):
    """The server could not be contacted at all."""


class HttpTransport:
    """Reads a session's persisted components over HTTP.

    `fetch_files` returns {component_id: {"<id>.html": ..., "<id>.css": ..., "<id>.js": ...}}.
    """

    def __init__(self, base_url=None, timeout=None, client=None):
        self.base_url = (base_url or get_setting("server_url")).rstrip("/")
        self.timeout = timeout or get_setting("poll_read_timeout")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def fetch_files(self, session_id):
        try:
            response = await self._client.post(
                FILES_ENDPOINT,
                json={"action": "getFiles", "userId": session_id},
                headers={"Cache-Control": "no-cache"},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.ConnectError as e:
            raise ServerUnreachable(f"Server unreachable at {self.base_url}: {e}") from e
        except httpx.TimeoutException as e:
            raise TransportError(f"Read timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise TransportError(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise TransportError(str(e)) from e
        except ValueError as e:
            raise TransportError(f"Invalid JSON from server: {e}") from e

        if not isinstance(payload, dict) or not payload.get("success"):
            raise TransportError(f"Server reported failure: {payload!r}"[:200])
        files = payload.get("files") or {}
        if not isinstance(files, dict):
            raise TransportError("Malformed 'files' in response")
        return files

    async def aclose(self):
        await self._client.aclose()
