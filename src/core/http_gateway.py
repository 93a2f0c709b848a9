"""Backend gateway over the backend process's local HTTP API (httpx).

Endpoints (JSON unless noted):
    GET  /settings                 -> settings object
    PUT  /settings                 <- settings object
    GET  /dictionary               -> {"entries": [...]}
    PUT  /dictionary               <- {"entries": [...]}
    GET  /capability/legacy-reconvert -> {"available": bool}
    GET  /update                   -> {"update": null | {"version", "date", "body"}}
    POST /update/install           -> NDJSON stream of download events
    POST /relaunch                 -> 202 (process restarts)
    GET  /events/log               -> NDJSON stream of log records

Idempotent reads retry with exponential backoff; writes and the streaming
calls are attempted once so a retried write can never reorder behind a newer
one.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, Optional

import httpx

from config import settings
from .gateway import (
    BackendError,
    BackendProtocolError,
    DownloadEvent,
    LogRecordEvent,
    UpdateInfo,
    decode_download_event,
)

__all__ = ["HttpBackendGateway"]

_log = logging.getLogger(__name__)


class HttpBackendGateway:
    def __init__(
        self,
        base_url: str | None = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        retries: int | None = None,
        backoff: float | None = None,
    ) -> None:
        self._retries = retries if retries is not None else settings.DEFAULT_RETRIES
        self._backoff = backoff if backoff is not None else settings.DEFAULT_BACKOFF_FACTOR
        self._owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url or settings.BACKEND_URL,
                headers={"User-Agent": settings.DEFAULT_USER_AGENT},
                timeout=settings.DEFAULT_TIMEOUT,
            )
        self._client = client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # Request helpers
    # ------------------------------------------------------------------
    async def _get_json(self, path: str) -> Any:
        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.get(path)
                resp.raise_for_status()
                _log.debug("GET %s -> %s", path, resp.status_code)
                return _parse_json(resp)
            except (httpx.TimeoutException, httpx.HTTPError) as e:
                if attempt > self._retries:
                    raise BackendError(f"GET {path} failed after {self._retries} retries: {e}") from e
                _log.debug("GET %s attempt %d failed: %s", path, attempt, e)
                await asyncio.sleep(self._backoff * (2 ** (attempt - 1)))

    async def _send(self, method: str, path: str, payload: Any = None) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise BackendError(f"{method} {path} failed: {e}") from e
        _log.debug("%s %s -> %s", method, path, resp.status_code)
        return resp

    # ------------------------------------------------------------------
    # Settings / dictionary
    # ------------------------------------------------------------------
    async def load_settings(self) -> Dict[str, Any]:
        return _expect_object(await self._get_json("/settings"), "settings")

    async def save_settings(self, data: Dict[str, Any]) -> None:
        await self._send("PUT", "/settings", data)

    async def load_dictionary(self) -> Dict[str, Any]:
        return _expect_object(await self._get_json("/dictionary"), "dictionary")

    async def save_dictionary(self, data: Dict[str, Any]) -> None:
        await self._send("PUT", "/dictionary", data)

    # ------------------------------------------------------------------
    # Capability / updater
    # ------------------------------------------------------------------
    async def check_capability_available(self) -> bool:
        data = _expect_object(await self._get_json("/capability/legacy-reconvert"), "capability")
        available = data.get("available")
        if not isinstance(available, bool):
            raise BackendProtocolError(f"capability response without boolean 'available': {data!r}")
        return available

    async def check_for_update(self) -> Optional[UpdateInfo]:
        data = _expect_object(await self._get_json("/update"), "update")
        raw = data.get("update")
        if raw is None:
            return None
        return UpdateInfo.from_dict(raw)

    async def download_and_install_update(self, on_event: Callable[[DownloadEvent], None]) -> None:
        try:
            async with self._client.stream("POST", "/update/install", timeout=None) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    on_event(decode_download_event(_loads(line)))
        except httpx.HTTPError as e:
            raise BackendError(f"update download failed: {e}") from e

    async def relaunch_application(self) -> None:
        await self._send("POST", "/relaunch")

    # ------------------------------------------------------------------
    # Push events
    # ------------------------------------------------------------------
    async def log_events(self) -> AsyncIterator[LogRecordEvent]:
        try:
            async with self._client.stream("GET", "/events/log", timeout=None) as resp:
                resp.raise_for_status()
                async for line in resp.aiter_lines():
                    if not line.strip():
                        continue
                    yield LogRecordEvent.from_dict(_loads(line))
        except httpx.HTTPError as e:
            raise BackendError(f"log stream failed: {e}") from e


def _parse_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError as e:
        raise BackendProtocolError(f"invalid JSON from {resp.request.url}: {e}") from e


def _loads(line: str) -> Any:
    try:
        return json.loads(line)
    except ValueError as e:
        raise BackendProtocolError(f"invalid stream record {line[:60]!r}: {e}") from e


def _expect_object(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise BackendProtocolError(f"{what} response must be an object, got {type(data).__name__}")
    return data
