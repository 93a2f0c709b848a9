"""Backend RPC boundary consumed by the control layer.

The backend process owns persistence, the capability check, the updater and
the log stream. This module only defines the contract (``PersistenceGateway``),
the transient value types crossing it and the error types raised by
implementations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Mapping, Optional, Protocol, Union

__all__ = [
    "BackendError",
    "BackendProtocolError",
    "UpdateInfo",
    "DownloadStarted",
    "DownloadProgress",
    "DownloadFinished",
    "DownloadEvent",
    "decode_download_event",
    "LogRecordEvent",
    "PersistenceGateway",
]


class BackendError(RuntimeError):
    """A backend call was rejected, timed out or could not be delivered."""


class BackendProtocolError(BackendError):
    """The backend answered with a payload the client cannot interpret."""


@dataclass(frozen=True)
class UpdateInfo:
    version: str
    date: Optional[str] = None
    body: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UpdateInfo":
        version = data.get("version") if isinstance(data, Mapping) else None
        if not isinstance(version, str) or not version:
            raise BackendProtocolError(f"update info without version: {data!r}")
        return cls(version=version, date=data.get("date"), body=data.get("body"))


@dataclass(frozen=True)
class DownloadStarted:
    total_bytes: Optional[int]


@dataclass(frozen=True)
class DownloadProgress:
    chunk_bytes: int


@dataclass(frozen=True)
class DownloadFinished:
    pass


DownloadEvent = Union[DownloadStarted, DownloadProgress, DownloadFinished]


def decode_download_event(data: Mapping[str, Any]) -> DownloadEvent:
    """Decode ``{"event": ..., "data": {...}}`` updater progress records."""
    if not isinstance(data, Mapping):
        raise BackendProtocolError(f"download event must be an object: {data!r}")
    kind = data.get("event")
    payload = data.get("data") or {}
    if kind == "Started":
        total = payload.get("contentLength")
        if total is not None and (not isinstance(total, int) or total < 0):
            raise BackendProtocolError(f"invalid contentLength: {total!r}")
        return DownloadStarted(total_bytes=total)
    if kind == "Progress":
        chunk = payload.get("chunkLength")
        if not isinstance(chunk, int) or chunk < 0:
            raise BackendProtocolError(f"invalid chunkLength: {chunk!r}")
        return DownloadProgress(chunk_bytes=chunk)
    if kind == "Finished":
        return DownloadFinished()
    raise BackendProtocolError(f"unknown download event {kind!r}")


@dataclass(frozen=True)
class LogRecordEvent:
    level: str
    message: str
    module_path: str
    timestamp: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LogRecordEvent":
        if not isinstance(data, Mapping):
            raise BackendProtocolError(f"log record must be an object: {data!r}")
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            message=str(data.get("message", "")),
            module_path=str(data.get("module_path", "")),
            timestamp=str(data.get("timestamp", "")),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "level": self.level,
            "message": self.message,
            "module_path": self.module_path,
            "timestamp": self.timestamp,
        }


class PersistenceGateway(Protocol):
    """Asynchronous backend surface.

    Settings and dictionary travel in their wire encodings; decoding is the
    caller's job so malformed data can be rejected before it reaches state.
    Every method may raise ``BackendError``.
    """

    async def load_settings(self) -> Dict[str, Any]: ...

    async def save_settings(self, data: Dict[str, Any]) -> None: ...

    async def load_dictionary(self) -> Dict[str, Any]: ...

    async def save_dictionary(self, data: Dict[str, Any]) -> None: ...

    async def check_capability_available(self) -> bool: ...

    async def check_for_update(self) -> Optional[UpdateInfo]: ...

    async def download_and_install_update(
        self, on_event: Callable[[DownloadEvent], None]
    ) -> None: ...

    async def relaunch_application(self) -> None: ...

    def log_events(self) -> AsyncIterator[LogRecordEvent]: ...
