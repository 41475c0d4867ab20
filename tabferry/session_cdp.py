"""One CDP WebSocket per tab worker.

Commands are answered by id; anything else on the socket is an event. Events
that arrive while a command is in flight are queued, so a click delivered as
`Runtime.bindingCalled` during a slow `Runtime.evaluate` is never lost.
"""

from __future__ import annotations

import json
import socket
import time
from collections import deque
from contextlib import suppress
from typing import Any

import websocket

from .http_client import HttpClientError

MAX_QUEUED_EVENTS = 500


def _is_timeout(exc: Exception) -> bool:
    if isinstance(exc, (TimeoutError, socket.timeout, websocket.WebSocketTimeoutException)):
        return True
    return "timed out" in str(exc).lower()


def _is_event(frame: Any) -> bool:
    return isinstance(frame, dict) and isinstance(frame.get("method"), str) and "id" not in frame


class CdpConnection:
    def __init__(self, ws_url: str, timeout: float = 5.0, *, ws: Any = None):
        self.ws_url = ws_url
        self.timeout = timeout
        self.ws = ws if ws is not None else websocket.create_connection(ws_url, timeout=timeout)
        self._next_id = 1
        self._events: deque[dict[str, Any]] = deque(maxlen=MAX_QUEUED_EVENTS)

    def _read_frame(self, wait: float) -> Any:
        """Next decoded frame, or None when nothing arrived within `wait` seconds."""
        try:
            self.ws.settimeout(wait)
            raw = self.ws.recv()
        except Exception as exc:  # noqa: BLE001
            if _is_timeout(exc):
                return None
            raise HttpClientError(str(exc)) from exc
        try:
            return json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return {}

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send a command and block until its response (or `timeout`)."""
        msg_id = self._next_id
        self._next_id += 1
        msg: dict[str, Any] = {"id": msg_id, "method": method}
        if params:
            msg["params"] = params
        try:
            self.ws.send(json.dumps(msg))
        except Exception as exc:  # noqa: BLE001
            raise HttpClientError(f"{method}: {exc}") from exc

        deadline = time.time() + self.timeout
        while True:
            remaining = deadline - time.time()
            if remaining <= 0:
                raise HttpClientError(f"{method}: CDP response timed out")
            frame = self._read_frame(min(0.5, remaining))
            if frame is None:
                continue
            if _is_event(frame):
                self._events.append(frame)
                continue
            if isinstance(frame, dict) and frame.get("id") == msg_id:
                if "error" in frame:
                    raise HttpClientError(f"{method}: {frame['error']}")
                result = frame.get("result")
                return result if isinstance(result, dict) else {}

    def drain_events(self, *, max_messages: int = 50) -> int:
        """Queue events already buffered on the socket without blocking."""
        drained = 0
        for _ in range(max(0, int(max_messages))):
            try:
                frame = self._read_frame(0.0)
            except HttpClientError:
                break
            if not _is_event(frame):
                break
            self._events.append(frame)
            drained += 1
        return drained

    def pop_event(self, event_name: str) -> dict[str, Any] | None:
        """Remove and return the params of the oldest queued `event_name` event."""
        for ev in self._events:
            if ev.get("method") == event_name:
                self._events.remove(ev)
                params = ev.get("params")
                return params if isinstance(params, dict) else {}
        return None

    def pop_events(self, event_name: str) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        while (params := self.pop_event(event_name)) is not None:
            out.append(params)
        return out

    def close(self) -> None:
        with suppress(Exception):
            self.ws.close()
        # websocket-client close() can hang on a dead peer; the raw socket cannot.
        sock = getattr(self.ws, "sock", None)
        if sock is not None:
            with suppress(Exception):
                sock.shutdown(socket.SHUT_RDWR)
            with suppress(Exception):
                sock.close()


__all__ = ["CdpConnection"]
