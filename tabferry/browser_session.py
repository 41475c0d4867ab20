from __future__ import annotations

from contextlib import suppress
from typing import Any

from .http_client import HttpClientError
from .session_cdp import CdpConnection


class BrowserSession:
    """
    High-level browser session for a specific tab.

    Wraps CdpConnection with the few page operations the bridge needs.
    Use as context manager for automatic cleanup.
    """

    def __init__(self, connection: CdpConnection, tab_id: str, tab_url: str = ""):
        self.conn = connection
        self.tab_id = tab_id
        self.tab_url = tab_url
        self._page_enabled = False
        self._runtime_enabled = False
        self._bindings: set[str] = set()

    def __enter__(self) -> BrowserSession:
        self.enable_domains(page=True, runtime=True)
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the session connection."""
        self.conn.close()

    def enable_domains(self, *, page: bool = False, runtime: bool = False, strict: bool = True) -> None:
        """Enable CDP domains once per connection."""
        failures: list[tuple[str, str]] = []
        if page and not self._page_enabled:
            try:
                self.conn.send("Page.enable", {})
                self._page_enabled = True
            except HttpClientError as exc:
                failures.append(("Page.enable", str(exc)))
        if runtime and not self._runtime_enabled:
            try:
                self.conn.send("Runtime.enable", {})
                self._runtime_enabled = True
            except HttpClientError as exc:
                failures.append(("Runtime.enable", str(exc)))

        if strict and failures:
            details = "; ".join(f"{m}: {err}" for m, err in failures)
            raise HttpClientError(f"Failed to enable CDP domain(s). Details: {details}")

    def send(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send raw CDP command."""
        return self.conn.send(method, params)

    # ─────────────────────────────────────────────────────────────────────────
    # JavaScript
    # ─────────────────────────────────────────────────────────────────────────

    def eval_js(self, expression: str, *, timeout: float | None = None, user_gesture: bool = False) -> Any:
        """Evaluate JavaScript and return result.

        If a custom timeout is provided, it temporarily overrides the CDP command
        timeout for this call only (window.prompt blocks until answered).
        """
        self.enable_domains(runtime=True)

        old_timeout: float | None = None
        if timeout is not None:
            old_timeout = float(self.conn.timeout)
            self.conn.timeout = float(timeout)

        params: dict[str, Any] = {"expression": expression, "returnByValue": True, "awaitPromise": True}
        if user_gesture:
            params["userGesture"] = True
        try:
            result = self.conn.send("Runtime.evaluate", params)
        finally:
            if old_timeout is not None:
                self.conn.timeout = old_timeout

        exc_details = result.get("exceptionDetails")
        if isinstance(exc_details, dict):
            text = exc_details.get("text") or "exception"
            exc = exc_details.get("exception")
            if isinstance(exc, dict) and exc.get("description"):
                text = str(exc.get("description")).splitlines()[0]
            raise HttpClientError(f"Page script failed: {text}")

        if "result" not in result:
            return None
        value = result["result"]
        # CDP returns undefined as {"type":"undefined"} (no "value" field); returning the raw
        # dict would make `bool(eval_js(...))` truthy.
        if isinstance(value, dict) and value.get("type") == "undefined":
            return None
        if isinstance(value, dict) and value.get("type") == "object" and value.get("subtype") == "null":
            return None
        return value.get("value", value) if isinstance(value, dict) else value

    def add_binding(self, name: str) -> None:
        """Expose `window[name](payload)` to the page; calls arrive as Runtime.bindingCalled."""
        if name in self._bindings:
            return
        self.enable_domains(runtime=True)
        self.conn.send("Runtime.addBinding", {"name": name})
        self._bindings.add(name)

    def add_init_script(self, source: str) -> str:
        """Run `source` in every new document of this tab (and nothing on the current one)."""
        self.enable_domains(page=True)
        result = self.conn.send("Page.addScriptToEvaluateOnNewDocument", {"source": source})
        return str(result.get("identifier") or "")

    def get_url(self) -> str:
        """Get current page URL."""
        return self.eval_js("window.location.href") or ""

    def is_visible(self) -> bool:
        return self.eval_js("document.visibilityState") == "visible"

    def binding_calls(self, name: str) -> list[dict[str, Any]]:
        """Drain socket events and return queued Runtime.bindingCalled params for `name`."""
        with suppress(Exception):
            self.conn.drain_events()
        calls: list[dict[str, Any]] = []
        for params in self.conn.pop_events("Runtime.bindingCalled"):
            if params.get("name") == name:
                calls.append(params)
        return calls


__all__ = ["BrowserSession"]
