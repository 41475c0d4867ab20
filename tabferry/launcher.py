from __future__ import annotations

import contextlib
import logging
import socket
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .config import FerryConfig, expand_path
from .http_client import HttpClientError, http_get_json
from .session_cdp import CdpConnection

_LOGGER = logging.getLogger("tabferry.launcher")


@dataclass
class LaunchResult:
    command: list[str]
    started: bool
    message: str


class BrowserLauncher:
    def __init__(self, config: FerryConfig | None = None) -> None:
        self.config = config or FerryConfig.from_env()
        self.process: subprocess.Popen | None = None

    @property
    def _base_url(self) -> str:
        return f"http://127.0.0.1:{self.config.cdp_port}"

    def cdp_ready(self, timeout: float = 0.4) -> bool:
        """Return True if the CDP HTTP endpoint responds."""
        try:
            http_get_json(f"{self._base_url}/json/version", timeout=timeout)
            return True
        except HttpClientError:
            return False

    def _port_available(self, timeout: float = 0.2) -> bool:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            try:
                return sock.connect_ex(("127.0.0.1", self.config.cdp_port)) != 0
            except OSError:
                return False

    def build_launch_command(self) -> list[str]:
        flags = [
            f"--remote-debugging-port={self.config.cdp_port}",
            f"--user-data-dir={expand_path(self.config.profile_path)}",
            "--remote-allow-origins=*",
            "--no-first-run",
            "--no-default-browser-check",
        ]
        if self.config.headless:
            flags.append("--headless=new")
        return [self.config.binary_path, *flags, *self.config.extra_flags]

    def ensure_running(self, timeout: float = 5.0) -> LaunchResult:
        if self.cdp_ready():
            return LaunchResult([], False, "Attached to existing browser on CDP port")

        if self.config.mode == "attach":
            if self._port_available():
                return LaunchResult(
                    [],
                    False,
                    f"Attach mode: no browser listening on CDP port {self.config.cdp_port} "
                    "(start Chrome with --remote-debugging-port)",
                )
            return LaunchResult(
                [],
                False,
                f"Attach mode: port {self.config.cdp_port} is in use but CDP is not reachable",
            )

        if not self._port_available():
            return LaunchResult([], False, f"Port {self.config.cdp_port} already in use")

        with contextlib.suppress(Exception):
            Path(expand_path(self.config.profile_path)).mkdir(parents=True, exist_ok=True)
        cmd = self.build_launch_command()
        try:
            self.process = subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        except OSError as exc:
            return LaunchResult(cmd, False, str(exc))

        deadline = time.time() + timeout
        while time.time() < deadline:
            if self.cdp_ready():
                return LaunchResult(cmd, True, "Browser launched")
            time.sleep(0.1)
        return LaunchResult(cmd, False, "Browser launch timed out")

    def stop(self, *, timeout: float = 2.0) -> bool:
        """Stop the launcher-owned browser process (never an attached one)."""
        proc = self.process
        if proc is None:
            return False
        if proc.poll() is not None:
            return True
        with contextlib.suppress(Exception):
            proc.terminate()
        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            if proc.poll() is not None:
                return True
            time.sleep(0.05)
        with contextlib.suppress(Exception):
            proc.kill()
        return True

    def list_targets(self) -> list[dict[str, Any]]:
        """Page targets only; an unreachable endpoint reads as no targets."""
        try:
            payload = http_get_json(f"{self._base_url}/json/list", timeout=1.0)
        except HttpClientError:
            return []
        if not isinstance(payload, list):
            return []
        return [t for t in payload if isinstance(t, dict) and t.get("type") == "page"]

    def browser_ws_url(self) -> str:
        version = http_get_json(f"{self._base_url}/json/version")
        ws_url = version.get("webSocketDebuggerUrl") if isinstance(version, dict) else None
        if not ws_url:
            raise HttpClientError("CDP browser WebSocket URL not found")
        return str(ws_url)

    def create_tab(self, url: str) -> str:
        """Create a new foreground tab, return its target id."""
        conn = CdpConnection(self.browser_ws_url(), timeout=self.config.cdp_timeout)
        try:
            result = conn.send("Target.createTarget", {"url": url})
            tab_id = result.get("targetId")
            if not tab_id:
                raise HttpClientError("Failed to create browser tab")
            with contextlib.suppress(HttpClientError):
                conn.send("Target.activateTarget", {"targetId": tab_id})
            _LOGGER.info("tab_opened target=%s", tab_id)
            return str(tab_id)
        finally:
            conn.close()
