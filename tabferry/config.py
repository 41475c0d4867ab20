from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BINARY_CANDIDATES: list[str] = [
    # Prefer Chromium for a dedicated profile; Chrome entries kept as fallback.
    "/usr/bin/chromium",
    "/usr/bin/chromium-browser",
    "/usr/local/bin/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/usr/bin/google-chrome",
    "/usr/bin/google-chrome-stable",
    "C:\\Program Files\\Google\\Chrome\\Application\\chrome.exe",
    "C:\\Program Files (x86)\\Google\\Chrome\\Application\\chrome.exe",
    # Snap last: it ignores --user-data-dir.
    "/snap/bin/chromium",
]


def expand_path(raw: str) -> str:
    return str(Path(raw).expanduser())


def _bool_env(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return str(raw).strip().lower() not in {"0", "false", "no"}


def _float_env(name: str, *, default: float, lo: float, hi: float) -> float:
    try:
        val = float(os.environ.get(name) or default)
    except Exception:
        val = default
    return max(lo, min(val, hi))


@dataclass
class FerryConfig:
    binary_path: str
    profile_path: str
    store_path: str
    cdp_port: int = 9222
    mode: str = "attach"
    headless: bool = False
    extra_flags: list[str] = field(default_factory=list)
    # Source side
    tick_interval: float = 0.5
    content_timeout: float = 9.0
    content_poll_interval: float = 0.15
    # Destination side
    consumer_delay: float = 1.2
    delivery_timeout: float = 25.0
    poll_interval: float = 0.2
    stale_after: float = 600.0
    # Watcher
    scan_interval: float = 1.0
    cdp_timeout: float = 5.0

    @property
    def stale_after_ms(self) -> int:
        return int(self.stale_after * 1000)

    @staticmethod
    def normalize_mode(raw: str | None) -> str:
        mode = (raw or "").strip().lower()
        if mode in {"launch", "spawn", "start"}:
            return "launch"
        if mode in {"attach", "connect", "external", ""}:
            return "attach"
        return "attach"

    @classmethod
    def detect_binary(cls) -> str:
        env_path = os.environ.get("TABFERRY_BROWSER_BINARY")
        if env_path:
            return expand_path(env_path)
        for candidate in DEFAULT_BINARY_CANDIDATES:
            path = Path(candidate)
            if path.exists() and os.access(str(path), os.X_OK):
                return str(path)
        # Last resort: rely on PATH lookup
        return "chromium"

    @classmethod
    def from_env(cls) -> FerryConfig:
        mode = cls.normalize_mode(os.environ.get("TABFERRY_BROWSER_MODE"))
        profile = expand_path(os.environ.get("TABFERRY_BROWSER_PROFILE", "~/.tabferry/browser-profile"))
        store = expand_path(os.environ.get("TABFERRY_STORE_PATH", "~/.tabferry/store.json"))
        port = int(os.environ.get("TABFERRY_CDP_PORT", "9222"))
        flags_raw = os.environ.get("TABFERRY_BROWSER_FLAGS", "")
        extra_flags = [flag for flag in flags_raw.split(",") if flag.strip()]
        return cls(
            binary_path=cls.detect_binary(),
            profile_path=profile,
            store_path=store,
            cdp_port=port,
            mode=mode,
            headless=_bool_env("TABFERRY_HEADLESS", default=False),
            extra_flags=extra_flags,
            tick_interval=_float_env("TABFERRY_TICK_INTERVAL", default=0.5, lo=0.1, hi=10.0),
            content_timeout=_float_env("TABFERRY_CONTENT_TIMEOUT", default=9.0, lo=1.0, hi=60.0),
            consumer_delay=_float_env("TABFERRY_CONSUMER_DELAY", default=1.2, lo=0.0, hi=30.0),
            delivery_timeout=_float_env("TABFERRY_DELIVERY_TIMEOUT", default=25.0, lo=1.0, hi=300.0),
            poll_interval=_float_env("TABFERRY_POLL_INTERVAL", default=0.2, lo=0.05, hi=5.0),
            stale_after=_float_env("TABFERRY_STALE_AFTER", default=600.0, lo=1.0, hi=86_400.0),
            scan_interval=_float_env("TABFERRY_SCAN_INTERVAL", default=1.0, lo=0.2, hi=30.0),
        )
