"""Keeps the trigger affordance attached across client-side route changes.

The host app re-renders and re-routes without events an outside observer can
rely on, so the controller reconciles on a timer and additionally on the few
cheap signals that do fire (pageshow, focus, visibilitychange).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from .address import TabContext
from .ports import AttachablePage

_LOGGER = logging.getLogger("tabferry.attach")

SKIPPED_HIDDEN = "skipped-hidden"
INELIGIBLE = "ineligible"
PRESENT = "present"
INSERTED = "inserted"
NO_HOST = "no-host"


@dataclass(frozen=True, slots=True)
class RouteGuard:
    """Optional allow-list of path prefixes; empty means every path qualifies."""

    path_prefixes: tuple[str, ...] = ()

    def allows(self, url: str) -> bool:
        if not self.path_prefixes:
            return True
        try:
            path = urlsplit(url).path or "/"
        except ValueError:
            return False
        return any(path.startswith(prefix) for prefix in self.path_prefixes)


@dataclass(frozen=True, slots=True)
class TickResult:
    outcome: str
    reason: str
    url: str = ""
    route_changed: bool = False


class AttachmentController:
    def __init__(self, context: TabContext, page: AttachablePage, *, guard: RouteGuard | None = None) -> None:
        self.context = context
        self.page = page
        self.guard = guard or RouteGuard()

    def tick(self, reason: str = "timer") -> TickResult:
        if not self.page.is_visible():
            return TickResult(SKIPPED_HIDDEN, reason)

        url = self.page.current_url()
        route_changed = url != self.context.last_href
        if route_changed:
            _LOGGER.debug("route_changed tab=%s url=%s", self.context.tab_id, url)
            self.context.last_href = url

        if not self.guard.allows(url) or not self.page.is_eligible():
            if self.context.attached:
                _LOGGER.debug("affordance_removed tab=%s url=%s", self.context.tab_id, url)
            self.context.attached = False
            # A leftover button from the previous route must not stay clickable.
            self.page.remove_affordance()
            return TickResult(INELIGIBLE, reason, url, route_changed)

        if self.page.has_affordance():
            self.context.attached = True
            return TickResult(PRESENT, reason, url, route_changed)

        inserted = self.page.insert_affordance()
        self.context.attached = bool(inserted)
        if not inserted:
            # Host element not rendered yet; the next tick retries.
            return TickResult(NO_HOST, reason, url, route_changed)
        _LOGGER.info("affordance_inserted tab=%s reason=%s", self.context.tab_id, reason)
        return TickResult(INSERTED, reason, url, route_changed)


@dataclass
class AttachmentLoop:
    """Runs controller ticks on a fixed interval for the page's lifetime.

    `wake(reason)` requests an immediate tick; `pump` lets the owner (the tab
    worker) process its own events between ticks on the same thread.
    """

    controller: AttachmentController
    interval_s: float = 0.5
    pump: Callable[[], list[str]] | None = None
    stop_event: threading.Event = field(default_factory=threading.Event)
    _wakeups: list[str] = field(default_factory=list)

    def wake(self, reason: str) -> None:
        self._wakeups.append(reason)

    def stop(self) -> None:
        self.stop_event.set()

    def step(self) -> list[TickResult]:
        """One iteration: pump events, then tick once per pending wakeup (at least once)."""
        if self.pump is not None:
            self._wakeups.extend(self.pump())
        reasons = self._wakeups[:] or ["timer"]
        self._wakeups.clear()
        results: list[TickResult] = []
        for reason in dict.fromkeys(reasons):
            results.append(self.controller.tick(reason))
        return results

    def run(self) -> None:
        while not self.stop_event.is_set():
            try:
                self.step()
            except Exception as exc:  # noqa: BLE001
                # A navigation mid-evaluate fails one tick, never the loop.
                _LOGGER.debug("tick_failed tab=%s error=%s", self.controller.context.tab_id, exc)
            self.stop_event.wait(self.interval_s)
