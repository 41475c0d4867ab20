"""Per-tab workers and the scanner that assigns them.

Each page target gets its own thread and its own CDP WebSocket, so a tab
behaves like an independent single-threaded context: the source worker runs the
attachment loop and handles clicks in between ticks; the destination worker
runs one delivery per document load. Closing a tab stops its worker; that is the only
cancellation there is.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import suppress
from typing import Any

from .browser_session import BrowserSession
from .config import FerryConfig
from .errors import HandoffError
from .handoff.address import TabContext, new_tab_identity
from .handoff.attachment import AttachmentController, AttachmentLoop
from .handoff.consumer import DeliveryReport, HandoffConsumer
from .handoff.destination import DestinationSettings
from .handoff.mailbox import Mailbox
from .handoff.polling import Clock, SystemClock
from .handoff.producer import HandoffProducer
from .http_client import HttpClientError
from .launcher import BrowserLauncher
from .page_bridge import BINDING_NAME, CdpComposer, CdpSourcePage, CdpTabOpener, signal_hooks_js
from .session_cdp import CdpConnection
from .sites import CHATGPT_COMPOSER, all_schemes, site_for_url
from .sites.base import SiteProfile
from .store_persist import KeyValueStore

_LOGGER = logging.getLogger("tabferry.watcher")

SOURCE = "source"
DESTINATION = "destination"


class TabWorker(ABC):
    kind = ""

    def __init__(self, target: dict[str, Any], config: FerryConfig, store: KeyValueStore, clock: Clock) -> None:
        self.target_id = str(target.get("id") or "")
        self.ws_url = str(target.get("webSocketDebuggerUrl") or "")
        self.url = str(target.get("url") or "")
        self.config = config
        self.store = store
        self.clock = clock
        self._stop = threading.Event()
        name = f"tabferry-{self.kind}-{self.target_id[:8]}"
        self._thread = threading.Thread(target=self._run_safe, name=name, daemon=True)

    def start(self) -> None:
        if self._thread.is_alive():
            return
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    @abstractmethod
    def accepts(self, url: str, kind: str | None, site: SiteProfile | None) -> bool:
        """Whether this worker keeps serving the target at `url`."""

    def _open_session(self) -> BrowserSession:
        conn = CdpConnection(self.ws_url, timeout=self.config.cdp_timeout)
        session = BrowserSession(conn, self.target_id, self.url)
        session.enable_domains(page=True, runtime=True)
        return session

    def _run_safe(self) -> None:
        try:
            self.run()
        except Exception as exc:  # noqa: BLE001
            # One broken tab must not take the watcher down.
            _LOGGER.warning("worker_failed kind=%s target=%s error=%s", self.kind, self.target_id, exc)

    @abstractmethod
    def run(self) -> None:
        """Worker body; returns when the tab is done or the stop event is set."""


class SourceTabWorker(TabWorker):
    kind = SOURCE

    def __init__(
        self,
        target: dict[str, Any],
        site: SiteProfile,
        config: FerryConfig,
        store: KeyValueStore,
        clock: Clock,
        launcher: BrowserLauncher,
    ) -> None:
        super().__init__(target, config, store, clock)
        self.site = site
        self.launcher = launcher
        self.context = TabContext()
        self.session: BrowserSession | None = None
        self.producer: HandoffProducer | None = None

    def accepts(self, url: str, kind: str | None, site: SiteProfile | None) -> bool:
        # Client-side routing changes the URL under a live worker; only a site change replaces it.
        return self.is_alive() and kind == SOURCE and site is self.site

    def _renew_context(self) -> None:
        self.context.tab_id = new_tab_identity()
        self.context.last_href = ""
        self.context.attached = False

    def _pump(self) -> list[str]:
        session = self.session
        if session is None:
            return []
        reasons: list[str] = []
        for call in session.binding_calls(BINDING_NAME):
            try:
                signal = json.loads(call.get("payload") or "{}")
            except json.JSONDecodeError:
                continue
            kind = str(signal.get("kind") or "")
            if kind == "click":
                self._on_click(bool(signal.get("shift")))
            elif kind:
                reasons.append(kind)

        for nav in session.conn.pop_events("Page.frameNavigated"):
            frame = nav.get("frame") if isinstance(nav.get("frame"), dict) else {}
            if not frame.get("parentId"):
                # New document: a new page-load context with its own identity.
                self._renew_context()
                reasons.append("navigated")
        return reasons

    def _on_click(self, shift: bool) -> None:
        producer = self.producer
        if producer is None:
            return
        if not self.context.attached:
            _LOGGER.debug("click_ignored target=%s (page not eligible)", self.target_id)
            return
        try:
            ticket = producer.trigger(force_reconfigure=shift)
        except HandoffError:
            return
        except HttpClientError as exc:
            _LOGGER.warning("trigger_transport_error target=%s error=%s", self.target_id, exc)
            if producer.status is not None:
                with suppress(Exception):
                    producer.status.show("failed")
            return
        _LOGGER.debug("trigger_done target=%s url=%s", self.target_id, ticket.url)

    def run(self) -> None:
        session = self._open_session()
        self.session = session
        try:
            session.add_binding(BINDING_NAME)
            hooks = signal_hooks_js()
            session.add_init_script(hooks)
            session.eval_js(hooks)

            page = CdpSourcePage(session, self.site)
            self.producer = HandoffProducer(
                context=self.context,
                scheme=self.site.scheme,
                mailbox=Mailbox(self.store, self.clock, stale_after_ms=self.config.stale_after_ms),
                destination=DestinationSettings(self.store),
                extractor=page,
                opener=CdpTabOpener(self.launcher),
                clock=self.clock,
                clipboard=page,
                prompter=page,
                status=page,
                content_timeout=self.config.content_timeout,
                content_poll_interval=self.config.content_poll_interval,
            )
            controller = AttachmentController(self.context, page, guard=self.site.guard)
            loop = AttachmentLoop(
                controller, interval_s=self.config.tick_interval, pump=self._pump, stop_event=self._stop
            )
            loop.wake("init")
            _LOGGER.info("source_attached target=%s site=%s", self.target_id, self.site.name)
            loop.run()
        finally:
            session.close()


class DestinationTabWorker(TabWorker):
    """Runs one delivery per document load of the destination tab.

    The worker stays attached after a delivery and runs again when the tab
    loads a new document (a reload after a timeout finds the entry still there;
    after a success the entry is already cleared, so the rerun is a no-op).
    """

    kind = DESTINATION

    def __init__(self, target: dict[str, Any], config: FerryConfig, store: KeyValueStore, clock: Clock) -> None:
        super().__init__(target, config, store, clock)
        self.report: DeliveryReport | None = None
        self.runs = 0

    def accepts(self, url: str, kind: str | None, site: SiteProfile | None) -> bool:
        return self.is_alive() and kind == DESTINATION and url == self.url

    def _deliver(self, session: BrowserSession) -> DeliveryReport:
        consumer = HandoffConsumer(
            mailbox=Mailbox(self.store, self.clock, stale_after_ms=self.config.stale_after_ms),
            destination=DestinationSettings(self.store),
            surface=CdpComposer(session, CHATGPT_COMPOSER),
            schemes=all_schemes(),
            clock=self.clock,
            deadline_s=self.config.delivery_timeout,
            interval_s=self.config.poll_interval,
            stop=self._stop,
        )
        return consumer.run_once(session.get_url() or self.url)

    def _wait_for_load(self, session: BrowserSession) -> bool:
        """Block until the main frame commits a new document; False once stopped."""
        while not self._stop.is_set():
            session.conn.drain_events()
            for nav in session.conn.pop_events("Page.frameNavigated"):
                frame = nav.get("frame") if isinstance(nav.get("frame"), dict) else {}
                if not frame.get("parentId"):
                    return True
            self._stop.wait(self.config.poll_interval)
        return False

    def run(self) -> None:
        if self._stop.wait(self.config.consumer_delay):
            return
        session = self._open_session()
        try:
            while not self._stop.is_set():
                self.report = self._deliver(session)
                self.runs += 1
                _LOGGER.info(
                    "destination_done target=%s outcome=%s run=%d", self.target_id, self.report.outcome, self.runs
                )
                if not self._wait_for_load(session):
                    return
                _LOGGER.debug("destination_reloaded target=%s", self.target_id)
                if self._stop.wait(self.config.consumer_delay):
                    return
        finally:
            session.close()


class FerryWatcher:
    def __init__(
        self,
        config: FerryConfig,
        launcher: BrowserLauncher,
        store: KeyValueStore,
        *,
        clock: Clock | None = None,
    ) -> None:
        self.config = config
        self.launcher = launcher
        self.store = store
        self.clock = clock or SystemClock()
        self.destination = DestinationSettings(store)
        self.workers: dict[str, TabWorker] = {}
        self._stop = threading.Event()

    def classify(self, url: str) -> tuple[str | None, SiteProfile | None]:
        site = site_for_url(url)
        if site is not None:
            return SOURCE, site
        if self.destination.is_current_target(url):
            return DESTINATION, None
        return None, None

    def _make_worker(self, target: dict[str, Any], kind: str, site: SiteProfile | None) -> TabWorker:
        if kind == SOURCE and site is not None:
            return SourceTabWorker(target, site, self.config, self.store, self.clock, self.launcher)
        return DestinationTabWorker(target, self.config, self.store, self.clock)

    def scan_once(self) -> dict[str, str]:
        """Reconcile workers with the browser's current page targets."""
        targets = self.launcher.list_targets()
        seen: set[str] = set()
        for target in targets:
            target_id = str(target.get("id") or "")
            if not target_id or not target.get("webSocketDebuggerUrl"):
                continue
            seen.add(target_id)
            url = str(target.get("url") or "")
            kind, site = self.classify(url)

            worker = self.workers.get(target_id)
            if worker is not None and worker.accepts(url, kind, site):
                continue
            if worker is not None:
                worker.stop()
                del self.workers[target_id]
            if kind is None:
                continue

            worker = self._make_worker(target, kind, site)
            self.workers[target_id] = worker
            worker.start()
            _LOGGER.info("worker_started kind=%s target=%s url=%s", kind, target_id, url)

        for target_id in list(self.workers):
            if target_id not in seen:
                self.workers.pop(target_id).stop()
                _LOGGER.debug("worker_stopped target=%s (closed)", target_id)

        return {tid: w.kind for tid, w in self.workers.items()}

    def run(self) -> None:
        while not self._stop.is_set():
            try:
                self.scan_once()
            except Exception as exc:  # noqa: BLE001
                _LOGGER.warning("scan_failed error=%s", exc)
            self._stop.wait(self.config.scan_interval)

    def stop(self) -> None:
        self._stop.set()
        for worker in self.workers.values():
            worker.stop()
