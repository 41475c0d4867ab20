from __future__ import annotations

from typing import Any

import pytest

DEST = "https://chatgpt.com/g/g-p-1/project"


class _Launcher:
    def __init__(self, targets: list[dict[str, Any]]) -> None:
        self.targets = targets

    def list_targets(self) -> list[dict[str, Any]]:
        return list(self.targets)


def _target(tid: str, url: str) -> dict[str, Any]:
    return {"id": tid, "type": "page", "url": url, "webSocketDebuggerUrl": f"ws://127.0.0.1:9222/devtools/page/{tid}"}


def _config(tmp_path):
    from tabferry.config import FerryConfig

    return FerryConfig(binary_path="chromium", profile_path=str(tmp_path / "p"), store_path=str(tmp_path / "s.json"))


@pytest.fixture
def started(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    from tabferry import watcher as watcher_mod

    out: list[str] = []
    alive: set[int] = set()

    def fake_start(self) -> None:
        out.append(self.target_id)
        alive.add(id(self))

    def fake_stop(self) -> None:
        self._stop.set()
        alive.discard(id(self))

    monkeypatch.setattr(watcher_mod.TabWorker, "start", fake_start)
    monkeypatch.setattr(watcher_mod.TabWorker, "stop", fake_stop)
    monkeypatch.setattr(watcher_mod.TabWorker, "is_alive", lambda self: id(self) in alive)
    return out


def test_classify(tmp_path, store) -> None:
    from tabferry.handoff.destination import DestinationSettings
    from tabferry.sites import INDEED, LINKEDIN
    from tabferry.watcher import DESTINATION, SOURCE, FerryWatcher

    DestinationSettings(store).save(DEST)
    watcher = FerryWatcher(_config(tmp_path), _Launcher([]), store)

    assert watcher.classify("https://www.indeed.com/viewjob?jk=1") == (SOURCE, INDEED)
    assert watcher.classify("https://uk.indeed.com/viewjob?jk=1") == (SOURCE, INDEED)
    assert watcher.classify("https://www.linkedin.com/jobs/search/") == (SOURCE, LINKEDIN)
    assert watcher.classify(DEST + "?in_rfc_tab=x") == (DESTINATION, None)
    assert watcher.classify("https://example.com/") == (None, None)


def test_scan_assigns_workers_per_tab(tmp_path, store, started) -> None:
    from tabferry.handoff.destination import DestinationSettings
    from tabferry.watcher import DESTINATION, SOURCE, FerryWatcher

    DestinationSettings(store).save(DEST)
    launcher = _Launcher(
        [
            _target("a", "https://www.indeed.com/viewjob?jk=1"),
            _target("b", DEST + "?in_rfc_tab=t1"),
            _target("c", "https://example.com/"),
            {"id": "d", "type": "page", "url": "https://www.indeed.com/"},
        ]
    )
    watcher = FerryWatcher(_config(tmp_path), launcher, store)

    assert watcher.scan_once() == {"a": SOURCE, "b": DESTINATION}
    assert started == ["a", "b"]

    # Same tabs, client-side route change on the source: nothing restarts.
    launcher.targets[0] = _target("a", "https://www.indeed.com/viewjob?jk=2")
    watcher.scan_once()
    assert started == ["a", "b"]


def test_scan_stops_workers_of_closed_tabs(tmp_path, store, started) -> None:
    from tabferry.watcher import FerryWatcher

    launcher = _Launcher([_target("a", "https://www.indeed.com/viewjob?jk=1")])
    watcher = FerryWatcher(_config(tmp_path), launcher, store)
    watcher.scan_once()
    worker = watcher.workers["a"]

    launcher.targets = []
    assert watcher.scan_once() == {}
    assert worker._stop.is_set()


def test_destination_reload_with_new_url_gets_new_worker(tmp_path, store, started) -> None:
    from tabferry.handoff.destination import DestinationSettings
    from tabferry.watcher import FerryWatcher

    DestinationSettings(store).save(DEST)
    launcher = _Launcher([_target("b", DEST + "?in_rfc_tab=t1")])
    watcher = FerryWatcher(_config(tmp_path), launcher, store)
    watcher.scan_once()
    first = watcher.workers["b"]

    launcher.targets = [_target("b", DEST + "?in_rfc_tab=t2")]
    watcher.scan_once()
    assert started == ["b", "b"]
    assert first._stop.is_set()
    assert watcher.workers["b"] is not first


def test_source_worker_pump_routes_signals(tmp_path, store, clock) -> None:
    from tabferry.sites import INDEED
    from tabferry.watcher import SourceTabWorker

    class Conn:
        def __init__(self) -> None:
            self.events = {"Page.frameNavigated": [{"frame": {"id": "main"}}, {"frame": {"id": "f", "parentId": "main"}}]}

        def pop_events(self, name: str) -> list[dict[str, Any]]:
            return self.events.pop(name, [])

    class Session:
        conn = Conn()

        def binding_calls(self, name: str) -> list[dict[str, Any]]:  # noqa: ARG002
            return [
                {"payload": '{"kind": "focus"}'},
                {"payload": "not json"},
                {"payload": '{"kind": "click", "shift": true}'},
            ]

    clicks: list[bool] = []
    worker = SourceTabWorker(
        _target("a", "https://www.indeed.com/viewjob?jk=1"), INDEED, _config(tmp_path), store, clock, _Launcher([])
    )
    worker.session = Session()
    worker._on_click = clicks.append
    old_id = worker.context.tab_id
    worker.context.attached = True

    assert worker._pump() == ["focus", "navigated"]
    assert clicks == [True]
    assert worker.context.tab_id != old_id
    assert not worker.context.attached


def test_click_is_ignored_while_page_is_not_eligible(tmp_path, store, clock) -> None:
    from types import SimpleNamespace

    from tabferry.sites import LINKEDIN
    from tabferry.watcher import SourceTabWorker

    triggers: list[bool] = []

    class Producer:
        status = None

        def trigger(self, force_reconfigure: bool = False):
            triggers.append(force_reconfigure)
            return SimpleNamespace(url=DEST)

    worker = SourceTabWorker(
        _target("a", "https://www.linkedin.com/feed/"), LINKEDIN, _config(tmp_path), store, clock, _Launcher([])
    )
    worker.producer = Producer()

    worker.context.attached = False
    worker._on_click(False)
    assert triggers == []

    worker.context.attached = True
    worker._on_click(True)
    assert triggers == [True]


def test_finished_destination_worker_is_replaced_on_same_url(tmp_path, store, started) -> None:
    from tabferry.handoff.destination import DestinationSettings
    from tabferry.watcher import FerryWatcher

    DestinationSettings(store).save(DEST)
    launcher = _Launcher([_target("b", DEST + "?in_rfc_tab=t1")])
    watcher = FerryWatcher(_config(tmp_path), launcher, store)
    watcher.scan_once()
    first = watcher.workers["b"]

    # Worker thread ended (delivery timed out, or the worker failed).
    first.stop()
    watcher.scan_once()
    assert started == ["b", "b"]
    assert watcher.workers["b"] is not first


def test_destination_worker_delivers_again_after_reload(tmp_path, store, clock, monkeypatch) -> None:
    from tabferry.handoff.consumer import DeliveryReport
    from tabferry.watcher import DestinationTabWorker

    navigations = [
        [{"frame": {"id": "child", "parentId": "main"}}],
        [{"frame": {"id": "main"}}],
    ]

    class Conn:
        def drain_events(self) -> int:
            return 0

        def pop_events(self, name: str) -> list[dict[str, Any]]:
            assert name == "Page.frameNavigated"
            return navigations.pop(0) if navigations else []

    class Session:
        conn = Conn()
        closed = False

        def close(self) -> None:
            self.closed = True

    session = Session()
    config = _config(tmp_path)
    config.consumer_delay = 0.0
    config.poll_interval = 0.01
    worker = DestinationTabWorker(_target("b", DEST + "?in_rfc_tab=t1"), config, store, clock)
    monkeypatch.setattr(worker, "_open_session", lambda: session)

    outcomes = ["timeout", "delivered"]

    def deliver(_session) -> DeliveryReport:
        outcome = outcomes.pop(0)
        if not outcomes:
            worker.stop()
        return DeliveryReport(outcome)

    monkeypatch.setattr(worker, "_deliver", deliver)
    worker.run()

    assert worker.runs == 2
    assert worker.report is not None and worker.report.delivered
    assert session.closed


def test_tab_worker_base_is_abstract(tmp_path, store, clock) -> None:
    from tabferry.watcher import TabWorker

    with pytest.raises(TypeError):
        TabWorker(_target("a", "https://example.com/"), _config(tmp_path), store, clock)
