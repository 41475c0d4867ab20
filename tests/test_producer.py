from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

DEST = "https://chatgpt.com/g/g-p-1/project"
TEXT = "Senior Data Engineer\nAcme\n\nAbout the job\n\nBuild pipelines."


@dataclass
class _Page:
    ready_after: int = 0
    text: str = TEXT
    ref: str = "jk1"
    calls: int = 0
    copied: list[str] = field(default_factory=list)
    copy_error: Exception | None = None
    alerts: list[str] = field(default_factory=list)
    states: list[str] = field(default_factory=list)

    def is_content_ready(self) -> bool:
        self.calls += 1
        return self.calls > self.ready_after

    def get_extractable_text(self) -> str:
        return self.text

    def reference_id(self) -> str:
        return self.ref

    def copy(self, text: str) -> None:
        if self.copy_error is not None:
            raise self.copy_error
        self.copied.append(text)

    def ask(self, message: str, default: str = "") -> str | None:  # noqa: ARG002
        return None

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def show(self, state: str) -> None:
        self.states.append(state)


@dataclass
class _Opener:
    store: Any
    opened: list[str] = field(default_factory=list)
    store_at_open: list[dict[str, Any]] = field(default_factory=list)

    def open(self, url: str) -> None:
        self.opened.append(url)
        self.store_at_open.append({k: self.store.get(k) for k in self.store.keys()})


def _producer(store, clock, page: _Page, opener: _Opener, *, configured: bool = True):
    from tabferry.handoff.address import TabContext
    from tabferry.handoff.destination import DestinationSettings
    from tabferry.handoff.mailbox import Mailbox
    from tabferry.handoff.producer import HandoffProducer
    from tabferry.sites import INDEED

    destination = DestinationSettings(store)
    if configured:
        destination.save(DEST)
    return HandoffProducer(
        context=TabContext(tab_id="tab1"),
        scheme=INDEED.scheme,
        mailbox=Mailbox(store, clock),
        destination=destination,
        extractor=page,
        opener=opener,
        clock=clock,
        clipboard=page,
        prompter=page,
        status=page,
    )


def test_trigger_writes_mailbox_before_opening(store, clock) -> None:
    page = _Page()
    opener = _Opener(store)
    ticket = _producer(store, clock, page, opener).trigger()

    assert opener.opened == [ticket.url]
    snapshot = opener.store_at_open[0]
    assert snapshot["in_job_payload_tab_tab1"] == TEXT
    assert snapshot["in_job_payload_ts_tab_tab1"] == clock.now_ms()

    query = parse_qs(urlsplit(ticket.url).query)
    assert query["in_rfc_tab"] == ["tab1"]
    assert query["in_rfc_sig"] == ["Senior Data Engineer"]
    assert query["in_job"] == ["jk1"]
    assert page.copied == [TEXT]
    assert page.states == ["preparing", "opened"]


def test_trigger_waits_for_content(store, clock) -> None:
    page = _Page(ready_after=3)
    opener = _Opener(store)
    _producer(store, clock, page, opener).trigger()

    assert page.calls == 4
    assert len(opener.opened) == 1


def test_clipboard_failure_is_not_fatal(store, clock) -> None:
    page = _Page(copy_error=RuntimeError("denied"))
    opener = _Opener(store)
    _producer(store, clock, page, opener).trigger()

    assert len(opener.opened) == 1
    assert store.get("in_job_payload_tab_tab1") == TEXT


def test_content_not_ready_times_out(store, clock) -> None:
    from tabferry.errors import ContentNotReady
    from tabferry.handoff.producer import NOT_READY_MESSAGE

    page = _Page(ready_after=10_000)
    opener = _Opener(store)
    start = clock.now_ms()
    with pytest.raises(ContentNotReady):
        _producer(store, clock, page, opener).trigger()

    assert clock.now_ms() - start >= 9000
    assert opener.opened == []
    assert store.get("in_job_payload_tab_tab1") is None
    assert page.alerts == [NOT_READY_MESSAGE]
    assert page.states == ["preparing", "failed"]


def test_unconfigured_destination_with_cancelled_prompt(store, clock) -> None:
    from tabferry.errors import ConfigInvalid

    page = _Page()
    opener = _Opener(store)
    with pytest.raises(ConfigInvalid):
        _producer(store, clock, page, opener, configured=False).trigger()

    assert opener.opened == []
    assert page.calls == 0


def test_missing_destination_without_prompter(store, clock) -> None:
    from tabferry.errors import ConfigMissing

    page = _Page()
    opener = _Opener(store)
    producer = _producer(store, clock, page, opener, configured=False)
    producer.prompter = None
    with pytest.raises(ConfigMissing):
        producer.trigger()
    assert opener.opened == []
