"""Source-side half of the handoff: capture, post to the mailbox, open the destination."""

from __future__ import annotations

import logging
from contextlib import suppress
from dataclasses import dataclass

from ..errors import ContentNotReady, HandoffError
from .address import Address, AddressScheme, TabContext
from .destination import DestinationSettings
from .mailbox import Mailbox, PayloadEntry
from .polling import Clock, poll_until
from .ports import AffordanceStatus, Clipboard, ContentExtractor, Prompter, TabOpener
from .signature import normalize, signature_of

_LOGGER = logging.getLogger("tabferry.producer")

NOT_READY_MESSAGE = "Job details are not loaded yet. Open a job and try again."


@dataclass(frozen=True, slots=True)
class HandoffTicket:
    url: str
    address: Address
    signature: str
    entry: PayloadEntry


class HandoffProducer:
    def __init__(
        self,
        *,
        context: TabContext,
        scheme: AddressScheme,
        mailbox: Mailbox,
        destination: DestinationSettings,
        extractor: ContentExtractor,
        opener: TabOpener,
        clock: Clock,
        clipboard: Clipboard | None = None,
        prompter: Prompter | None = None,
        status: AffordanceStatus | None = None,
        content_timeout: float = 9.0,
        content_poll_interval: float = 0.15,
    ) -> None:
        self.context = context
        self.scheme = scheme
        self.mailbox = mailbox
        self.destination = destination
        self.extractor = extractor
        self.opener = opener
        self.clock = clock
        self.clipboard = clipboard
        self.prompter = prompter
        self.status = status
        self.content_timeout = content_timeout
        self.content_poll_interval = content_poll_interval

    def _show(self, state: str) -> None:
        if self.status is None:
            return
        with suppress(Exception):
            self.status.show(state)

    def trigger(self, force_reconfigure: bool = False) -> HandoffTicket:
        """Run one capture. Raises ConfigMissing, ConfigInvalid or ContentNotReady."""
        self._show("config" if force_reconfigure else "preparing")
        try:
            ticket = self._trigger(force_reconfigure)
        except HandoffError as exc:
            _LOGGER.info("trigger_failed tab=%s code=%s reason=%s", self.context.tab_id, exc.code, exc.reason)
            self._show("failed")
            raise
        self._show("opened")
        return ticket

    def _trigger(self, force_reconfigure: bool) -> HandoffTicket:
        destination_url = self.destination.resolve(force=force_reconfigure, prompter=self.prompter)

        ready = poll_until(
            self.extractor.is_content_ready,
            interval_s=self.content_poll_interval,
            timeout_s=self.content_timeout,
            clock=self.clock,
        )
        if not ready.ok:
            if self.prompter is not None:
                with suppress(Exception):
                    self.prompter.alert(NOT_READY_MESSAGE)
            raise ContentNotReady(
                action="capture",
                reason=f"content not ready after {ready.elapsed_ms} ms",
                suggestion="Open a job posting and click again",
                details={"attempts": ready.attempts},
            )

        text = normalize(self.extractor.get_extractable_text())
        signature = signature_of(text)
        address = self.scheme.address(self.context.tab_id)

        # The store write must land before the destination tab can start polling.
        entry = self.mailbox.send(address, text)

        if self.clipboard is not None:
            try:
                self.clipboard.copy(text)
            except Exception as exc:  # noqa: BLE001
                _LOGGER.debug("clipboard_copy_failed tab=%s error=%s", self.context.tab_id, exc)

        ref = ""
        with suppress(Exception):
            ref = self.extractor.reference_id() or ""
        url = self.scheme.encode(destination_url, self.context.tab_id, signature, ref)
        self.opener.open(url)
        _LOGGER.info("handoff_opened tab=%s sig=%r chars=%d", self.context.tab_id, signature, len(text))
        return HandoffTicket(url=url, address=address, signature=signature, entry=entry)
