"""Destination-side half of the handoff: find the payload, inject it, prove it landed.

Delivery is at-least-once: the entry is cleared only after the composer's text
is read back and contains the expected signature. A timeout leaves the entry in
place for a later load of the same URL (until it goes stale). The composer is
never submitted.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any

from ..errors import HandoffError, NoEligibleTarget, SignatureMismatch
from .address import Address, AddressScheme, decode_address
from .destination import DestinationSettings
from .mailbox import Mailbox
from .polling import Clock, poll_until
from .ports import InputSurface
from .signature import contains_signature, signature_of

_LOGGER = logging.getLogger("tabferry.consumer")

NOT_TARGET = "not-target"
NO_ADDRESS = "no-address"
NOTHING_TO_DELIVER = "nothing-to-deliver"
DELIVERED = "delivered"
TIMEOUT = "timeout"
CANCELLED = "cancelled"

CLEAR_SETTLE_S = 0.08
WRITE_SETTLE_S = 0.18


@dataclass
class DeliveryReport:
    outcome: str
    address: Address | None = None
    attempts: int = 0
    elapsed_ms: int = 0
    error: HandoffError | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def delivered(self) -> bool:
        return self.outcome == DELIVERED


class HandoffConsumer:
    def __init__(
        self,
        *,
        mailbox: Mailbox,
        destination: DestinationSettings,
        surface: InputSurface,
        schemes: list[AddressScheme],
        clock: Clock,
        deadline_s: float = 25.0,
        interval_s: float = 0.2,
        stop: threading.Event | None = None,
    ) -> None:
        self.mailbox = mailbox
        self.destination = destination
        self.surface = surface
        self.schemes = schemes
        self.clock = clock
        self.deadline_s = deadline_s
        self.interval_s = interval_s
        self.stop = stop

    def _attempt(self, text: str, signature: str) -> Any:
        """One locate → clear → write → verify pass. Returns the handle on success, None to retry."""
        handle = self.surface.locate_input_surface()
        if handle is None:
            return None

        self.surface.clear(handle)
        self.clock.sleep(CLEAR_SETTLE_S)
        self.surface.write_text(handle, text)
        self.clock.sleep(WRITE_SETTLE_S)

        try:
            self._verify(handle, signature)
        except SignatureMismatch as exc:
            # The host app may have re-rendered or rejected the edit; retry.
            _LOGGER.debug("verify_mismatch reason=%s", exc.reason)
            return None
        return handle

    def _verify(self, handle: Any, signature: str) -> None:
        observed = self.surface.read_text(handle)
        if not contains_signature(observed, signature):
            raise SignatureMismatch(
                action="verify",
                reason=f"composer text does not contain {signature!r}",
                details={"observedChars": len(observed or "")},
            )

    def run_once(self, current_url: str) -> DeliveryReport:
        if not self.destination.is_current_target(current_url):
            return DeliveryReport(NOT_TARGET)

        address = decode_address(current_url, self.schemes)
        if address is None:
            return DeliveryReport(NO_ADDRESS)

        entry = self.mailbox.try_receive(address)
        if entry is None:
            _LOGGER.debug("nothing_to_deliver tab=%s", address.tab_id)
            return DeliveryReport(NOTHING_TO_DELIVER, address)

        signature = signature_of(entry.text)
        result = poll_until(
            lambda: self._attempt(entry.text, signature),
            interval_s=self.interval_s,
            timeout_s=self.deadline_s,
            clock=self.clock,
            stop=self.stop,
        )

        if result.ok:
            self.mailbox.ack(address)
            _LOGGER.info(
                "delivered tab=%s attempts=%d elapsed_ms=%d", address.tab_id, result.attempts, result.elapsed_ms
            )
            return DeliveryReport(DELIVERED, address, result.attempts, result.elapsed_ms)

        if result.cancelled:
            _LOGGER.info("delivery_cancelled tab=%s attempts=%d", address.tab_id, result.attempts)
            return DeliveryReport(CANCELLED, address, result.attempts, result.elapsed_ms)

        error = NoEligibleTarget(
            action="deliver",
            reason=f"composer not found or paste not verified within {self.deadline_s:g}s",
            suggestion="Reopen the same destination URL to retry while the entry is fresh",
            details={"tab": address.tab_id, "attempts": result.attempts},
        )
        _LOGGER.warning(
            "delivery_timeout tab=%s attempts=%d elapsed_ms=%d", address.tab_id, result.attempts, result.elapsed_ms
        )
        return DeliveryReport(TIMEOUT, address, result.attempts, result.elapsed_ms, error=error)
