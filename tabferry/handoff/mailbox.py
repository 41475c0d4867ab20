"""Mailbox over the shared store: send / try_receive / ack by address.

Isolation comes from the address namespace only; the store has no locking
beyond last-writer-wins and no access control.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from ..errors import StaleEntry
from ..store_persist import KeyValueStore
from .address import Address, AddressScheme
from .polling import Clock

_LOGGER = logging.getLogger("tabferry.mailbox")

STALE_AFTER_MS = 10 * 60_000


@dataclass(frozen=True, slots=True)
class PayloadEntry:
    text: str
    written_at_ms: int

    def age_ms(self, now_ms: int) -> int:
        return now_ms - self.written_at_ms

    def is_stale(self, now_ms: int, window_ms: int = STALE_AFTER_MS) -> bool:
        return self.age_ms(now_ms) > window_ms


def _as_int(raw: object) -> int:
    try:
        return int(raw)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0


class Mailbox:
    def __init__(self, store: KeyValueStore, clock: Clock, *, stale_after_ms: int = STALE_AFTER_MS) -> None:
        self.store = store
        self.clock = clock
        self.stale_after_ms = stale_after_ms

    def send(self, address: Address, text: str) -> PayloadEntry:
        """Write payload then timestamp; both are durable when this returns."""
        entry = PayloadEntry(text=text, written_at_ms=self.clock.now_ms())
        self.store.put(address.payload_key, entry.text)
        self.store.put(address.ts_key, entry.written_at_ms)
        _LOGGER.debug("mailbox_send key=%s chars=%d", address.payload_key, len(text))
        return entry

    def peek(self, address: Address) -> PayloadEntry | None:
        text = self.store.get(address.payload_key, "")
        if not isinstance(text, str) or not text:
            return None
        return PayloadEntry(text=text, written_at_ms=_as_int(self.store.get(address.ts_key, 0)))

    def receive(self, address: Address) -> PayloadEntry | None:
        """Like try_receive, but an expired entry raises StaleEntry."""
        entry = self.peek(address)
        if entry is None:
            return None
        now = self.clock.now_ms()
        if entry.is_stale(now, self.stale_after_ms):
            raise StaleEntry(
                action="receive",
                reason=f"entry is {entry.age_ms(now)} ms old",
                details={"key": address.payload_key, "ageMs": entry.age_ms(now)},
            )
        return entry

    def try_receive(self, address: Address) -> PayloadEntry | None:
        try:
            return self.receive(address)
        except StaleEntry as exc:
            # Abandoned tabs leave these behind; expected, not an error.
            _LOGGER.debug("mailbox_stale key=%s age_ms=%s", address.payload_key, exc.details.get("ageMs"))
            return None

    def ack(self, address: Address) -> None:
        """Clear the entry so it cannot be delivered again."""
        self.store.put(address.payload_key, "")
        self.store.put(address.ts_key, 0)
        _LOGGER.debug("mailbox_ack key=%s", address.payload_key)

    def _addresses(self, schemes: Iterable[AddressScheme]) -> list[Address]:
        keys = self.store.keys()
        out: list[Address] = []
        for scheme in schemes:
            for key in keys:
                if key.startswith(scheme.payload_prefix):
                    out.append(scheme.address(key[len(scheme.payload_prefix) :]))
        return out

    def entries(self, schemes: Iterable[AddressScheme]) -> list[tuple[Address, PayloadEntry]]:
        """Live (non-empty) entries, stale ones included, for inspection."""
        out: list[tuple[Address, PayloadEntry]] = []
        for address in self._addresses(schemes):
            entry = self.peek(address)
            if entry is not None:
                out.append((address, entry))
        return out

    def purge_stale(self, schemes: Iterable[AddressScheme]) -> int:
        """Delete expired and already-acknowledged entries; return how many addresses were removed."""
        now = self.clock.now_ms()
        removed = 0
        for address in self._addresses(schemes):
            entry = self.peek(address)
            if entry is not None and not entry.is_stale(now, self.stale_after_ms):
                continue
            self.store.delete(address.payload_key)
            self.store.delete(address.ts_key)
            removed += 1
        if removed:
            _LOGGER.info("mailbox_purge removed=%d", removed)
        return removed
