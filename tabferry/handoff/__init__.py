"""Cross-tab handoff core: addressing, mailbox, producer, attachment loop, consumer.

Nothing in this package talks to a browser directly; see `tabferry.page_bridge`
for the CDP-backed collaborators.
"""

from __future__ import annotations

from .address import Address, AddressScheme, TabContext, decode_address, new_tab_identity
from .attachment import AttachmentController, AttachmentLoop, RouteGuard, TickResult
from .consumer import DeliveryReport, HandoffConsumer
from .destination import DestinationSettings, validate_destination_url
from .mailbox import Mailbox, PayloadEntry
from .polling import PollResult, SystemClock, poll_until
from .producer import HandoffProducer, HandoffTicket
from .signature import contains_signature, normalize, signature_of

__all__ = [
    "Address",
    "AddressScheme",
    "AttachmentController",
    "AttachmentLoop",
    "DeliveryReport",
    "DestinationSettings",
    "HandoffConsumer",
    "HandoffProducer",
    "HandoffTicket",
    "Mailbox",
    "PayloadEntry",
    "PollResult",
    "RouteGuard",
    "SystemClock",
    "TabContext",
    "TickResult",
    "contains_signature",
    "decode_address",
    "new_tab_identity",
    "normalize",
    "poll_until",
    "signature_of",
    "validate_destination_url",
]
