"""Handoff error taxonomy.

Configuration and readiness failures are raised to the user who clicked;
delivery-side conditions are logged on the destination tab only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HandoffError(Exception):
    """Structured error with an actionable suggestion."""

    action: str
    reason: str
    suggestion: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        text = f"{self.action} failed: {self.reason}"
        if self.suggestion:
            text += f". Suggestion: {self.suggestion}"
        return text

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": True,
            "code": self.code,
            "action": self.action,
            "reason": self.reason,
            "suggestion": self.suggestion,
            "details": self.details,
        }


class ConfigMissing(HandoffError):
    """No valid destination URL is configured and none could be asked for."""


class ConfigInvalid(HandoffError):
    """The user supplied a destination URL that failed validation."""


class ContentNotReady(HandoffError):
    """The source page did not expose enough content within the wait budget."""


class NoEligibleTarget(HandoffError):
    """The destination input surface never accepted the payload before the deadline."""


class SignatureMismatch(HandoffError):
    """Post-injection read-back did not contain the expected signature."""


class StaleEntry(HandoffError):
    """Mailbox entry is older than the staleness window."""


__all__ = [
    "ConfigInvalid",
    "ConfigMissing",
    "ContentNotReady",
    "HandoffError",
    "NoEligibleTarget",
    "SignatureMismatch",
    "StaleEntry",
]
