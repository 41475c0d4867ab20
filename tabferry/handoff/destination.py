from __future__ import annotations

import logging
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from ..errors import ConfigInvalid, ConfigMissing
from ..store_persist import KeyValueStore
from .ports import Prompter

_LOGGER = logging.getLogger("tabferry.destination")

CONFIG_KEY = "cfg_project_url_v1"
DESTINATION_HOST = "chatgpt.com"
REQUIRED_SEGMENT = "/project"

PROMPT_MESSAGE = (
    "Enter your ChatGPT Project URL (must be a chatgpt.com/.../project link).\n\n"
    "Example:\nhttps://chatgpt.com/g/<your-project-id>/project\n\n"
    "Tip: Shift+Click the button to reconfigure later."
)


@dataclass(frozen=True, slots=True)
class DestinationCheck:
    ok: bool
    reason: str = ""
    url: str = ""


def validate_destination_url(raw: str | None) -> DestinationCheck:
    """Accept only https://chatgpt.com/... URLs whose path contains /project."""
    u = (raw or "").strip()
    if not u:
        return DestinationCheck(False, "empty")
    try:
        parts = urlsplit(u)
    except ValueError:
        return DestinationCheck(False, "not-a-url")
    if not parts.scheme or not parts.netloc:
        return DestinationCheck(False, "not-a-url")
    if parts.scheme.lower() != "https":
        return DestinationCheck(False, "not-https")
    if parts.netloc.lower() != DESTINATION_HOST:
        return DestinationCheck(False, f"not-{DESTINATION_HOST}")
    if REQUIRED_SEGMENT not in parts.path:
        return DestinationCheck(False, f"missing-{REQUIRED_SEGMENT}")
    return DestinationCheck(True, url=urlunsplit((parts.scheme, parts.netloc, parts.path, parts.query, "")))


def invalid_url_message(reason: str) -> str:
    return (
        "Invalid URL.\n\n"
        "Requirements:\n"
        f"- https://{DESTINATION_HOST}/...\n"
        f"- URL path contains {REQUIRED_SEGMENT}\n\n"
        f"Reason: {reason}"
    )


class DestinationSettings:
    """The one persisted, process-wide destination URL."""

    def __init__(self, store: KeyValueStore, *, key: str = CONFIG_KEY) -> None:
        self.store = store
        self.key = key

    def get(self) -> str:
        raw = self.store.get(self.key, "")
        return raw if isinstance(raw, str) else ""

    def current(self) -> DestinationCheck:
        return validate_destination_url(self.get())

    def save(self, url: str) -> str:
        check = validate_destination_url(url)
        if not check.ok:
            raise ConfigInvalid(
                action="configure",
                reason=check.reason,
                suggestion=f"Use an https://{DESTINATION_HOST}/.../project URL",
                details={"url": url},
            )
        self.store.put(self.key, check.url)
        _LOGGER.info("destination_saved url=%s", check.url)
        return check.url

    def resolve(self, *, force: bool = False, prompter: Prompter | None = None) -> str:
        existing = self.get()
        if not force:
            check = validate_destination_url(existing)
            if check.ok:
                return check.url

        if prompter is None:
            raise ConfigMissing(
                action="resolve_destination",
                reason="no valid destination URL configured",
                suggestion="Run `tabferry configure https://chatgpt.com/g/<id>/project`",
            )

        answer = prompter.ask(PROMPT_MESSAGE, existing or "")
        check = validate_destination_url(answer)
        if not check.ok:
            prompter.alert(invalid_url_message(check.reason))
            raise ConfigInvalid(
                action="resolve_destination",
                reason=check.reason,
                suggestion="Shift+Click the button and enter a valid project URL",
                details={"answer": answer or ""},
            )
        return self.save(check.url)

    def is_current_target(self, url: str) -> bool:
        """True when `url` is on the configured origin and under its path."""
        check = self.current()
        if not check.ok:
            return False
        try:
            current = urlsplit(url)
            target = urlsplit(check.url)
        except ValueError:
            return False
        if (current.scheme.lower(), current.netloc.lower()) != (target.scheme.lower(), target.netloc.lower()):
            return False
        return current.path.startswith(target.path)
