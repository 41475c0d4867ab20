"""Collaborator interfaces the handoff core talks to.

The CDP-backed implementations live in `tabferry.page_bridge`; tests use small
in-memory fakes.
"""

from __future__ import annotations

from typing import Any, Protocol


class ContentExtractor(Protocol):
    def get_extractable_text(self) -> str: ...

    def is_content_ready(self) -> bool: ...

    def reference_id(self) -> str: ...


class InputSurface(Protocol):
    def locate_input_surface(self) -> Any | None: ...

    def read_text(self, handle: Any) -> str: ...

    def clear(self, handle: Any) -> None: ...

    def write_text(self, handle: Any, text: str) -> bool: ...


class AttachablePage(Protocol):
    def current_url(self) -> str: ...

    def is_visible(self) -> bool: ...

    def is_eligible(self) -> bool: ...

    def has_affordance(self) -> bool: ...

    def insert_affordance(self) -> bool: ...

    def remove_affordance(self) -> None: ...


class TabOpener(Protocol):
    def open(self, url: str) -> None: ...


class Clipboard(Protocol):
    def copy(self, text: str) -> None: ...


class Prompter(Protocol):
    def ask(self, message: str, default: str = "") -> str | None: ...

    def alert(self, message: str) -> None: ...


class AffordanceStatus(Protocol):
    def show(self, state: str) -> None: ...
