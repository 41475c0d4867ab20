from __future__ import annotations

from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlsplit

from ..handoff.address import AddressScheme
from ..handoff.attachment import RouteGuard


@dataclass(frozen=True)
class SiteProfile:
    """Selectors and addressing for one source site.

    Selector lists are tried in order; the first matching element wins.
    """

    name: str
    scheme: AddressScheme
    host_suffixes: tuple[str, ...]
    marker_selectors: tuple[str, ...]
    title_selectors: tuple[str, ...]
    description_selectors: tuple[str, ...]
    affordance_host_selectors: tuple[str, ...]
    company_selectors: tuple[str, ...] = ()
    location_selectors: tuple[str, ...] = ()
    description_heading: str = ""
    min_description_chars: int = 1
    ref_params: tuple[str, ...] = ()
    guard: RouteGuard = field(default_factory=RouteGuard)
    affordance_class: str = "tabferry-check"
    label: str = "Check Suitability"

    def matches_host(self, url: str) -> bool:
        try:
            host = (urlsplit(url).hostname or "").lower()
        except ValueError:
            return False
        return any(host == s or host.endswith("." + s) for s in self.host_suffixes)

    def reference_from(self, url: str) -> str:
        """Opaque cross-reference id (e.g. the job key) from the page URL."""
        try:
            query = dict(parse_qsl(urlsplit(url).query))
        except ValueError:
            return ""
        for name in self.ref_params:
            if query.get(name):
                return query[name]
        return ""


@dataclass(frozen=True)
class ComposerProfile:
    """Where the destination input surface lives."""

    name: str
    selectors: tuple[str, ...]
