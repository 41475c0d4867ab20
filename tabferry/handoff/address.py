"""Tab identity and mailbox addressing.

An address is `(key prefix, tab identity)`: it namespaces one producer/consumer
pairing in the shared store and travels to the destination tab in the URL.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def new_tab_identity() -> str:
    return uuid.uuid4().hex


@dataclass
class TabContext:
    """Per page-load state, created once and injected where needed."""

    tab_id: str = field(default_factory=new_tab_identity)
    last_href: str = ""
    attached: bool = False


@dataclass(frozen=True, slots=True)
class Address:
    payload_prefix: str
    ts_prefix: str
    tab_id: str

    @property
    def payload_key(self) -> str:
        return self.payload_prefix + self.tab_id

    @property
    def ts_key(self) -> str:
        return self.ts_prefix + self.tab_id


@dataclass(frozen=True, slots=True)
class AddressScheme:
    """Store key prefixes and URL parameter names for one source site."""

    payload_prefix: str
    ts_prefix: str
    tab_param: str
    sig_param: str
    ref_param: str

    def address(self, tab_id: str) -> Address:
        return Address(self.payload_prefix, self.ts_prefix, tab_id)

    def encode(self, url: str, tab_id: str, signature: str, ref: str | None = None) -> str:
        """Append (or overwrite) the address, signature and reference query parameters."""
        parts = urlsplit(url)
        ours = {self.tab_param, self.sig_param, self.ref_param}
        query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in ours]
        query.append((self.tab_param, tab_id))
        query.append((self.sig_param, signature))
        query.append((self.ref_param, ref or ""))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

    def tab_id_from(self, url: str) -> str:
        for k, v in parse_qsl(urlsplit(url).query, keep_blank_values=True):
            if k == self.tab_param and v.strip():
                return v.strip()
        return ""


def decode_address(url: str, schemes: list[AddressScheme]) -> Address | None:
    """Return the address carried by `url` under the first scheme that matches."""
    for scheme in schemes:
        tab_id = scheme.tab_id_from(url)
        if tab_id:
            return scheme.address(tab_id)
    return None


def signature_from(url: str, schemes: list[AddressScheme]) -> str:
    query = dict(parse_qsl(urlsplit(url).query, keep_blank_values=True))
    for scheme in schemes:
        if query.get(scheme.tab_param):
            return query.get(scheme.sig_param, "")
    return ""
