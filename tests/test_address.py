from __future__ import annotations

from urllib.parse import parse_qs, urlsplit


def test_encode_appends_address_params_and_keeps_fragment() -> None:
    from tabferry.sites import INDEED

    url = INDEED.scheme.encode("https://chatgpt.com/g/g-p-1/project?x=1#top", "abc", "Data Engineer", "jk42")
    parts = urlsplit(url)
    query = parse_qs(parts.query)
    assert parts.fragment == "top"
    assert query["x"] == ["1"]
    assert query["in_rfc_tab"] == ["abc"]
    assert query["in_rfc_sig"] == ["Data Engineer"]
    assert query["in_job"] == ["jk42"]


def test_encode_overwrites_previous_address() -> None:
    from tabferry.sites import LINKEDIN

    first = LINKEDIN.scheme.encode("https://chatgpt.com/g/g-p-1/project", "old", "sig")
    second = LINKEDIN.scheme.encode(first, "new", "sig2")
    query = parse_qs(urlsplit(second).query, keep_blank_values=True)
    assert query["li_rfc_tab"] == ["new"]
    assert query["li_rfc_sig"] == ["sig2"]
    assert query["li_job"] == [""]


def test_decode_address_matches_scheme() -> None:
    from tabferry.handoff.address import decode_address, signature_from
    from tabferry.sites import INDEED, all_schemes

    url = INDEED.scheme.encode("https://chatgpt.com/g/g-p-1/project", "tab1", "Title")
    address = decode_address(url, all_schemes())
    assert address is not None
    assert address.tab_id == "tab1"
    assert address.payload_key == "in_job_payload_tab_tab1"
    assert address.ts_key == "in_job_payload_ts_tab_tab1"
    assert signature_from(url, all_schemes()) == "Title"


def test_decode_address_without_params() -> None:
    from tabferry.handoff.address import decode_address
    from tabferry.sites import all_schemes

    assert decode_address("https://chatgpt.com/g/g-p-1/project", all_schemes()) is None
    assert decode_address("https://chatgpt.com/g/g-p-1/project?li_rfc_tab=%20", all_schemes()) is None


def test_tab_identities_are_unique() -> None:
    from tabferry.handoff.address import TabContext

    assert TabContext().tab_id != TabContext().tab_id
