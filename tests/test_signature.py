from __future__ import annotations


def test_signature_ignores_whitespace_differences() -> None:
    from tabferry.handoff.signature import signature_of

    a = "Senior   Data Engineer\t \nAcme Corp\n\n\n\nAbout the job"
    b = "  Senior Data Engineer\nAcme Corp"
    assert signature_of(a) == signature_of(b) == "Senior Data Engineer"


def test_signature_is_first_line_truncated() -> None:
    from tabferry.handoff.signature import SIGNATURE_LENGTH, signature_of

    title = "x" * 100
    sig = signature_of(f"{title}\nsecond line")
    assert len(sig) == SIGNATURE_LENGTH
    assert sig == title[:SIGNATURE_LENGTH]


def test_signature_of_empty_text() -> None:
    from tabferry.handoff.signature import signature_of

    assert signature_of("") == ""
    assert signature_of(None) == ""
    assert signature_of("\n\n   \n") == ""


def test_normalize_collapses_blank_runs_and_trailing_spaces() -> None:
    from tabferry.handoff.signature import normalize

    assert normalize("a  \n\n\n\nb c  ") == "a\n\nb c"


def test_contains_signature_is_case_insensitive_substring() -> None:
    from tabferry.handoff.signature import contains_signature

    observed = "Paste:\nSENIOR  data engineer\nAcme"
    assert contains_signature(observed, "Senior Data Engineer")
    assert not contains_signature(observed, "Staff Engineer")
    assert not contains_signature(observed, "")
    assert not contains_signature(None, "Senior")
