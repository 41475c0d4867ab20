from __future__ import annotations

import json
from typing import Any


class _Runner:
    def __init__(self, results: list[Any] | None = None, url: str = "https://www.indeed.com/viewjob?jk=abc") -> None:
        self.results = list(results or [])
        self.url = url
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def eval_js(self, expression: str, *, timeout: float | None = None, user_gesture: bool = False) -> Any:
        self.calls.append((expression, {"timeout": timeout, "user_gesture": user_gesture}))
        return self.results.pop(0) if self.results else None

    def get_url(self) -> str:
        return self.url

    def is_visible(self) -> bool:
        return True


def test_compose_payload_layout() -> None:
    from tabferry.page_bridge import compose_payload

    text = compose_payload(
        {"title": " Data Engineer ", "company": "Acme", "location": "", "description": "Line 1\n\n\n\nLine 2"},
        heading="About the job",
    )
    assert text == "Data Engineer\nAcme\n\nAbout the job\n\nLine 1\n\nLine 2"


def test_source_page_readiness_uses_min_description_length() -> None:
    from tabferry.page_bridge import CdpSourcePage
    from tabferry.sites import INDEED

    short = {"title": "T", "description": "too short"}
    full = {"title": "T", "description": "x" * INDEED.min_description_chars}
    page = CdpSourcePage(_Runner([short, full, {"title": "", "description": "x" * 500}]), INDEED)

    assert not page.is_content_ready()
    assert page.is_content_ready()
    assert not page.is_content_ready()


def test_source_page_reference_id_from_url() -> None:
    from tabferry.page_bridge import CdpSourcePage
    from tabferry.sites import INDEED, LINKEDIN

    assert CdpSourcePage(_Runner(), INDEED).reference_id() == "abc"
    linkedin = _Runner(url="https://www.linkedin.com/jobs/search/?currentJobId=42")
    assert CdpSourcePage(linkedin, LINKEDIN).reference_id() == "42"


def test_copy_runs_with_user_gesture_and_escapes_text() -> None:
    from tabferry.page_bridge import CdpSourcePage
    from tabferry.sites import INDEED

    runner = _Runner([True])
    CdpSourcePage(runner, INDEED).copy('say "hi"\n</script>')
    expression, opts = runner.calls[0]
    assert opts["user_gesture"] is True
    assert '"say \\"hi\\"\\n</script>"' in expression


def test_ask_returns_none_when_cancelled() -> None:
    from tabferry.page_bridge import PROMPT_TIMEOUT_S, CdpSourcePage
    from tabferry.sites import INDEED

    runner = _Runner([None, "https://chatgpt.com/g/x/project"])
    page = CdpSourcePage(runner, INDEED)
    assert page.ask("url?") is None
    assert page.ask("url?", "old") == "https://chatgpt.com/g/x/project"
    assert runner.calls[0][1]["timeout"] == PROMPT_TIMEOUT_S


def test_composer_locate_and_write() -> None:
    from tabferry.page_bridge import CdpComposer
    from tabferry.sites import CHATGPT_COMPOSER

    runner = _Runner(["div#prompt-textarea[contenteditable]", True, "Title\nBody"])
    composer = CdpComposer(runner, CHATGPT_COMPOSER)

    handle = composer.locate_input_surface()
    assert handle == "div#prompt-textarea[contenteditable]"
    assert composer.write_text(handle, "Title\nBody") is True
    assert composer.read_text(handle) == "Title\nBody"


def test_composer_not_found() -> None:
    from tabferry.page_bridge import CdpComposer
    from tabferry.sites import CHATGPT_COMPOSER

    assert CdpComposer(_Runner([None]), CHATGPT_COMPOSER).locate_input_surface() is None


def test_affordance_lookup_is_scoped_to_host() -> None:
    from tabferry.page_bridge import CdpSourcePage
    from tabferry.sites import INDEED

    runner = _Runner([False, True])
    page = CdpSourcePage(runner, INDEED)
    assert page.has_affordance() is False
    assert page.insert_affordance() is True

    lookup, insert = runner.calls[0][0], runner.calls[1][0]
    host_selector = INDEED.affordance_host_selectors[0]
    assert json.dumps(host_selector)[1:-1] in lookup
    assert "host.querySelector" in lookup
    assert "document.querySelector(\".tabferry-check\")" not in lookup
    # Strays outside the current host are dropped before the host is checked.
    assert "!host.contains(b)" in insert
    assert "host.querySelector('.' + " in insert


def test_remove_affordance_clears_every_button() -> None:
    from tabferry.page_bridge import CdpSourcePage
    from tabferry.sites import LINKEDIN

    runner = _Runner([True])
    CdpSourcePage(runner, LINKEDIN).remove_affordance()
    expression = runner.calls[0][0]
    assert 'querySelectorAll(".tabferry-check")' in expression
    assert "remove()" in expression
