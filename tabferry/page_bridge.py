"""CDP-backed collaborators: the page-side half of the bridge.

Every method runs a small script in the tab through `BrowserSession.eval_js`.
Selectors and text are passed through `json.dumps`, never interpolated raw.
"""

from __future__ import annotations

import json
from typing import Any, Protocol

from .handoff.signature import normalize
from .launcher import BrowserLauncher
from .sites.base import ComposerProfile, SiteProfile

BINDING_NAME = "__tabferrySignal"
PROMPT_TIMEOUT_S = 600.0

STATUS_LABELS = {
    "preparing": "Preparing…",
    "config": "Config…",
    "opened": "Opened",
    "failed": "Failed",
}
# ms before a transient label returns to the idle label
STATUS_RESET_MS = {"opened": 800, "failed": 1000}


class ScriptRunner(Protocol):
    def eval_js(self, expression: str, *, timeout: float | None = None, user_gesture: bool = False) -> Any: ...

    def get_url(self) -> str: ...

    def is_visible(self) -> bool: ...


def _first_match_js(selectors: tuple[str, ...] | list[str], root: str = "document") -> str:
    return f"{json.dumps(list(selectors))}.map((s) => {root}.querySelector(s)).find(Boolean)"


_TEXT_OF_JS = "(el) => (el ? (el.innerText || el.textContent || '') : '')"


def signal_hooks_js(binding: str = BINDING_NAME) -> str:
    """Forward the page's cheap lifecycle signals to the worker through the binding."""
    name = json.dumps(binding)
    return f"""
(() => {{
  if (window.__tabferryHooks) return true;
  window.__tabferryHooks = true;
  const send = (kind) => {{
    try {{ const b = window[{name}]; if (typeof b === 'function') b(JSON.stringify({{ kind }})); }} catch (e) {{}}
  }};
  window.addEventListener('pageshow', () => send('pageshow'));
  window.addEventListener('focus', () => send('focus'));
  window.addEventListener('load', () => send('load'));
  document.addEventListener('visibilitychange', () => send('visibilitychange'));
  return true;
}})()
"""


def compose_payload(fields: dict[str, Any], heading: str = "") -> str:
    """Header lines (title, company, location), a blank line, then the description."""
    header = "\n".join(
        v for v in (normalize(str(fields.get(k) or "")) for k in ("title", "company", "location")) if v
    )
    description = normalize(str(fields.get("description") or ""))
    if heading:
        description = f"{heading}\n\n{description}"
    return normalize("\n".join([header, "", description]))


class CdpSourcePage:
    """Source tab: extractor, attachable page, clipboard, prompter and button status."""

    def __init__(self, session: ScriptRunner, site: SiteProfile, *, binding: str = BINDING_NAME) -> None:
        self.session = session
        self.site = site
        self.binding = binding

    # AttachablePage

    def current_url(self) -> str:
        return self.session.get_url()

    def is_visible(self) -> bool:
        return self.session.is_visible()

    def is_eligible(self) -> bool:
        return bool(self.session.eval_js(f"!!({_first_match_js(self.site.marker_selectors)})"))

    def has_affordance(self) -> bool:
        cls = json.dumps("." + self.site.affordance_class)
        host = _first_match_js(self.site.affordance_host_selectors)
        # Only a button inside the current host counts; a stray one elsewhere is replaced on insert.
        expr = f"(() => {{ const host = {host}; return !!(host && host.querySelector({cls})); }})()"
        return bool(self.session.eval_js(expr))

    def insert_affordance(self) -> bool:
        cls = json.dumps(self.site.affordance_class)
        expr = f"""
(() => {{
  const host = {_first_match_js(self.site.affordance_host_selectors)};
  if (!host) return false;
  document.querySelectorAll('.' + {cls}).forEach((b) => {{ if (!host.contains(b)) b.remove(); }});
  if (host.querySelector('.' + {cls})) return true;
  const btn = document.createElement('button');
  btn.type = 'button';
  btn.className = {cls};
  btn.textContent = {json.dumps(self.site.label)};
  btn.dataset.idleLabel = btn.textContent;
  btn.style.cssText = 'margin-left:10px;padding:4px 10px;border-radius:999px;border:1px solid #999;'
    + 'background:#fff;cursor:pointer;font-size:12px;font-weight:600;white-space:nowrap;vertical-align:middle;';
  btn.addEventListener('click', (e) => {{
    e.preventDefault();
    e.stopPropagation();
    const b = window[{json.dumps(self.binding)}];
    if (typeof b === 'function') b(JSON.stringify({{ kind: 'click', shift: !!e.shiftKey }}));
  }});
  host.appendChild(btn);
  return true;
}})()
"""
        return bool(self.session.eval_js(expr))

    def remove_affordance(self) -> None:
        cls = json.dumps("." + self.site.affordance_class)
        self.session.eval_js(f"document.querySelectorAll({cls}).forEach((b) => b.remove()), true")

    # ContentExtractor

    def _fields(self) -> dict[str, Any]:
        site = self.site
        expr = f"""
(() => {{
  const text = {_TEXT_OF_JS};
  return {{
    title: text({_first_match_js(site.title_selectors)}),
    company: text({_first_match_js(site.company_selectors)}),
    location: (text({_first_match_js(site.location_selectors)}) || '').split('\\n')[0],
    description: text({_first_match_js(site.description_selectors)}),
  }};
}})()
"""
        fields = self.session.eval_js(expr)
        return fields if isinstance(fields, dict) else {}

    def is_content_ready(self) -> bool:
        fields = self._fields()
        title = normalize(str(fields.get("title") or ""))
        description = normalize(str(fields.get("description") or ""))
        return bool(title) and len(description) >= self.site.min_description_chars

    def get_extractable_text(self) -> str:
        return compose_payload(self._fields(), self.site.description_heading)

    def reference_id(self) -> str:
        return self.site.reference_from(self.current_url())

    # Clipboard

    def copy(self, text: str) -> None:
        expr = f"""
(async () => {{
  const value = {json.dumps(text)};
  try {{ await navigator.clipboard.writeText(value); return true; }} catch (e) {{}}
  const ta = document.createElement('textarea');
  ta.value = value;
  ta.style.position = 'fixed';
  ta.style.opacity = '0';
  document.body.appendChild(ta);
  ta.select();
  const ok = document.execCommand('copy');
  ta.remove();
  if (!ok) throw new Error('clipboard write rejected');
  return true;
}})()
"""
        self.session.eval_js(expr, user_gesture=True)

    # Prompter

    def ask(self, message: str, default: str = "") -> str | None:
        answer = self.session.eval_js(
            f"window.prompt({json.dumps(message)}, {json.dumps(default)})", timeout=PROMPT_TIMEOUT_S
        )
        return answer if isinstance(answer, str) else None

    def alert(self, message: str) -> None:
        # Deferred so the evaluate call returns instead of blocking on the dialog.
        self.session.eval_js(f"setTimeout(() => window.alert({json.dumps(message)}), 0), true")

    # AffordanceStatus

    def show(self, state: str) -> None:
        cls = json.dumps("." + self.site.affordance_class)
        label = json.dumps(STATUS_LABELS.get(state, ""))
        reset_ms = int(STATUS_RESET_MS.get(state, 0))
        expr = f"""
(() => {{
  const btn = document.querySelector({cls});
  if (!btn) return false;
  const idle = btn.dataset.idleLabel || btn.textContent;
  const label = {label};
  btn.textContent = label || idle;
  btn.disabled = !!label && {reset_ms} === 0;
  if ({reset_ms} > 0) setTimeout(() => {{ btn.textContent = idle; btn.disabled = false; }}, {reset_ms});
  return true;
}})()
"""
        self.session.eval_js(expr)


class CdpComposer:
    """Destination input surface. The handle is the selector that matched."""

    def __init__(self, session: ScriptRunner, profile: ComposerProfile) -> None:
        self.session = session
        self.profile = profile

    def current_url(self) -> str:
        return self.session.get_url()

    def locate_input_surface(self) -> str | None:
        selectors = json.dumps(list(self.profile.selectors))
        found = self.session.eval_js(f"{selectors}.find((s) => !!document.querySelector(s)) || null")
        return found if isinstance(found, str) and found else None

    def read_text(self, handle: str) -> str:
        expr = f"""
(() => {{
  const el = document.querySelector({json.dumps(handle)});
  if (!el) return '';
  if (el.tagName === 'TEXTAREA') return el.value || '';
  return el.innerText || el.textContent || '';
}})()
"""
        text = self.session.eval_js(expr)
        return text if isinstance(text, str) else ""

    def clear(self, handle: str) -> None:
        expr = f"""
(() => {{
  const el = document.querySelector({json.dumps(handle)});
  if (!el) return false;
  if (el.tagName === 'TEXTAREA') {{
    el.value = '';
  }} else {{
    el.focus();
    try {{ document.execCommand('selectAll'); document.execCommand('delete'); }} catch (e) {{}}
  }}
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  return true;
}})()
"""
        self.session.eval_js(expr)

    def write_text(self, handle: str, text: str) -> bool:
        expr = f"""
(() => {{
  const el = document.querySelector({json.dumps(handle)});
  if (!el) return false;
  const text = {json.dumps(text)};
  let ok = false;
  if (el.tagName === 'TEXTAREA') {{
    el.value = text;
    ok = true;
  }} else {{
    el.focus();
    try {{ ok = document.execCommand('insertText', false, text); }} catch (e) {{ ok = false; }}
    if (!ok) {{
      try {{ el.textContent = text; ok = true; }} catch (e) {{ ok = false; }}
    }}
  }}
  el.dispatchEvent(new Event('input', {{ bubbles: true }}));
  return ok;
}})()
"""
        return bool(self.session.eval_js(expr))


class CdpTabOpener:
    """Fire-and-forget new tab; nothing is tracked after creation."""

    def __init__(self, launcher: BrowserLauncher) -> None:
        self.launcher = launcher

    def open(self, url: str) -> None:
        self.launcher.create_tab(url)
