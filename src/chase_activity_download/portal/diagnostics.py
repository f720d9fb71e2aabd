from __future__ import annotations

import logging
from typing import Any, Optional

from .resolve import DiagnosticHook


logger = logging.getLogger(__name__)


_DESCRIBE_JS = """
(el) => ({
  tagName: el.tagName,
  id: el.id || '',
  className: typeof el.className === 'string' ? el.className : '',
  textContent: (el.textContent || '').trim().slice(0, 120),
  type: el.type || '',
  disabled: !!el.disabled,
  ariaLabel: el.getAttribute('aria-label') || '',
})
"""


def describe_elements(scope, selector: str, *, limit: Optional[int] = None) -> list[dict[str, Any]]:
    """
    Summarize elements matching a coarse selector. Never raises.
    """
    try:
        matches = scope.locator(selector).all()
    except Exception:
        logger.debug("Could not enumerate selector=%s", selector, exc_info=True)
        return []

    if limit is not None:
        matches = matches[:limit]

    out: list[dict[str, Any]] = []
    for loc in matches:
        try:
            out.append(loc.evaluate(_DESCRIBE_JS))
        except Exception:
            continue
    return out


def element_listing(selector: str, title: str, *, limit: Optional[int] = None) -> DiagnosticHook:
    def _hook(scope) -> None:
        infos = describe_elements(scope, selector, limit=limit)
        if not infos:
            logger.info("%s: none found (selector=%s)", title, selector)
            return
        logger.info("%s: %d found (selector=%s)", title, len(infos), selector)
        for i, info in enumerate(infos, start=1):
            logger.info("  %s %d: %s", title, i, info)

    return _hook


def body_text_hint(needle: str, *, fallback: str = "") -> DiagnosticHook:
    """
    Log whether `needle` (or the looser `fallback`) appears anywhere in the page text, case-insensitive.
    """

    def _hook(scope) -> None:
        try:
            text = (scope.inner_text("body") or "").lower()
        except Exception:
            logger.debug("Could not read body text for diagnostics.", exc_info=True)
            return
        if needle.lower() in text:
            logger.info("Found %r in page content (case-insensitive)", needle)
        elif fallback and fallback.lower() in text:
            logger.info("Found %r text in page content", fallback)
        else:
            logger.info("No %r related text found in page content", fallback or needle)

    return _hook


def chain(*hooks: DiagnosticHook) -> DiagnosticHook:
    def _hook(scope) -> None:
        for h in hooks:
            try:
                h(scope)
            except Exception:
                logger.debug("Diagnostic hook failed.", exc_info=True)

    return _hook
