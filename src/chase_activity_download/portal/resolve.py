from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Locator
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..errors import ElementNotFound


logger = logging.getLogger(__name__)

# Called with the scope that was searched; used only to log what is on the page.
DiagnosticHook = Callable[[object], None]


@dataclass(frozen=True)
class ResolvedElement:
    selector: str
    locator: Locator
    position: int


def resolve_visible(
    scope,
    candidates: Sequence[str],
    *,
    timeout_ms: int,
    label: str,
    diagnostics: Optional[DiagnosticHook] = None,
) -> ResolvedElement:
    """
    Return the first candidate (in list order) whose first match becomes visible within `timeout_ms`.

    `scope` is a Page or Frame. Each candidate gets its own bounded wait, so the worst case is
    `len(candidates) * timeout_ms`. Raises ElementNotFound when the ladder is exhausted; `diagnostics`
    (if given) runs first and must not affect the outcome.
    """
    for pos, selector in enumerate(candidates):
        loc = scope.locator(selector).first
        try:
            loc.wait_for(state="visible", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("%s: not visible within %dms: %s", label, timeout_ms, selector)
            continue
        except PlaywrightError as e:
            # Malformed selectors or a detached frame; treat as a miss.
            logger.debug("%s: selector failed: %s (%s)", label, selector, e)
            continue
        logger.info("Found %s using selector: %s", label, selector)
        return ResolvedElement(selector=selector, locator=loc, position=pos)

    if diagnostics is not None:
        try:
            diagnostics(scope)
        except Exception:
            logger.debug("Diagnostics for %s failed.", label, exc_info=True)
    raise ElementNotFound(label, candidates)


def probe_first_visible(scope, candidates: Sequence[str], *, timeout_ms: int, label: str) -> Optional[ResolvedElement]:
    """
    Informational variant of resolve_visible: returns None instead of raising.
    """
    try:
        return resolve_visible(scope, candidates, timeout_ms=timeout_ms, label=label)
    except ElementNotFound:
        return None
