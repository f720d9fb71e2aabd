from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional


logger = logging.getLogger(__name__)


@dataclass
class TraceEvent:
    step: int
    name: str
    url: str = ""
    level: int = logging.INFO
    detail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "step": self.step,
            "name": self.name,
            "url": self.url,
            "level": logging.getLevelName(self.level),
            "detail": {k: str(v) for k, v in self.detail.items()},
        }


class RunTrace:
    """
    Step-by-step narration of a download run.

    Components receive the trace explicitly and report decision points through it. Every event is logged
    and kept in memory so a run summary / debug bundle can include it. When `step_screenshots` is enabled
    a full-page screenshot is saved per step under `debug_dir`.
    """

    def __init__(
        self,
        *,
        debug_dir: Optional[str] = None,
        step_screenshots: bool = False,
        capture_on_failure: bool = True,
        step_delay_ms: int = 0,
    ) -> None:
        self.debug_dir = Path(debug_dir) if debug_dir else None
        self.step_screenshots = bool(step_screenshots and self.debug_dir)
        self.capture_on_failure = bool(capture_on_failure and self.debug_dir)
        self.step_delay_ms = int(step_delay_ms or 0)
        self.events: list[TraceEvent] = []
        self._counter = 0

    def step(self, name: str, /, page=None, **detail: Any) -> TraceEvent:
        return self._record(logging.INFO, name, page, detail)

    def warn(self, name: str, /, page=None, **detail: Any) -> TraceEvent:
        return self._record(logging.WARNING, name, page, detail)

    def fail(self, name: str, /, page=None, **detail: Any) -> TraceEvent:
        ev = self._record(logging.ERROR, name, page, detail)
        if page is not None and self.capture_on_failure:
            self.capture(page, name_prefix=f"fail_{ev.step:02d}_{_safe_name(name)}")
        return ev

    def capture(self, page, *, name_prefix: str) -> None:
        """
        Best-effort snapshot of the current page (png + html + body text).
        """
        if self.debug_dir is None:
            return
        try:
            self.debug_dir.mkdir(parents=True, exist_ok=True)
            page.screenshot(path=str(self.debug_dir / f"{name_prefix}.png"), full_page=True)
            (self.debug_dir / f"{name_prefix}.html").write_text(page.content(), encoding="utf-8")
            try:
                (self.debug_dir / f"{name_prefix}.txt").write_text(page.inner_text("body"), encoding="utf-8")
            except Exception:
                pass
        except Exception:
            logger.debug("Failed to save debug artifacts (prefix=%s).", name_prefix, exc_info=True)

    def to_jsonable(self) -> list[dict[str, Any]]:
        return [ev.to_dict() for ev in self.events]

    def _record(self, level: int, name: str, page, detail: dict[str, Any]) -> TraceEvent:
        self._counter += 1
        url = ""
        if page is not None:
            try:
                url = page.url or ""
            except Exception:
                url = ""

        ev = TraceEvent(step=self._counter, name=name, url=url, level=level, detail=dict(detail))
        self.events.append(ev)

        if detail:
            extras = " ".join(f"{k}={v!r}" for k, v in detail.items())
            logger.log(level, "Step %02d %s %s", ev.step, name, extras)
        else:
            logger.log(level, "Step %02d %s", ev.step, name)

        if page is not None and self.step_screenshots and level == logging.INFO:
            try:
                assert self.debug_dir is not None
                self.debug_dir.mkdir(parents=True, exist_ok=True)
                page.screenshot(
                    path=str(self.debug_dir / f"step_{ev.step:02d}_{_safe_name(name)}.png"),
                    full_page=True,
                )
            except Exception:
                logger.debug("Failed to save step screenshot (name=%s).", name, exc_info=True)
            if self.step_delay_ms > 0:
                try:
                    page.wait_for_timeout(self.step_delay_ms)
                except Exception:
                    pass

        return ev


def _safe_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_-]+", "_", name).strip("_")[:60] or "step"
