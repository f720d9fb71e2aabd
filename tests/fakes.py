from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Iterator, Optional

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError


class FakeElement:
    def __init__(
        self,
        *,
        visible: bool = True,
        text: str = "",
        attrs: Optional[dict[str, Optional[str]]] = None,
        disabled: bool = False,
        on_click: Optional[Callable[["FakePage"], None]] = None,
        on_press: Optional[Callable[["FakePage", str], None]] = None,
    ) -> None:
        self.visible = visible
        self.text = text
        self.attrs = dict(attrs or {})
        self.disabled = disabled
        self.on_click = on_click
        self.on_press = on_press


class FakeDownload:
    def __init__(self, suggested_filename: str, data: bytes = b"date,amount\n") -> None:
        self.suggested_filename = suggested_filename
        self.data = data

    def save_as(self, path: str) -> None:
        Path(path).write_bytes(self.data)


class _EventInfo:
    value: Any = None


class FakeLocator:
    def __init__(self, page: "FakePage", selector: str, idx: int = 0) -> None:
        self.page = page
        self.selector = selector
        self.idx = idx

    @property
    def first(self) -> "FakeLocator":
        return self

    def _el(self) -> Optional[FakeElement]:
        els = self.page.elements.get(self.selector, [])
        return els[self.idx] if self.idx < len(els) else None

    def _require(self) -> FakeElement:
        el = self._el()
        if el is None:
            raise PlaywrightTimeoutError(f"Timeout exceeded waiting for {self.selector}")
        return el

    def wait_for(self, *, state: str = "visible", timeout: Optional[float] = None) -> None:
        self.page.probes.append((self.selector, timeout))
        el = self._el()
        if el is None or not el.visible:
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded waiting for {self.selector}")

    def is_visible(self) -> bool:
        el = self._el()
        return bool(el and el.visible)

    def click(self, *, timeout: Optional[float] = None) -> None:
        el = self._require()
        self.page.actions.append(("click", self.selector))
        if el.on_click:
            el.on_click(self.page)

    def press(self, key: str) -> None:
        el = self._require()
        self.page.actions.append(("press", self.selector, key))
        if el.on_press:
            el.on_press(self.page, key)

    def highlight(self) -> None:
        return None

    def get_attribute(self, name: str) -> Optional[str]:
        return self._require().attrs.get(name)

    def text_content(self, timeout: Optional[float] = None) -> Optional[str]:
        return self._require().text

    def is_disabled(self) -> bool:
        return self._require().disabled

    def bounding_box(self) -> Optional[dict[str, float]]:
        return {"x": 10.0, "y": 20.0, "width": 100.0, "height": 30.0} if self._el() else None

    def count(self) -> int:
        return len(self.page.elements.get(self.selector, []))

    def all(self) -> list["FakeLocator"]:
        return [FakeLocator(self.page, self.selector, i) for i in range(self.count())]

    def evaluate(self, js: str) -> dict[str, Any]:
        el = self._require()
        return {"tagName": "BUTTON", "textContent": el.text, "disabled": el.disabled}


class FakePage:
    def __init__(self, *, url: str = "https://secure.chase.com/web/auth/dashboard") -> None:
        self.url = url
        self.elements: dict[str, list[FakeElement]] = {}
        self.actions: list[tuple] = []
        self.probes: list[tuple[str, Optional[float]]] = []
        self.waits: list[int] = []
        self.download_timeouts: list[Optional[float]] = []
        self.body_text = ""
        self.context = SimpleNamespace(pages=[self])
        self._fired: list[FakeDownload] = []

    def add(self, selector: str, element: FakeElement) -> FakeElement:
        self.elements.setdefault(selector, []).append(element)
        return element

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, selector)

    def goto(self, url: str, **_: Any) -> None:
        self.actions.append(("goto", url))
        self.url = url

    def wait_for_timeout(self, ms: int) -> None:
        self.waits.append(ms)

    def fire_download(self, download: FakeDownload) -> None:
        self._fired.append(download)

    @contextmanager
    def expect_download(self, *, timeout: Optional[float] = None) -> Iterator[_EventInfo]:
        self.download_timeouts.append(timeout)
        info = _EventInfo()
        start = len(self._fired)
        yield info
        fired = self._fired[start:]
        if not fired:
            raise PlaywrightTimeoutError(f'Timeout {timeout}ms exceeded while waiting for event "download"')
        info.value = fired[0]

    def wait_for_event(self, event: str, *, timeout: Optional[float] = None) -> Any:
        raise PlaywrightTimeoutError(f'Timeout {timeout}ms exceeded while waiting for event "{event}"')

    def screenshot(self, *, path: str, full_page: bool = False) -> None:
        Path(path).write_bytes(b"png")

    def content(self) -> str:
        return "<html><body></body></html>"

    def inner_text(self, selector: str) -> str:
        return self.body_text

    def clicks(self) -> list[str]:
        return [a[1] for a in self.actions if a[0] == "click"]

    def presses(self) -> list[tuple[str, str]]:
        return [(a[1], a[2]) for a in self.actions if a[0] == "press"]


ACCOUNT_SELECT = "mds-select#account-selector"
PERIOD_CONTROL = "#select-downloadActivityOptionId"
PERIOD_OPTION = 'mds-option:has-text("Since last statement")'
DOWNLOAD_BUTTON = 'button.button--primary:has-text("Download")'
DOWNLOAD_ANOTHER = 'button.button--secondary:has-text("Download other activity")'


def build_download_form(
    *,
    accounts: list[tuple[str, str]],
    options_attr: Optional[str] = None,
    period_text: str = "Activity Current display, including filters",
    period_option_visible: bool = True,
    account_option_visible: bool = True,
    select_sets_value: bool = True,
    filenames: Optional[list[str]] = None,
    another_disabled: bool = False,
) -> FakePage:
    """
    A page showing the download-activity form with the given (name, value) accounts.

    Each Download click fires the next filename from `filenames` (no event once they run out).
    """
    page = FakePage()

    if options_attr is None:
        parts = [
            "{&quot;name&quot;:&quot;%s&quot;,&quot;value&quot;:&quot;%s&quot;,&quot;index&quot;:%d}" % (n, v, i)
            for i, (n, v) in enumerate(accounts)
        ]
        options_attr = "[" + ",".join(parts) + "]"

    select = page.add(ACCOUNT_SELECT, FakeElement(attrs={"options": options_attr, "value": ""}))

    for _, value in accounts:
        def _choose(p: FakePage, v: str = value) -> None:
            if select_sets_value:
                select.attrs["value"] = v

        page.add(f'[data-value="{value}"]', FakeElement(visible=account_option_visible, on_click=_choose))

    period = page.add(PERIOD_CONTROL, FakeElement(text=period_text))

    def _pick_period(p: FakePage) -> None:
        period.text = "Activity Since last statement"

    page.add(PERIOD_OPTION, FakeElement(visible=period_option_visible, on_click=_pick_period))

    queue = list(filenames or [])

    def _download(p: FakePage) -> None:
        if queue:
            name = queue.pop(0)
            p.fire_download(FakeDownload(name, data=f"{name}:{len(p._fired)}".encode()))

    page.add(DOWNLOAD_BUTTON, FakeElement(text="Download", on_click=_download))
    page.add(DOWNLOAD_ANOTHER, FakeElement(text="Download other activity", disabled=another_disabled))
    return page
