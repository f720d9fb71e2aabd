from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar, Union

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError

from ..config import TimingConfig
from ..errors import (
    ActionDisabled,
    DownloadFlowError,
    DownloadTimeout,
    ElementNotFound,
    SelectionMismatch,
)
from ..models import AccountOption, FailureReason, OptionResult, Stage
from ..util.files import save_download
from .diagnostics import chain, element_listing
from .resolve import probe_first_visible, resolve_visible
from .selectors import ChaseSelectors
from .trace import RunTrace


logger = logging.getLogger(__name__)

T = TypeVar("T")

_FAILURE_BY_ERROR: dict[type, FailureReason] = {
    ElementNotFound: FailureReason.ELEMENT_NOT_FOUND,
    SelectionMismatch: FailureReason.SELECTION_MISMATCH,
    DownloadTimeout: FailureReason.DOWNLOAD_TIMEOUT,
    ActionDisabled: FailureReason.ACTION_DISABLED,
}


def _normalize(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def _shows_label(text: Optional[str], label: str) -> bool:
    # The control's text often carries its own caption ("Activity Since last statement").
    return label in _normalize(text)


class OptionDownloadSequence:
    """
    Download the activity file for one account option.

    Stages run strictly in order:
    open dropdown -> select account -> verify account -> configure period -> verify period ->
    trigger download -> await download event -> persist file -> "Download other activity" -> done.

    Any stage may end the sequence early; the reason is recorded on the returned OptionResult and the
    caller moves on to the next option. An account read-back mismatch is only a warning.
    """

    def __init__(
        self,
        page,
        *,
        select_locator,
        downloads_dir: Union[str, Path],
        download_timeout_ms: int,
        trace: RunTrace,
        selectors: Optional[ChaseSelectors] = None,
        timing: Optional[TimingConfig] = None,
    ) -> None:
        self.page = page
        self.select = select_locator
        self.downloads_dir = Path(downloads_dir)
        self.download_timeout_ms = int(download_timeout_ms)
        self.trace = trace
        self.selectors = selectors or ChaseSelectors()
        self.timing = timing or TimingConfig()

    def __call__(self, option: AccountOption, position: int, total: int) -> OptionResult:
        return self.run(option, position=position, total=total)

    def run(self, option: AccountOption, *, position: int = 1, total: int = 1) -> OptionResult:
        logger.info(
            "--- Processing option %d/%d: name=%r value=%r index=%d ---",
            position,
            total,
            option.name,
            option.value,
            option.index,
        )
        result = OptionResult(option=option)
        try:
            self._select_account(option, result)
            self._configure_period(result)
            self._download(result)
            self._download_another(result)
            result.stage = Stage.DONE
        except DownloadFlowError as e:
            self._fail(result, _FAILURE_BY_ERROR.get(type(e), FailureReason.UNEXPECTED), e)
        except (PlaywrightError, OSError, ValueError) as e:
            logger.exception("Unexpected error at stage=%s for option %r", result.stage.value, option.name)
            self._fail(result, FailureReason.UNEXPECTED, e)

        self._pause(self.timing.between_options_ms)
        return result

    # --- stages -------------------------------------------------------------------------------------

    def _select_account(self, option: AccountOption, result: OptionResult) -> None:
        t = self.timing

        result.stage = Stage.OPEN_DROPDOWN
        self.trace.step("open_account_dropdown", self.page)
        self.select.click()
        self.page.wait_for_timeout(t.dropdown_open_ms)

        result.stage = Stage.SELECT_ACCOUNT
        try:
            found = resolve_visible(
                self.page,
                self.selectors.account_option(option.value),
                timeout_ms=t.option_visible_timeout_ms,
                label=f"account option {option.value!r}",
            )
            found.locator.click()
            self.trace.step("account_option_clicked", selector=found.selector)
        except ElementNotFound:
            # Last resort: let the widget pick via keyboard.
            self.trace.warn("account_option_keyboard_fallback", self.page, value=option.value)
            self.select.press("ArrowDown")
            self.page.wait_for_timeout(t.keyboard_pause_ms)
            self.select.press("Enter")

        self.page.wait_for_timeout(t.after_selection_ms)

        result.stage = Stage.VERIFY_ACCOUNT_SELECTED
        current = self.select.get_attribute("value")
        logger.info("Current selected value: %r", current)
        if current == option.value:
            self.trace.step("account_selected", value=current)
        else:
            # Reported but not fatal: the remaining stages still run for this option.
            mismatch = SelectionMismatch("account", option.value, current or "")
            self.trace.warn("account_selection_mismatch", self.page, expected=option.value, actual=current)
            result.notes.append(str(mismatch))

        self.page.wait_for_timeout(t.after_account_selected_ms)

    def _configure_period(self, result: OptionResult) -> None:
        t = self.timing
        label = self.selectors.period_label

        result.stage = Stage.CONFIGURE_PERIOD
        found = resolve_visible(
            self.page,
            self.selectors.period_control,
            timeout_ms=t.control_visible_timeout_ms,
            label="Activity dropdown",
            diagnostics=element_listing(self.selectors.period_select_hint, "Select element"),
        )
        control = found.locator
        current = self._text(control)
        logger.info("Current Activity dropdown text: %r", current)

        if _shows_label(current, label):
            self.trace.step("period_already_selected", label=label)
            return

        self.trace.step("open_period_dropdown", self.page, current=current)
        control.click()
        self.page.wait_for_timeout(t.dropdown_open_ms)

        if not self._pick_period_option(control):
            raise ElementNotFound(f"{label!r} option", self.selectors.period_option)

        self.page.wait_for_timeout(t.after_selection_ms)

        result.stage = Stage.VERIFY_PERIOD_SELECTED
        final = self._text(control)
        logger.info("Final Activity dropdown text: %r", final)
        if not _shows_label(final, label):
            raise SelectionMismatch("activity period", label, final)
        self.trace.step("period_selected", label=label)

    def _pick_period_option(self, control) -> bool:
        t = self.timing
        label = self.selectors.period_label
        try:
            found = resolve_visible(
                self.page,
                self.selectors.period_option,
                timeout_ms=t.option_visible_timeout_ms,
                label=f"{label!r} option",
            )
            found.locator.click()
            return True
        except ElementNotFound:
            self.trace.warn("period_keyboard_fallback", self.page, max_presses=t.max_period_arrow_presses)

        for attempt in range(1, t.max_period_arrow_presses + 1):
            control.press("ArrowDown")
            self.page.wait_for_timeout(t.keyboard_pause_ms if attempt == 1 else t.period_keyboard_pause_ms)
            highlighted = self._highlighted_text()
            logger.info("Highlighted option after ArrowDown #%d: %r", attempt, highlighted)
            if _shows_label(highlighted, label):
                control.press("Enter")
                return True
        return False

    def _download(self, result: OptionResult) -> None:
        t = self.timing

        result.stage = Stage.TRIGGER_DOWNLOAD
        found = resolve_visible(
            self.page,
            self.selectors.download_button,
            timeout_ms=t.control_visible_timeout_ms,
            label="Download button",
            diagnostics=element_listing(self.selectors.any_button_hint, "Button", limit=10),
        )
        button = found.locator
        self.trace.step("download_button_found", text=self._text(button), position=self._position(button))
        if self._safe(button.is_disabled, False):
            raise ActionDisabled("Download button")
        self.page.wait_for_timeout(t.pre_click_ms)

        try:
            # Arm the waiter before clicking so a fast download event cannot be missed.
            with self.page.expect_download(timeout=self.download_timeout_ms) as download_info:
                try:
                    button.click(timeout=t.click_timeout_ms)
                except PlaywrightError as e:
                    logger.error("Error clicking Download button: %s", e)
                    raise ActionDisabled("Download button") from e
                result.stage = Stage.AWAIT_DOWNLOAD_EVENT
            download = download_info.value
        except PlaywrightTimeoutError as e:
            self._log_download_timeout(button)
            raise DownloadTimeout(self.download_timeout_ms) from e

        filename = download.suggested_filename
        self.trace.step("download_started", filename=filename)

        result.stage = Stage.PERSIST_FILE
        path = save_download(download, self.downloads_dir)
        result.saved_path = path
        self.trace.step("download_saved", filename=filename, path=path)

        indicator = probe_first_visible(
            self.page,
            self.selectors.download_indicators,
            timeout_ms=t.indicator_timeout_ms,
            label="download indicator",
        )
        if indicator is not None:
            logger.info("Download indicator found: %r", self._text(indicator.locator))
        else:
            logger.info("No download indicators found (this may be normal)")

    def _download_another(self, result: OptionResult) -> None:
        t = self.timing
        s = self.selectors

        result.stage = Stage.TRIGGER_DOWNLOAD_ANOTHER
        self.page.wait_for_timeout(t.after_download_ms)
        found = resolve_visible(
            self.page,
            s.download_another_button,
            timeout_ms=t.control_visible_timeout_ms,
            label='"Download other activity" button',
            diagnostics=chain(
                element_listing(s.secondary_buttons_hint, "Secondary button"),
                element_listing(s.other_activity_buttons_hint, "Activity-related button"),
            ),
        )
        button = found.locator
        logger.info(
            '"Download other activity" button text=%r position=%s',
            self._text(button),
            self._position(button),
        )

        if button.is_disabled():
            disabled = ActionDisabled('"Download other activity" button')
            self.trace.warn("download_another_disabled", self.page)
            result.notes.append(str(disabled))
            return

        self.page.wait_for_timeout(t.pre_click_ms)
        button.click()
        self.page.wait_for_timeout(t.after_download_another_click_ms)
        self.trace.step("download_another_clicked", self.page)

        ready = probe_first_visible(
            self.page,
            s.next_step_indicators,
            timeout_ms=t.next_step_timeout_ms,
            label="next-step indicator",
        )
        if ready is not None:
            logger.info("Ready for next iteration - found: %s", ready.selector)
        else:
            logger.info("No next step indicators found (this may be normal)")

    # --- helpers ------------------------------------------------------------------------------------

    def _fail(self, result: OptionResult, reason: FailureReason, err: BaseException) -> None:
        result.failure = reason
        result.message = str(err)
        self.trace.fail(
            f"{result.stage.value}_failed",
            self.page,
            option=result.option.name,
            reason=reason.value,
            error=err,
        )

    def _log_download_timeout(self, button) -> None:
        s = self.selectors
        logger.warning("Failed to download file within %.1fs; checking page state...", self.download_timeout_ms / 1000)

        logger.info("Current page URL: %s", self._safe(lambda: self.page.url, ""))
        logger.info("Number of open pages: %s", self._safe(lambda: len(self.page.context.pages), "?"))

        try:
            popup = self.page.wait_for_event("popup", timeout=self.timing.popup_timeout_ms)
            logger.info("Popup detected: %s", popup.url)
        except PlaywrightError:
            logger.info("No popup detected")

        logger.info("Button text after click: %r", self._text(button))
        logger.info("Button disabled: %s", self._safe(button.is_disabled, "?"))

        loading = self._safe(lambda: self.page.locator(s.loading_indicators).count(), 0)
        if loading:
            logger.info("Found %d loading indicators", loading)

        messages = self._safe(lambda: self.page.locator(s.error_messages).all(), [])
        if messages:
            logger.info("Found %d error/alert messages", len(messages))
            for i, msg in enumerate(messages, start=1):
                logger.info("Error message %d: %r", i, self._text(msg))

    def _highlighted_text(self) -> str:
        loc = self.page.locator(self.selectors.highlighted_option).first
        return self._text(loc)

    def _text(self, locator) -> str:
        t = self._safe(lambda: locator.text_content(timeout=self.timing.text_read_timeout_ms), "")
        return _normalize(t)

    def _position(self, locator) -> str:
        box = self._safe(locator.bounding_box, None)
        if not box:
            return "unknown"
        return f"x={box.get('x')}, y={box.get('y')}"

    def _pause(self, ms: int) -> None:
        try:
            self.page.wait_for_timeout(ms)
        except PlaywrightError:
            logger.debug("Pause interrupted.", exc_info=True)

    @staticmethod
    def _safe(fn: Callable[[], T], default: Any) -> T:
        try:
            return fn()
        except PlaywrightError:
            return default
