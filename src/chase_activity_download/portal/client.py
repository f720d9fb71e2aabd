from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, sync_playwright

from ..config import AppConfig
from ..errors import ElementNotFound, MalformedOptionsAttribute
from ..models import AccountOption, RunSummary
from ..util.files import ensure_dir
from ..util.prompt import wait_for_enter
from .accounts import find_account_selector, iterate_options, read_account_options
from .diagnostics import body_text_hint, chain, element_listing
from .download_flow import OptionDownloadSequence
from .resolve import resolve_visible
from .selectors import ChaseSelectors
from .trace import RunTrace


logger = logging.getLogger(__name__)


class ChaseActivityClient:
    """
    Drives one interactive Chase session: the operator signs in by hand, then every account in the
    download-activity form gets its "Since last statement" file downloaded.
    """

    def __init__(
        self,
        cfg: AppConfig,
        *,
        trace: Optional[RunTrace] = None,
        selectors: Optional[ChaseSelectors] = None,
        wait_for_operator: Callable[[str], None] = wait_for_enter,
    ) -> None:
        self.cfg = cfg
        self.selectors = selectors or ChaseSelectors()
        self.trace = trace or RunTrace(
            debug_dir=cfg.debug.dir,
            step_screenshots=cfg.debug.step_screenshots,
            capture_on_failure=cfg.debug.capture_on_failure,
        )
        self.wait_for_operator = wait_for_operator

    def run(self) -> RunSummary:
        downloads_dir = ensure_dir(self.cfg.downloads.dir)
        summary = RunSummary()

        with sync_playwright() as p:
            browser = self._launch(p)
            try:
                ctx = browser.new_context(accept_downloads=True)
                page = ctx.new_page()
                try:
                    summary = self.download_all(page, downloads_dir=downloads_dir)
                    self.wait_for_operator("Script completed. Press Enter to close browser...")
                except Exception:
                    # Bootstrap failures (e.g. navigation) end the session; nothing is retried.
                    logger.exception("Error occurred; closing the browser.")
                    self.trace.fail("session_error", page)
                finally:
                    try:
                        ctx.close()
                    except PlaywrightError:
                        pass
            finally:
                browser.close()

        return summary

    def download_all(self, page: Page, *, downloads_dir: Path) -> RunSummary:
        """
        Everything after the browser is open: navigate, wait for the operator, then download per account.
        """
        t = self.cfg.timing

        logger.info("Opening %s ...", self.cfg.site.base_url)
        page.goto(self.cfg.site.base_url)
        self.trace.step("site_opened", page)

        self.wait_for_operator(
            "Page loaded. Please complete authentication manually, then press Enter in this terminal to continue..."
        )
        logger.info("Continuing...")
        page.wait_for_timeout(t.after_auth_ms)

        self.open_all_transactions(page)
        self.open_download_activity(page)

        options = self.load_account_options(page)
        if options is None:
            return RunSummary()

        select_locator, account_options = options
        sequence = OptionDownloadSequence(
            page,
            select_locator=select_locator,
            downloads_dir=downloads_dir,
            download_timeout_ms=self.cfg.downloads.timeout_ms,
            trace=self.trace,
            selectors=self.selectors,
            timing=t,
        )
        results = iterate_options(account_options, sequence, trace=self.trace)
        summary = RunSummary(results=results)
        log_summary(summary)
        return summary

    def open_all_transactions(self, page: Page) -> bool:
        s = self.selectors
        logger.info('Searching for "See all transactions" control...')
        return self._activate(
            page,
            s.see_all_transactions,
            label='"See all transactions"',
            settle_ms=self.cfg.timing.after_navigation_click_ms,
            diagnostics=chain(
                element_listing(s.transactions_buttons_hint, 'Button with "transactions"'),
                element_listing(s.transactions_links_hint, 'Link with "transactions"'),
                body_text_hint("see all transactions", fallback="transactions"),
            ),
        )

    def open_download_activity(self, page: Page) -> bool:
        s = self.selectors
        logger.info("Searching for download activity button...")
        return self._activate(
            page,
            s.download_activity_entry,
            label="download activity button",
            settle_ms=self.cfg.timing.after_entry_click_ms,
            diagnostics=chain(
                element_listing(s.download_buttons_hint, 'Button with "download"'),
                element_listing(s.download_aria_hint, "Download-related aria-label"),
            ),
        )

    def load_account_options(self, page: Page) -> Optional[tuple[object, list[AccountOption]]]:
        logger.info("Searching for account selector dropdown...")
        try:
            found = find_account_selector(
                page,
                selectors=self.selectors,
                timeout_ms=self.cfg.timing.entry_visible_timeout_ms,
            )
            options = read_account_options(found.locator, selectors=self.selectors)
        except ElementNotFound as e:
            self.trace.fail("account_selector_not_found", page, error=e)
            return None
        except MalformedOptionsAttribute as e:
            self.trace.fail("account_options_malformed", page, error=e)
            return None

        self.trace.step("account_options_loaded", count=len(options))
        for opt in options:
            logger.info("  option index=%d name=%r value=%r", opt.index, opt.name, opt.value)
        return found.locator, options

    def _activate(self, page: Page, candidates, *, label: str, settle_ms: int, diagnostics) -> bool:
        try:
            found = resolve_visible(
                page,
                candidates,
                timeout_ms=self.cfg.timing.entry_visible_timeout_ms,
                label=label,
                diagnostics=diagnostics,
            )
        except ElementNotFound as e:
            # The page may already be where we need it; later steps will tell.
            self.trace.warn(f"{_slug(label)}_not_found", page, error=e)
            return False

        loc = found.locator
        box = None
        try:
            box = loc.bounding_box()
            loc.highlight()
        except PlaywrightError:
            logger.debug("Could not inspect %s.", label, exc_info=True)
        if box:
            logger.info("%s position: x=%s, y=%s", label, box.get("x"), box.get("y"))

        logger.info("Clicking %s...", label)
        loc.click()
        page.wait_for_timeout(settle_ms)
        self.trace.step(f"{_slug(label)}_clicked", page, selector=found.selector)
        return True

    def _launch(self, p):
        b = self.cfg.browser
        kwargs = {"headless": b.headless, "slow_mo": b.slow_mo_ms, "args": list(b.launch_args)}
        if b.channel:
            return p.chromium.launch(channel=b.channel, **kwargs)
        try:
            return p.chromium.launch(**kwargs)
        except Exception as e:
            msg = str(e)
            if "Executable doesn't exist" not in msg:
                raise
            logger.warning(
                "Playwright Chromium executable missing; falling back to system browser channel. (%s)",
                msg,
            )
            try:
                return p.chromium.launch(channel="chrome", **kwargs)
            except Exception:
                return p.chromium.launch(channel="msedge", **kwargs)


def log_summary(summary: RunSummary) -> None:
    logger.info("Finished iterating through all dropdown options.")
    for r in summary.results:
        logger.info(
            "  [%d] %s: %s (stage=%s%s)",
            r.option.index,
            r.option.name,
            r.status(),
            r.stage.value,
            f", saved={r.saved_path}" if r.saved_path else "",
        )
        for note in r.notes:
            logger.info("      note: %s", note)
    logger.info(
        "Options: %d ok, %d failed; files saved: %d",
        summary.succeeded,
        summary.failed,
        len(summary.saved_files),
    )


def _slug(label: str) -> str:
    return "_".join(label.replace('"', "").lower().split())
