from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChaseSelectors:
    """
    Chase account pages are a live third-party UI; selectors may change over time.
    Keep all UI selectors/text hooks here for easy maintenance.

    Each tuple is a selector ladder: candidates are tried in order and the first visible match wins.
    """

    # Dashboard -> account activity
    see_all_transactions: tuple[str, ...] = (
        'text="See all transactions"',
        'a:has-text("See all transactions")',
        'button:has-text("See all transactions")',
    )
    download_activity_entry: tuple[str, ...] = (
        '[data-testid="quick-action-download-activity-tooltip-button"]',
        "#quick-action-download-activity-tooltip",
        '[aria-label="Download account activity"]',
    )

    # Download activity form
    account_selector: tuple[str, ...] = ("mds-select#account-selector",)
    account_options_attribute: str = "options"
    # Placeholders: {value}
    account_option_templates: tuple[str, ...] = (
        '[data-value="{value}"]',
        '[value="{value}"]',
        'mds-option[value="{value}"]',
    )

    period_label: str = "Since last statement"
    period_control: tuple[str, ...] = (
        "#select-downloadActivityOptionId",
        'button[aria-labelledby="label-value-announcement-downloadActivityOptionId"]',
        '.mds-select__select--box:has-text("Since last statement")',
        'button:has-text("Since last statement")',
    )
    period_option: tuple[str, ...] = (
        'mds-option:has-text("Since last statement")',
        '[role="option"]:has-text("Since last statement")',
        '.mds-select__option:has-text("Since last statement")',
        'div:has-text("Since last statement")',
    )
    highlighted_option: str = '[aria-selected="true"], .mds-select__option--highlighted'

    download_button: tuple[str, ...] = (
        'button.button--primary:has-text("Download")',
        'button:has-text("Download")',
        'button .button__label:has-text("Download")',
        '.button--primary .button__label:has-text("Download")',
        'button[type="button"]:has-text("Download")',
        ".button.button--primary.button--fluid",
    )
    download_indicators: tuple[str, ...] = (
        'text="Download started"',
        'text="Download complete"',
        'text="File downloaded"',
        '[aria-live="polite"]',
        ".success-message",
        ".download-success",
    )

    download_another_button: tuple[str, ...] = (
        'button.button--secondary:has-text("Download other activity")',
        'button:has-text("Download other activity")',
        'button .button__label:has-text("Download other activity")',
        '.button--secondary .button__label:has-text("Download other activity")',
        'button[type="button"]:has-text("Download other activity")',
        '.button.button--secondary.button--fluid:has-text("Download other activity")',
        'span.button__label:has-text("Download other activity")',
        '.button--secondary:has(.button__label:has-text("Download other activity"))',
    )
    next_step_indicators: tuple[str, ...] = (
        "mds-select#account-selector",
        'text="Select account"',
        'text="Activity"',
        ".mds-select__container",
        'button:has-text("Download")',
    )

    # Download timeout diagnostics
    loading_indicators: str = '.loading, .spinner, [aria-busy="true"], .downloading'
    error_messages: str = '.error, .alert, .warning, [role="alert"]'

    # Coarse selectors used only to log what *is* on the page when a ladder fails
    transactions_buttons_hint: str = 'button:has-text("transactions")'
    transactions_links_hint: str = 'a:has-text("transactions")'
    download_buttons_hint: str = 'button:has-text("download")'
    download_aria_hint: str = '[aria-label*="download" i]'
    select_like_hint: str = 'select, mds-select, [role="combobox"]'
    period_select_hint: str = 'select, button[aria-haspopup="listbox"], .mds-select__select'
    any_button_hint: str = "button"
    secondary_buttons_hint: str = "button.button--secondary, .button--secondary"
    other_activity_buttons_hint: str = 'button:has-text("other"), button:has-text("activity")'

    def account_option(self, value: str) -> tuple[str, ...]:
        # Values land inside a double-quoted attribute selector.
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return tuple(t.format(value=escaped) for t in self.account_option_templates)
