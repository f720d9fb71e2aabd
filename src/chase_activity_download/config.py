from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import yaml
from pydantic import BaseModel, Field, field_validator


_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z0-9_]+)\}")

DEFAULT_LAUNCH_ARGS = [
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
    "--disable-blink-features=AutomationControlled",
    "--no-sandbox",
    "--disable-dev-shm-usage",
]


def _expand_env_vars(value: object) -> object:
    if isinstance(value, str):
        def repl(match: re.Match[str]) -> str:
            var = match.group(1)
            return os.getenv(var, "")

        return _ENV_VAR_PATTERN.sub(repl, value)
    if isinstance(value, list):
        return [_expand_env_vars(v) for v in value]
    if isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    return value


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name, "") or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in {"1", "true", "t", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer (got {raw!r})") from None


def _deep_merge(base: object, override: object) -> object:
    if isinstance(base, dict) and isinstance(override, dict):
        out = dict(base)
        for k, v in override.items():
            if k in out:
                out[k] = _deep_merge(out[k], v)
            else:
                out[k] = v
        return out
    return override


def _default_config_from_env() -> dict:
    """
    Env-only config so a plain run needs no YAML at all; `config.yaml` is an optional override.
    """
    return {
        "site": {
            "base_url": os.getenv("CHASE_BASE_URL", "https://chase.com"),
        },
        "browser": {
            "headless": _env_bool("BROWSER_HEADLESS", default=False),
            "slow_mo_ms": _env_int("BROWSER_SLOW_MO_MS", 1000),
            "channel": os.getenv("BROWSER_CHANNEL", ""),
        },
        "downloads": {
            "dir": os.getenv("DOWNLOADS_DIR", "downloads"),
            "timeout_ms": _env_int("DOWNLOAD_TIMEOUT_MS", 20_000),
        },
        "logging": {
            "level": os.getenv("LOG_LEVEL", "INFO"),
            "file_path": os.getenv("LOG_FILE", "data/download.log"),
        },
        "debug": {
            "dir": os.getenv("DEBUG_DIR", "data/debug"),
            "step_screenshots": _env_bool("STEP_DEBUG", default=False),
            "capture_on_failure": _env_bool("CAPTURE_ON_FAILURE", default=True),
        },
    }


class SiteConfig(BaseModel):
    base_url: str = "https://chase.com"

    @field_validator("base_url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        v = (v or "").strip()
        parsed = urlparse(v)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError(f"site.base_url must be a full URL like 'https://chase.com' (got {v!r})")
        return v


class BrowserConfig(BaseModel):
    # Manual authentication needs a visible window; headless is only useful against a test page.
    headless: bool = False
    slow_mo_ms: int = Field(default=1000, ge=0)
    # "" = Playwright's bundled Chromium; "chrome"/"msedge" = system browser.
    channel: str = ""
    launch_args: list[str] = Field(default_factory=lambda: list(DEFAULT_LAUNCH_ARGS))


class DownloadsConfig(BaseModel):
    dir: str = "downloads"
    timeout_ms: int = Field(default=20_000, gt=0)


class TimingConfig(BaseModel):
    """
    Fixed pauses and per-candidate visibility timeouts (milliseconds). Every wait in a run is bounded by
    one of these.
    """

    after_auth_ms: int = Field(default=2000, gt=0)
    after_navigation_click_ms: int = Field(default=2000, gt=0)
    after_entry_click_ms: int = Field(default=3000, gt=0)
    dropdown_open_ms: int = Field(default=1000, gt=0)
    keyboard_pause_ms: int = Field(default=500, gt=0)
    period_keyboard_pause_ms: int = Field(default=300, gt=0)
    after_selection_ms: int = Field(default=1000, gt=0)
    after_account_selected_ms: int = Field(default=2000, gt=0)
    between_options_ms: int = Field(default=2000, gt=0)
    pre_click_ms: int = Field(default=500, gt=0)
    after_download_ms: int = Field(default=2000, gt=0)
    after_download_another_click_ms: int = Field(default=2000, gt=0)

    entry_visible_timeout_ms: int = Field(default=5000, gt=0)
    option_visible_timeout_ms: int = Field(default=2000, gt=0)
    control_visible_timeout_ms: int = Field(default=3000, gt=0)
    indicator_timeout_ms: int = Field(default=1000, gt=0)
    next_step_timeout_ms: int = Field(default=2000, gt=0)
    popup_timeout_ms: int = Field(default=2000, gt=0)
    text_read_timeout_ms: int = Field(default=2000, gt=0)
    click_timeout_ms: int = Field(default=5000, gt=0)

    max_period_arrow_presses: int = Field(default=4, ge=1, le=4)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file_path: str = "data/download.log"


class DebugConfig(BaseModel):
    dir: str = "data/debug"
    step_screenshots: bool = False
    capture_on_failure: bool = True


class AppConfig(BaseModel):
    site: SiteConfig = SiteConfig()
    browser: BrowserConfig = BrowserConfig()
    downloads: DownloadsConfig = DownloadsConfig()
    timing: TimingConfig = TimingConfig()
    logging: LoggingConfig = LoggingConfig()
    debug: DebugConfig = DebugConfig()


def load_config(path: Optional[Union[str, Path]] = None) -> AppConfig:
    raw: dict = {}
    if path:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            raw = _expand_env_vars(raw)  # supports ${ENV_VAR} in YAML

    merged = _deep_merge(_default_config_from_env(), raw)
    return AppConfig.model_validate(merged)
