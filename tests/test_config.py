from __future__ import annotations

from pathlib import Path

import pytest

from chase_activity_download.config import DEFAULT_LAUNCH_ARGS, _deep_merge, load_config


def _write(tmp_path: Path, name: str, text: str) -> Path:
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults_without_env_or_yaml(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.yaml")
    assert cfg.site.base_url == "https://chase.com"
    assert cfg.browser.headless is False
    assert cfg.browser.slow_mo_ms == 1000
    assert cfg.browser.launch_args == DEFAULT_LAUNCH_ARGS
    assert cfg.downloads.dir == "downloads"
    assert cfg.downloads.timeout_ms == 20_000
    assert cfg.timing.max_period_arrow_presses == 4


def test_env_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOWNLOADS_DIR", "/tmp/chase")
    monkeypatch.setenv("DOWNLOAD_TIMEOUT_MS", "45000")
    monkeypatch.setenv("BROWSER_SLOW_MO_MS", "0")
    monkeypatch.setenv("STEP_DEBUG", "yes")

    cfg = load_config(None)
    assert cfg.downloads.dir == "/tmp/chase"
    assert cfg.downloads.timeout_ms == 45_000
    assert cfg.browser.slow_mo_ms == 0
    assert cfg.debug.step_screenshots is True


def test_yaml_overrides_env_and_expands_vars(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOWNLOADS_DIR", "from-env")
    monkeypatch.setenv("STATEMENTS_HOME", "/data/statements")
    cfg_path = _write(
        tmp_path,
        "cfg.yaml",
        """
downloads:
  dir: "${STATEMENTS_HOME}/chase"
timing:
  control_visible_timeout_ms: 5000
""",
    )
    cfg = load_config(cfg_path)
    assert cfg.downloads.dir == "/data/statements/chase"
    assert cfg.downloads.timeout_ms == 20_000  # untouched sibling keys survive the merge
    assert cfg.timing.control_visible_timeout_ms == 5000
    assert cfg.timing.option_visible_timeout_ms == 2000


def test_base_url_must_be_a_full_url(tmp_path: Path) -> None:
    cfg_path = _write(tmp_path, "cfg.yaml", 'site:\n  base_url: "chase.com"\n')
    with pytest.raises(Exception):
        _ = load_config(cfg_path)


@pytest.mark.parametrize(
    "yaml_text",
    [
        "downloads:\n  timeout_ms: 0\n",
        "timing:\n  max_period_arrow_presses: 5\n",
        "timing:\n  keyboard_pause_ms: -1\n",
    ],
)
def test_unbounded_or_invalid_waits_rejected(tmp_path: Path, yaml_text: str) -> None:
    cfg_path = _write(tmp_path, "cfg.yaml", yaml_text)
    with pytest.raises(Exception):
        _ = load_config(cfg_path)


def test_non_integer_env_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DOWNLOAD_TIMEOUT_MS", "soon")
    with pytest.raises(ValueError):
        _ = load_config(None)


def test_deep_merge_replaces_lists_and_merges_dicts() -> None:
    base = {"browser": {"launch_args": ["--a"], "headless": False}}
    merged = _deep_merge(base, {"browser": {"launch_args": ["--b"]}})
    assert merged == {"browser": {"launch_args": ["--b"], "headless": False}}
