from __future__ import annotations

import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
HERE = Path(__file__).resolve().parent
for p in (SRC, HERE):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep developer shells (and .env files loaded by earlier tests) from leaking into config defaults.
    for key in (
        "CHASE_BASE_URL",
        "BROWSER_HEADLESS",
        "BROWSER_SLOW_MO_MS",
        "BROWSER_CHANNEL",
        "DOWNLOADS_DIR",
        "DOWNLOAD_TIMEOUT_MS",
        "LOG_LEVEL",
        "LOG_FILE",
        "DEBUG_DIR",
        "STEP_DEBUG",
        "CAPTURE_ON_FAILURE",
    ):
        monkeypatch.delenv(key, raising=False)
