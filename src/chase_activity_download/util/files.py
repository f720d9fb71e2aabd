from __future__ import annotations

import logging
from pathlib import Path
from typing import Union


logger = logging.getLogger(__name__)


def ensure_dir(path: Union[str, Path]) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def save_download(download, downloads_dir: Union[str, Path]) -> Path:
    """
    Persist a Playwright download under its suggested filename.

    An existing file with the same name is overwritten; no de-duplication is attempted.
    """
    out_dir = ensure_dir(downloads_dir)
    filename = Path(download.suggested_filename).name
    if not filename:
        raise ValueError("download has no suggested filename")
    target = out_dir / filename
    if target.exists():
        logger.info("Overwriting existing download: %s", target)
    download.save_as(str(target))
    return target
