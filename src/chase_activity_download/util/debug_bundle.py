from __future__ import annotations

import json
import time
import zipfile
from pathlib import Path
from typing import Any, Optional


def create_debug_bundle(
    *,
    debug_dir: str,
    log_file: str,
    out_dir: str = "data",
    summary: Optional[dict[str, Any]] = None,
    trace_events: Optional[list[dict[str, Any]]] = None,
) -> Path:
    """
    Zip the run log, captured debug artifacts and a `summary.json` describing the run.

    Downloaded statements are never included.
    """
    out_root = Path(out_dir)
    out_root.mkdir(parents=True, exist_ok=True)

    stamp = time.strftime("%Y%m%d_%H%M%S")
    out_path = out_root / f"debug_bundle_chase_{stamp}.zip"

    dbg = Path(debug_dir)
    log = Path(log_file)

    def _add_file(z: zipfile.ZipFile, file_path: Path, arcname: str) -> None:
        try:
            if file_path.exists() and file_path.is_file():
                z.write(file_path, arcname=arcname)
        except OSError:
            # A file vanishing mid-bundle is not worth failing over.
            return

    with zipfile.ZipFile(out_path, "w", compression=zipfile.ZIP_DEFLATED) as z:
        _add_file(z, log, arcname=log.name)

        if dbg.exists() and dbg.is_dir():
            for p in sorted(dbg.rglob("*")):
                if not p.is_file():
                    continue
                rel = p.relative_to(dbg)
                _add_file(z, p, arcname=str(Path("debug") / rel))

        payload = {
            "created_at": stamp,
            "summary": summary or {},
            "trace": trace_events or [],
        }
        z.writestr("summary.json", json.dumps(payload, indent=2, default=str))

    return out_path
