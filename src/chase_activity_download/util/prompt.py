from __future__ import annotations

import logging
from typing import Callable


logger = logging.getLogger(__name__)


def wait_for_enter(message: str, *, reader: Callable[[str], str] = input) -> None:
    """
    Block until the operator presses Enter. A closed stdin (EOF) counts as Enter so unattended runs
    cannot hang here.
    """
    logger.info(message)
    try:
        reader("")
    except EOFError:
        logger.warning("stdin closed; continuing without operator confirmation.")
