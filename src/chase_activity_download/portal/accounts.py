from __future__ import annotations

import html
import json
import logging
from typing import Callable, Optional, Sequence

from pydantic import ValidationError

from ..errors import MalformedOptionsAttribute
from ..models import AccountOption, FailureReason, OptionResult
from .diagnostics import element_listing
from .resolve import ResolvedElement, resolve_visible
from .selectors import ChaseSelectors
from .trace import RunTrace


logger = logging.getLogger(__name__)

# (option, position starting at 1, total) -> result
OptionRunner = Callable[[AccountOption, int, int], OptionResult]


def parse_account_options(raw: Optional[str]) -> list[AccountOption]:
    """
    Parse the account dropdown's `options` attribute.

    The attribute holds a JSON array of `{"name", "value", "index"}` objects, usually with the quotes
    HTML-escaped (`&quot;`). A missing `index` defaults to the entry's position.
    """
    if raw is None:
        raise MalformedOptionsAttribute("options attribute is missing")
    s = html.unescape(raw).strip()
    if not s:
        raise MalformedOptionsAttribute("options attribute is empty")

    try:
        data = json.loads(s)
    except json.JSONDecodeError as e:
        raise MalformedOptionsAttribute(f"options attribute is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise MalformedOptionsAttribute(f"options attribute must be a JSON array (got {type(data).__name__})")

    out: list[AccountOption] = []
    for pos, item in enumerate(data):
        if not isinstance(item, dict):
            raise MalformedOptionsAttribute(f"option #{pos} is not an object: {item!r}")
        entry = dict(item)
        entry.setdefault("index", pos)
        try:
            out.append(AccountOption.model_validate(entry))
        except ValidationError as e:
            raise MalformedOptionsAttribute(f"option #{pos} is invalid: {e}") from e
    return out


def find_account_selector(
    page,
    *,
    selectors: ChaseSelectors,
    timeout_ms: int,
) -> ResolvedElement:
    return resolve_visible(
        page,
        selectors.account_selector,
        timeout_ms=timeout_ms,
        label="account selector dropdown",
        diagnostics=element_listing(selectors.select_like_hint, "Select-like element"),
    )


def read_account_options(select_locator, *, selectors: ChaseSelectors) -> list[AccountOption]:
    raw = select_locator.get_attribute(selectors.account_options_attribute)
    logger.debug("Options attribute: %s", raw)
    return parse_account_options(raw)


def iterate_options(
    options: Sequence[AccountOption],
    run_one: OptionRunner,
    *,
    trace: RunTrace,
) -> list[OptionResult]:
    """
    Run `run_one` for every option in order. One option's failure never stops the loop.
    """
    total = len(options)
    results: list[OptionResult] = []
    for pos, option in enumerate(options, start=1):
        trace.step("option_start", position=pos, total=total, name=option.name, value=option.value)
        try:
            result = run_one(option, pos, total)
        except Exception as e:
            logger.exception("Error processing option %r (%d/%d)", option.name, pos, total)
            result = OptionResult(option=option, failure=FailureReason.UNEXPECTED, message=str(e))
        if result.ok:
            trace.step("option_done", position=pos, name=option.name, saved=result.saved_path)
        else:
            trace.warn(
                "option_failed",
                position=pos,
                name=option.name,
                stage=result.stage.value,
                reason=result.failure.value if result.failure else "",
                message=result.message,
            )
        results.append(result)
    trace.step("options_finished", total=total)
    return results
