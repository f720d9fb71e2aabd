from __future__ import annotations

from typing import Sequence


class DownloadFlowError(RuntimeError):
    """
    Base class for failures raised while driving the activity download UI.
    """


class ElementNotFound(DownloadFlowError):
    """
    Raised when a selector ladder is exhausted without a visible match.
    """

    def __init__(self, label: str, candidates: Sequence[str]) -> None:
        self.label = label
        self.candidates = tuple(candidates)
        super().__init__(f"{label}: no visible match for any of {len(self.candidates)} selectors")


class SelectionMismatch(DownloadFlowError):
    def __init__(self, what: str, expected: str, actual: str) -> None:
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what}: expected {expected!r}, control shows {actual!r}")


class DownloadTimeout(DownloadFlowError):
    def __init__(self, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(f"No download event within {timeout_ms / 1000:.1f}s")


class ActionDisabled(DownloadFlowError):
    def __init__(self, label: str) -> None:
        self.label = label
        super().__init__(f"{label} is disabled")


class MalformedOptionsAttribute(DownloadFlowError):
    """
    Raised when the account dropdown's `options` attribute cannot be parsed into account options.
    """
