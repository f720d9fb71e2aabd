from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AccountOption(BaseModel):
    """One entry of the account selector dropdown."""

    model_config = ConfigDict(frozen=True)

    name: str
    value: str
    index: int

    @field_validator("name", "value", mode="before")
    @classmethod
    def _coerce_str(cls, v: object) -> object:
        # The site sometimes serializes account ids as JSON numbers.
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Stage(str, Enum):
    OPEN_DROPDOWN = "open_dropdown"
    SELECT_ACCOUNT = "select_account"
    VERIFY_ACCOUNT_SELECTED = "verify_account_selected"
    CONFIGURE_PERIOD = "configure_period"
    VERIFY_PERIOD_SELECTED = "verify_period_selected"
    TRIGGER_DOWNLOAD = "trigger_download"
    AWAIT_DOWNLOAD_EVENT = "await_download_event"
    PERSIST_FILE = "persist_file"
    TRIGGER_DOWNLOAD_ANOTHER = "trigger_download_another"
    DONE = "done"


class FailureReason(str, Enum):
    ELEMENT_NOT_FOUND = "element_not_found"
    SELECTION_MISMATCH = "selection_mismatch"
    DOWNLOAD_TIMEOUT = "download_timeout"
    ACTION_DISABLED = "action_disabled"
    UNEXPECTED = "unexpected"


class OptionResult(BaseModel):
    option: AccountOption
    stage: Stage = Stage.OPEN_DROPDOWN
    failure: Optional[FailureReason] = None
    message: str = ""
    saved_path: Optional[Path] = None
    notes: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    def status(self) -> str:
        return "ok" if self.ok else f"FAILED({self.failure.value})"


class RunSummary(BaseModel):
    results: list[OptionResult] = Field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def saved_files(self) -> list[Path]:
        return [r.saved_path for r in self.results if r.saved_path is not None]
