"""
Run status models — what each stage reports back to the driver.

Stages return values, never raise for expected conditions. The driver
threads one ``ExecutionSummary`` through every stage and renders it
once, at the end, as the final report line.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum
from typing import ClassVar

from pydantic import BaseModel, ConfigDict


class ExitCode(IntEnum):
    """Process exit codes consumed by the management agent.

    These values are a contract. Never reuse a code for a new cause.
    """

    OK = 0
    FAILURE = 1
    UNSUPPORTED_ARCHITECTURE = 2
    PREREQUISITE_FAILED = 3
    BOOTSTRAP_FAILED = 4
    PACKAGE_MANAGER_NOT_FOUND = 5


class ReportClass(str, Enum):
    """Leading token of the final report line."""

    OK = "OK"
    FAIL = "FAIL"
    NOTE = "NOTE"


class Prerequisite(str, Enum):
    """Environment prerequisites, valued by their legacy report code."""

    PACKAGE_MANAGER = "W"
    VC_RUNTIME = "C"
    VCLIBS = "V"
    UI_XAML = "X"


class Endpoint(str, Enum):
    """Network endpoints the install path depends on."""

    DISTRIBUTION = "G"
    PACKAGE_REGISTRY = "R"


# ── Composite check results ─────────────────────────────────────


SUCCESS_CODE = "0"


@dataclass(frozen=True)
class _TagSet:
    """Immutable set of failed check tags.

    An empty set means every check passed. Subclasses pin the enum
    the tags are drawn from.
    """

    missing: frozenset = frozenset()

    members: ClassVar[type[Enum]]

    @property
    def ok(self) -> bool:
        return not self.missing

    def ordered(self) -> list:
        """Missing tags in enum declaration order."""
        return [m for m in self.members if m in self.missing]

    def legacy_code(self) -> str:
        """Serialise for the management agent: ``"0"`` or e.g. ``"WV"``."""
        if self.ok:
            return SUCCESS_CODE
        return "".join(m.value for m in self.ordered())

    def names(self) -> list[str]:
        return [m.name for m in self.ordered()]


@dataclass(frozen=True)
class PrerequisiteStatus(_TagSet):
    missing: frozenset[Prerequisite] = frozenset()

    members: ClassVar[type[Enum]] = Prerequisite


@dataclass(frozen=True)
class ConnectivityStatus(_TagSet):
    missing: frozenset[Endpoint] = frozenset()

    members: ClassVar[type[Enum]] = Endpoint


class InstallationRecord(BaseModel):
    """Where the target application lives and which version it is."""

    model_config = ConfigDict(frozen=True)

    install_path: str
    display_version: str = "unknown"


# ── Run summary ─────────────────────────────────────────────────


_TIMESTAMP_FMT = "%Y-%m-%d %H:%M:%S"


@dataclass
class ExecutionSummary:
    """Diagnostic text and verdict accumulated across stages.

    Owned by the top-level driver. Stages append through ``add``,
    ``fail`` and ``note``. Notes are never removed; the verdict only
    moves toward FAIL, except through ``override``.
    """

    notes: list[str] = field(default_factory=list)
    report: ReportClass = ReportClass.OK
    exit_code: ExitCode = ExitCode.OK

    def add(self, text: str) -> ExecutionSummary:
        # The report is one line; fold multi-line error text into it
        text = " ".join(text.split())
        if text:
            self.notes.append(text)
        return self

    def fail(self, exit_code: ExitCode, text: str) -> ExecutionSummary:
        self.report = ReportClass.FAIL
        self.exit_code = exit_code
        return self.add(text)

    def note(self, text: str) -> ExecutionSummary:
        """Flag an ambiguous outcome. Does not mask an earlier failure."""
        if self.report is ReportClass.OK:
            self.report = ReportClass.NOTE
        return self.add(text)

    def override(self, report: ReportClass, exit_code: ExitCode) -> ExecutionSummary:
        """Replace the verdict outright. Used when a later stage supersedes it."""
        self.report = report
        self.exit_code = exit_code
        return self

    @property
    def failed(self) -> bool:
        return self.report is ReportClass.FAIL

    @property
    def text(self) -> str:
        return "; ".join(self.notes)

    def final_line(self, now: datetime | None = None) -> str:
        stamp = (now or datetime.now()).strftime(_TIMESTAMP_FMT)
        return f"{self.report.value} {stamp} : {self.text}"

    def to_dict(self) -> dict:
        return {
            "report": self.report.value,
            "exit_code": int(self.exit_code),
            "notes": list(self.notes),
        }
