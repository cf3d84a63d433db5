"""Models for canonical test outcomes and captured artifacts."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, StrEnum
from pathlib import Path


class TestResultStatus(Enum):
    """Canonical outcome of a test, independent of the host framework."""

    __test__ = False

    NOT_EXECUTED = "not-executed"
    IN_PROGRESS = "in-progress"
    BLOCKED = "blocked"
    PASS = "pass"
    FAIL = "fail"

    @property
    def display_name(self) -> str:
        """Human-readable status name."""
        return STATUS_DISPLAY[self]


STATUS_DISPLAY: Mapping[TestResultStatus, str] = {
    TestResultStatus.NOT_EXECUTED: "Not Executed",
    TestResultStatus.IN_PROGRESS: "In Progress",
    TestResultStatus.BLOCKED: "Blocked",
    TestResultStatus.PASS: "Pass",
    TestResultStatus.FAIL: "Fail",
}


class ArtifactKind(StrEnum):
    """Kinds of forensic files written during diagnostics."""

    SCREENSHOT = "screenshot"
    PAGE_SOURCE = "page-source"
    INSTANCE_LOG = "instance-log"
    SERVICE_LOG = "service-log"


@dataclass(frozen=True, kw_only=True)
class Artifact:
    """A forensic file written for a test.

    ``channel`` names the browser log channel for instance logs.
    """

    kind: ArtifactKind
    path: Path
    written_at: datetime
    channel: str | None = None
