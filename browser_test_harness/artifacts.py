"""Artifact file naming and the filesystem sink diagnostics write through."""

import logging
import re
import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol, TypeAlias

log = logging.getLogger(__name__)

REPLACEMENT_CHAR = "X"

# Characters reserved in Windows file names, ASCII control characters, and
# '#', which breaks file URIs in test reports.
ILLEGAL_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*#\x00-\x1f]')


def safe_name(raw_name: str) -> str:
    """Replace every character illegal in a file name with REPLACEMENT_CHAR.

    The transform is deterministic and idempotent.
    """
    return ILLEGAL_FILENAME_CHARS.sub(REPLACEMENT_CHAR, raw_name)


def artifact_name(raw_name: str, suffix: str) -> str:
    """Return the artifact file name for a test, e.g. ``MyTest.png``."""
    return f"{safe_name(raw_name)}.{suffix}"


class ArtifactSink(Protocol):
    """Destination for diagnostics artifacts."""

    def write_bytes(self, path: Path, data: bytes) -> None:
        """Write binary content, replacing any existing file."""

    def write_text(self, path: Path, text: str) -> None:
        """Write UTF-8 text, replacing any existing file."""

    def copy_file(self, source: Path, destination: Path) -> None:
        """Copy a file, replacing any existing destination."""

    def publish(self, path: Path) -> None:
        """Register a written file with the host framework's report."""


Publisher: TypeAlias = Callable[[Path], None]


@dataclass(kw_only=True)
class FileArtifactSink:
    """Artifact sink backed by the local filesystem.

    Publishers are called with each published path; the pytest plugin uses
    one to attach paths to the test report.
    """

    publishers: Sequence[Publisher] = field(default_factory=list)

    def write_bytes(self, path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")

    def copy_file(self, source: Path, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)

    def publish(self, path: Path) -> None:
        if not path.exists():
            log.warning("Artifact not found, not published: %s", path)
            return
        log.info("Artifact: %s", path.resolve().as_uri())
        for publisher in self.publishers:
            publisher(path)
