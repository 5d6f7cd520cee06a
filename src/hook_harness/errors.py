from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .validator import Violation


class HarnessError(Exception):
    """Base class for terminal failures of a harness run."""


class QueueExhaustedError(HarnessError):
    """A create-response request arrived after every scripted exchange was served."""


class CollectTimeoutError(HarnessError, TimeoutError):
    def __init__(self, directory: Path, wanted: int, found: int) -> None:
        self.directory = directory
        self.wanted = wanted
        self.found = found
        super().__init__(
            f"timed out waiting for {wanted} hook calls in {directory} (found {found})"
        )


class MalformedRecordError(HarnessError):
    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"parse hook record {path}: {reason}")


class ConsistencyViolationError(HarnessError):
    def __init__(self, violations: Sequence["Violation"]) -> None:
        self.violations = tuple(violations)
        lines = [v.message for v in self.violations]
        super().__init__("\n".join(lines) if lines else "hook sequence violation")

    @property
    def kinds(self) -> list[str]:
        return [v.kind for v in self.violations]
