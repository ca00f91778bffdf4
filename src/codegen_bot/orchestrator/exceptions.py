"""Exceptions for orchestrator operations.

Note: Names chosen to avoid collisions with stdlib and framework exceptions.
"""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class GraphBuildError(OrchestratorError):
    """Raised when graph construction fails."""


class RepairMismatchError(OrchestratorError):
    """Raised when the repair stage returns a different file set than requested."""

    def __init__(self, requested: list[str], returned: list[str]) -> None:
        self.requested = list(requested)
        self.returned = list(returned)
        self.unrequested = [path for path in returned if path not in requested]
        self.missing = [path for path in requested if path not in returned]
        details: list[str] = []
        if self.unrequested:
            details.append(f"unrequested {self.unrequested}")
        if self.missing:
            details.append(f"missing {self.missing}")
        super().__init__(
            f"Repair returned a different file set than requested: {', '.join(details)}"
        )
