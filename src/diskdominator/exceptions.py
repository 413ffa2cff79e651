"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

exceptions.py
Error taxonomy shared by the detection and organization engines.

Filesystem failures during execution are plain OSError subclasses
(PermissionError, FileNotFoundError, ...) and are recorded per operation,
so they have no wrapper here.
"""
from typing import List, Optional, Sequence


class DiskDominatorError(Exception):
    """Base class for all errors raised by the core."""


class ScanIncomplete(DiskDominatorError):
    """Hash grouping was requested for records whose content hash is not computed yet."""

    def __init__(self, pending_paths: Sequence[str]):
        self.pending_paths: List[str] = list(pending_paths)
        super().__init__(
            f"{len(self.pending_paths)} file(s) are not hashed yet: "
            + ", ".join(self.pending_paths[:3])
            + (" ..." if len(self.pending_paths) > 3 else "")
        )


class ValidationError(DiskDominatorError):
    """
    A plan failed conflict or ordering checks. Raised before any mutation;
    the plan (if one was built) stays in draft.
    """

    def __init__(self, problems: Sequence[str], plan=None):
        self.problems: List[str] = list(problems)
        self.plan = plan
        summary = "; ".join(self.problems[:5])
        if len(self.problems) > 5:
            summary += f"; ...and {len(self.problems) - 5} more"
        super().__init__(f"Plan validation failed: {summary}")


class ConflictError(DiskDominatorError):
    """Destination already exists and no uniquification/overwrite policy applies."""

    def __init__(self, path: str, message: Optional[str] = None):
        self.path = path
        super().__init__(message or f"Destination already exists: {path}")


class PlanStateError(DiskDominatorError):
    """Illegal lifecycle transition or unknown plan/execution."""
