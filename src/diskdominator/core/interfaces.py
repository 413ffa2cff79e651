"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

interfaces.py

Defines core interfaces (Protocols) used throughout the detection engine.
These protocols enforce structural typing using Python's `typing.Protocol` so
that scanners, hashers and selectors can be swapped without touching the
grouping logic.

Key Components:
---------------
- HashAlgorithm: Standardized interface for hash functions (xxHash, SHA-256, ...).
- Hasher: Computes content hashes for filesystem entries.
- FileScanner: Produces FileRecords for the engines.
- Selector: Chooses the kept member of a duplicate group.
"""

from typing import Protocol, List, Optional, Callable
from diskdominator.core.models import FileRecord, DuplicateItem


class HashAlgorithm(Protocol):
    """
    Interface for generic hash algorithms.

    Allows plugging in different hashing functions without affecting the rest
    of the detection logic.
    """

    def new(self):
        """Returns a fresh incremental hasher with update()/hexdigest()."""
        ...

    def hash(self, data: bytes) -> str:
        """Computes the hex digest of the provided byte data."""
        ...


class Hasher(Protocol):
    """Interface for hashing filesystem entries."""

    def compute_hash(self, path: str) -> str: ...


class FileScanner(Protocol):
    """
    Interface for scanning file systems and collecting file metadata.
    """
    def scan(
        self,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[FileRecord]:
        """
        Scan the configured roots.

        Args:
            stopped_flag: Function that returns True if operation should be canceled.
            progress_callback: Optional callback for reporting progress (stage, current, total).

        Returns:
            FileRecords found under the roots.
        """
        ...


class Selector(Protocol):
    """Chooses which member of a duplicate group is kept."""

    def rank(self, items: List[DuplicateItem]) -> List[DuplicateItem]: ...

    def select(self, items: List[DuplicateItem]) -> DuplicateItem: ...
