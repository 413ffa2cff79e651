"""
Duplicate-detection engine: records, hashing, grouping, original selection, savings.

- FileScannerImpl: reference record source (os.walk, optional lazy hashing)
- HasherImpl + XXHashAlgorithmImpl: xxHash64 content and folder-tree hashes
- DuplicateGrouper: filters and partitions records into DuplicateGroups
- OriginalSelector: deterministic choice of the kept member
- SavingsCalculator: reclaimable bytes by disk, kind and category

Everything here is pure Python and works on an in-memory FileRecord snapshot.
"""

from .models import (
    FileRecord, DuplicateItem, DuplicateGroup, DuplicateScanOptions, SavingsSummary,
    DetectionMethod, GroupingMethod, ItemKind, FileCategory, SelectionStrategy, SelectionResult)
from .hasher import HasherImpl, XXHashAlgorithmImpl
from .scanner import FileScannerImpl
from .normalizer import normalize_filename
from .selector import OriginalSelector
from .grouper import DuplicateGrouper
from .savings import SavingsCalculator

__all__ = [
    "FileRecord",
    "DuplicateItem",
    "DuplicateGroup",
    "DuplicateScanOptions",
    "SavingsSummary",
    "DetectionMethod",
    "GroupingMethod",
    "ItemKind",
    "FileCategory",
    "SelectionStrategy",
    "SelectionResult",
    "HasherImpl",
    "XXHashAlgorithmImpl",
    "FileScannerImpl",
    "normalize_filename",
    "OriginalSelector",
    "DuplicateGrouper",
    "SavingsCalculator",
]
