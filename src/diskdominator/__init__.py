"""
DiskDominator — reclaim disk space and restructure file layout.

Core features:
- Duplicate detection by content hash (xxHash64), fuzzy name, size or name + size
- Deterministic choice of the original to keep, with savings per disk and kind
- Rule-based organization plans: validated, ordered, previewed, executed with rollback
- Safe deletion to system trash (via send2trash)
- CLI interface for headless usage
"""

# Get version
try:
    from importlib.metadata import version as _version, PackageNotFoundError
    __version__ = _version("diskdominator")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API: only what users should import directly
from diskdominator.commands import DuplicateCommand, OrganizeCommand
from diskdominator.core import (
    FileRecord, DuplicateGroup, DuplicateItem, DuplicateScanOptions, SavingsSummary,
    DetectionMethod, GroupingMethod, SelectionStrategy, DuplicateGrouper, OriginalSelector, SavingsCalculator)
from diskdominator.organize import (
    OrganizationRule, Suggestion, OrganizationPlan, PlanExecution, RuleEngine,
    OrganizationPlanner, PlannerConfig, PlanPreviewer, PlanExecutor, ExecutionOptions)
from diskdominator.events import EventSink, CallbackEventSink, NullEventSink, RecordingEventSink
from diskdominator.exceptions import (
    DiskDominatorError, ScanIncomplete, ValidationError, ConflictError, PlanStateError)
from diskdominator.utils.convert_utils import ConvertUtils
from diskdominator.services import DuplicateService, FileService

__all__ = [
    "DuplicateCommand",
    "OrganizeCommand",
    "FileRecord",
    "DuplicateGroup",
    "DuplicateItem",
    "DuplicateScanOptions",
    "SavingsSummary",
    "DetectionMethod",
    "GroupingMethod",
    "SelectionStrategy",
    "DuplicateGrouper",
    "OriginalSelector",
    "SavingsCalculator",
    "OrganizationRule",
    "Suggestion",
    "OrganizationPlan",
    "PlanExecution",
    "RuleEngine",
    "OrganizationPlanner",
    "PlannerConfig",
    "PlanPreviewer",
    "PlanExecutor",
    "ExecutionOptions",
    "EventSink",
    "CallbackEventSink",
    "NullEventSink",
    "RecordingEventSink",
    "DiskDominatorError",
    "ScanIncomplete",
    "ValidationError",
    "ConflictError",
    "PlanStateError",
    "ConvertUtils",
    "DuplicateService",
    "FileService",
    "__version__",
]
