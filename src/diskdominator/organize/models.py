"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

organize/models.py
Data models for organization rules, plans, executions and the reversal log.

Every status field is a closed Enum; allowed status changes are listed in the
transition tables below and checked on every change.
"""

import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from diskdominator.exceptions import PlanStateError


# =============================
# Enums
# =============================

class ConditionType(Enum):
    EXTENSION = "extension"
    SIZE = "size"
    AGE = "age"
    PATTERN = "pattern"


class ConditionOperator(Enum):
    EQUALS = "equals"
    CONTAINS = "contains"
    MATCHES = "matches"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    BETWEEN = "between"


class ActionType(Enum):
    MOVE = "move"
    COPY = "copy"
    RENAME = "rename"
    DELETE = "delete"


class OperationType(Enum):
    MOVE = "move"
    COPY = "copy"
    RENAME = "rename"
    DELETE = "delete"

    @property
    def consumes_source(self) -> bool:
        """After the operation the source path no longer exists."""
        return self is not OperationType.COPY

    @property
    def has_destination(self) -> bool:
        return self is not OperationType.DELETE


class OperationStatus(Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


class PlanStatus(Enum):
    DRAFT = "draft"
    READY = "ready"
    EXECUTING = "executing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ROLLED_BACK = "rolled_back"


class ExecutionStatus(Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    ROLLED_BACK = "rolled_back"


class CollisionPolicy(Enum):
    """
    What the planner does when a destination is already claimed.
    DEFAULT uniquifies move/copy destinations and rejects renames.
    """
    DEFAULT = "default"
    UNIQUIFY = "uniquify"
    REJECT = "reject"

    def uniquifies(self, operation_type: OperationType) -> bool:
        if self is CollisionPolicy.UNIQUIFY:
            return True
        if self is CollisionPolicy.REJECT:
            return False
        return operation_type in (OperationType.MOVE, OperationType.COPY)


class ReversalAction(Enum):
    MOVE = "move"                # move destination back to source
    REMOVE_COPY = "remove_copy"  # delete the copy that was created
    RESTORE = "restore"          # move the backed-up file back into place
    REMOVE_DIR = "remove_dir"    # remove a directory the execution created


class EntryState(Enum):
    PENDING = "pending"
    APPLIED = "applied"
    DISCARDED = "discarded"


OPERATION_TRANSITIONS = {
    OperationStatus.PENDING: {OperationStatus.RUNNING},
    OperationStatus.RUNNING: {OperationStatus.COMPLETED, OperationStatus.FAILED, OperationStatus.PENDING},
    OperationStatus.COMPLETED: {OperationStatus.ROLLED_BACK},
    OperationStatus.FAILED: set(),
    OperationStatus.ROLLED_BACK: set(),
}

PLAN_TRANSITIONS = {
    PlanStatus.DRAFT: {PlanStatus.READY},
    PlanStatus.READY: {PlanStatus.EXECUTING},
    PlanStatus.EXECUTING: {PlanStatus.COMPLETED, PlanStatus.FAILED, PlanStatus.CANCELLED},
    PlanStatus.COMPLETED: {PlanStatus.ROLLED_BACK},
    PlanStatus.FAILED: {PlanStatus.ROLLED_BACK},
    PlanStatus.CANCELLED: {PlanStatus.ROLLED_BACK},
    PlanStatus.ROLLED_BACK: set(),
}

# Explicit re-ready path; never taken implicitly
PLAN_REQUEUE_FROM = {PlanStatus.FAILED, PlanStatus.CANCELLED, PlanStatus.ROLLED_BACK}

EXECUTION_TRANSITIONS = {
    ExecutionStatus.RUNNING: {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.CANCELLED},
    ExecutionStatus.COMPLETED: {ExecutionStatus.ROLLED_BACK},
    ExecutionStatus.FAILED: {ExecutionStatus.ROLLED_BACK},
    ExecutionStatus.CANCELLED: {ExecutionStatus.ROLLED_BACK},
    ExecutionStatus.ROLLED_BACK: set(),
}


def _check_transition(table, current, new, what: str) -> None:
    if new not in table[current]:
        raise PlanStateError(f"Illegal {what} transition: {current.value} -> {new.value}")


def _enum_value(enum_cls, raw, aliases: Optional[Dict[str, Any]] = None):
    if isinstance(raw, enum_cls):
        return raw
    text = str(raw).strip().lower()
    if aliases and text in aliases:
        return aliases[text]
    try:
        return enum_cls(text)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ValueError(f"Invalid {enum_cls.__name__} '{raw}'. Valid options: {choices}")


# ======================
#  Rules
# ======================

_CONDITION_ALIASES = {
    "name_pattern": ConditionType.PATTERN,
    "name": ConditionType.PATTERN,
    "size_range": ConditionType.SIZE,
    "date_range": ConditionType.AGE,
}


@dataclass(frozen=True)
class RuleCondition:
    type: ConditionType
    operator: ConditionOperator
    value: Any
    case_sensitive: bool = False

    def __post_init__(self):
        if self.operator == ConditionOperator.BETWEEN:
            if not isinstance(self.value, (list, tuple)) or len(self.value) != 2:
                raise ValueError("'between' needs a [low, high] pair")
        if self.type in (ConditionType.EXTENSION, ConditionType.PATTERN):
            if self.operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN,
                                 ConditionOperator.BETWEEN):
                raise ValueError(f"Operator '{self.operator.value}' is not valid for {self.type.value}")
        if self.type in (ConditionType.SIZE, ConditionType.AGE):
            if self.operator in (ConditionOperator.CONTAINS, ConditionOperator.MATCHES):
                raise ValueError(f"Operator '{self.operator.value}' is not valid for {self.type.value}")

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'RuleCondition':
        value = data.get("value")
        if isinstance(value, list):
            value = tuple(value)
        return RuleCondition(
            type=_enum_value(ConditionType, data.get("type", data.get("condition_type")), _CONDITION_ALIASES),
            operator=_enum_value(ConditionOperator, data.get("operator", "equals")),
            value=value,
            case_sensitive=bool(data.get("case_sensitive", False)),
        )


@dataclass(frozen=True)
class RuleAction:
    type: ActionType
    destination: Optional[str] = None
    pattern: Optional[str] = None

    def __post_init__(self):
        if self.type in (ActionType.MOVE, ActionType.COPY) and not self.destination:
            raise ValueError(f"A {self.type.value} action needs a destination")
        if self.type == ActionType.RENAME and not (self.pattern or self.destination):
            raise ValueError("A rename action needs a pattern")

    @property
    def template(self) -> Optional[str]:
        """Rename pattern for renames, destination directory otherwise."""
        if self.type == ActionType.RENAME:
            return self.pattern or self.destination
        return self.destination

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'RuleAction':
        return RuleAction(
            type=_enum_value(ActionType, data.get("type", data.get("action_type"))),
            destination=data.get("destination"),
            pattern=data.get("pattern"),
        )


@dataclass(frozen=True)
class RuleScope:
    paths: Tuple[str, ...] = ()
    recursive: bool = True
    include_hidden: bool = False

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> 'RuleScope':
        data = data or {}
        return RuleScope(
            paths=tuple(data.get("paths", ())),
            recursive=bool(data.get("recursive", True)),
            include_hidden=bool(data.get("include_hidden", False)),
        )


@dataclass(frozen=True)
class OrganizationRule:
    id: str
    name: str
    condition: RuleCondition
    action: RuleAction
    scope: RuleScope = field(default_factory=RuleScope)
    enabled: bool = True
    priority: int = 0  # lower runs first

    def __post_init__(self):
        if not self.id:
            raise ValueError("Rule id cannot be empty")

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'OrganizationRule':
        """Build a rule from a JSON-style document."""
        try:
            return OrganizationRule(
                id=str(data["id"]),
                name=data.get("name", str(data["id"])),
                condition=RuleCondition.from_dict(data["condition"]),
                action=RuleAction.from_dict(data["action"]),
                scope=RuleScope.from_dict(data.get("scope")),
                enabled=bool(data.get("enabled", True)),
                priority=int(data.get("priority", 0)),
            )
        except KeyError as e:
            raise ValueError(f"Rule is missing required field {e}") from e


@dataclass(frozen=True)
class Suggestion:
    """
    Advisor suggestion descriptor. Only its structured fields are used; the
    free text (title, description, reason) is carried for display.
    """
    id: str
    title: str
    action: ActionType
    affected_files: Tuple[str, ...]
    destination: Optional[str] = None
    pattern: Optional[str] = None
    description: str = ""
    confidence: float = 0.0
    estimated_time: float = 0.0
    reason: str = ""

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError("Suggestion confidence must be between 0 and 1")
        if self.action in (ActionType.MOVE, ActionType.COPY) and not self.destination:
            raise ValueError(f"A {self.action.value} suggestion needs a destination")
        if self.action == ActionType.RENAME and not self.pattern:
            raise ValueError("A rename suggestion needs a pattern")

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Suggestion':
        affected = data.get("affected_files") or data.get("from_paths") or []
        paths = tuple(f["path"] if isinstance(f, dict) else str(f) for f in affected)
        return Suggestion(
            id=str(data["id"]),
            title=data.get("title", ""),
            action=_enum_value(ActionType, data.get("action", data.get("suggestion_type", "move"))),
            affected_files=paths,
            destination=data.get("destination", data.get("to_path")),
            pattern=data.get("pattern"),
            description=data.get("description", ""),
            confidence=float(data.get("confidence", 0.0)),
            estimated_time=float(data.get("estimated_time", 0.0)),
            reason=data.get("reason", ""),
        )


# ======================
#  Plans
# ======================

@dataclass(frozen=True)
class OrganizationOperation:
    id: str
    type: OperationType
    source: str
    destination: Optional[str] = None
    size: int = 0
    status: OperationStatus = OperationStatus.PENDING
    error: Optional[str] = None
    origin: Optional[str] = None  # rule or suggestion id

    def __post_init__(self):
        if not self.source:
            raise ValueError("Operation source cannot be empty")
        if self.type.has_destination and not self.destination:
            raise ValueError(f"A {self.type.value} operation needs a destination")
        if self.size < 0:
            raise ValueError("Operation size cannot be negative")

    def with_status(self, status: OperationStatus, error: Optional[str] = None) -> 'OrganizationOperation':
        _check_transition(OPERATION_TRANSITIONS, self.status, status, "operation")
        return replace(self, status=status, error=error if error is not None else self.error)

    def __repr__(self):
        arrow = f" -> {self.destination}" if self.destination else ""
        return f"<{self.type.value} {self.source}{arrow} [{self.status.value}]>"


@dataclass(frozen=True)
class PlanMetadata:
    total_files: int
    total_size: int
    estimated_duration: float  # seconds
    affected_paths: Tuple[str, ...]


_FROZEN_AFTER_DRAFT = frozenset({"operations", "metadata", "name", "description"})


@dataclass
class OrganizationPlan:
    """
    Ordered batch of operations. Content is read-only once the plan leaves
    draft; status changes go through transition() or requeue().
    """
    id: str
    name: str
    operations: Tuple[OrganizationOperation, ...]
    description: str = ""
    metadata: Optional[PlanMetadata] = None
    created_at: float = field(default_factory=time.time)
    status: PlanStatus = PlanStatus.DRAFT  # assigned last by __init__

    def __setattr__(self, key, value):
        if key in _FROZEN_AFTER_DRAFT and self.__dict__.get("status", PlanStatus.DRAFT) != PlanStatus.DRAFT:
            raise PlanStateError(f"Plan {getattr(self, 'id', '?')} is no longer a draft")
        if key == "status" and key in self.__dict__:
            raise PlanStateError("Use transition() to change plan status")
        super().__setattr__(key, value)

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def transition(self, status: PlanStatus) -> None:
        _check_transition(PLAN_TRANSITIONS, self.status, status, "plan")
        object.__setattr__(self, "status", status)

    def mark_ready(self, metadata: PlanMetadata) -> None:
        """Freeze metadata and leave draft."""
        if self.status != PlanStatus.DRAFT:
            raise PlanStateError(f"Only a draft plan can become ready (plan is {self.status.value})")
        self.metadata = metadata
        self.transition(PlanStatus.READY)

    def requeue(self) -> None:
        """Allow one more execution after failure, cancellation or rollback."""
        if self.status not in PLAN_REQUEUE_FROM:
            raise PlanStateError(f"Cannot requeue a {self.status.value} plan")
        object.__setattr__(self, "status", PlanStatus.READY)

    def __repr__(self):
        return f"<OrganizationPlan id={self.id} ops={len(self.operations)} {self.status.value}>"


# ======================
#  Preview
# ======================

class ChangeKind(Enum):
    CREATE_DIR = "create_dir"
    MOVE = "move"
    COPY = "copy"
    RENAME = "rename"
    DELETE = "delete"


@dataclass(frozen=True)
class Change:
    kind: ChangeKind
    path: str
    destination: Optional[str] = None
    size: int = 0
    operation_id: Optional[str] = None


@dataclass
class ChangeSummary:
    creates: int = 0
    moves: int = 0
    copies: int = 0
    renames: int = 0
    deletes: int = 0
    bytes_freed: int = 0
    changes: List[Change] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "creates": self.creates,
            "moves": self.moves,
            "copies": self.copies,
            "renames": self.renames,
            "deletes": self.deletes,
        }


# ======================
#  Execution
# ======================

@dataclass
class ExecutionProgress:
    current: int = 0
    total: int = 0
    current_file: Optional[str] = None

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 100.0
        return round(self.current * 100.0 / self.total, 1)


@dataclass
class ExecutionSummary:
    moved: int = 0
    copied: int = 0
    renamed: int = 0
    deleted: int = 0
    created_dirs: int = 0
    bytes_saved: int = 0
    completed: int = 0
    failed: int = 0
    rolled_back: int = 0
    errors: List[str] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        """Same keys as ChangeSummary.counts()."""
        return {
            "creates": self.created_dirs,
            "moves": self.moved,
            "copies": self.copied,
            "renames": self.renamed,
            "deletes": self.deleted,
        }


@dataclass
class ReversalEntry:
    sequence: int
    action: ReversalAction
    path: str                     # where the forward operation left things
    restore_to: Optional[str] = None
    operation_id: Optional[str] = None
    state: EntryState = EntryState.PENDING


class ReversalLog:
    """
    Append-only, sequence-numbered inverse operations of one execution.
    Entries are written before their forward operation runs and settle to
    applied or discarded afterwards. Thread-safe.
    """

    def __init__(self):
        self._entries: List[ReversalEntry] = []
        self._lock = threading.Lock()
        self._next_sequence = 1
        self.complete = True
        self.incomplete_reasons: List[str] = []

    def append(self, action: ReversalAction, path: str, restore_to: Optional[str] = None,
               operation_id: Optional[str] = None) -> ReversalEntry:
        with self._lock:
            entry = ReversalEntry(self._next_sequence, action, path, restore_to, operation_id)
            self._next_sequence += 1
            self._entries.append(entry)
            return entry

    def mark_applied(self, entry: ReversalEntry) -> None:
        with self._lock:
            if entry.state != EntryState.PENDING:
                raise PlanStateError(f"Reversal entry {entry.sequence} already {entry.state.value}")
            entry.state = EntryState.APPLIED

    def mark_discarded(self, entry: ReversalEntry) -> None:
        with self._lock:
            if entry.state == EntryState.PENDING:
                entry.state = EntryState.DISCARDED

    def mark_incomplete(self, reason: str) -> None:
        with self._lock:
            self.complete = False
            self.incomplete_reasons.append(reason)

    @property
    def entries(self) -> List[ReversalEntry]:
        with self._lock:
            return list(self._entries)

    def applied_in_reverse(self) -> List[ReversalEntry]:
        with self._lock:
            applied = [e for e in self._entries if e.state == EntryState.APPLIED]
        return sorted(applied, key=lambda e: e.sequence, reverse=True)

    def __len__(self):
        return len(self._entries)


@dataclass
class PlanExecution:
    id: str
    plan_id: str
    operations: List[OrganizationOperation]
    dry_run: bool = False
    status: ExecutionStatus = ExecutionStatus.RUNNING
    progress: ExecutionProgress = field(default_factory=ExecutionProgress)
    summary: ExecutionSummary = field(default_factory=ExecutionSummary)
    reversal_log: ReversalLog = field(default_factory=ReversalLog)
    rollback_available: bool = False
    started_at: float = field(default_factory=time.time)
    completed_at: Optional[float] = None

    def transition(self, status: ExecutionStatus) -> None:
        _check_transition(EXECUTION_TRANSITIONS, self.status, status, "execution")
        self.status = status

    def operations_with(self, status: OperationStatus) -> List[OrganizationOperation]:
        return [op for op in self.operations if op.status == status]
