"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

organize/planner.py
Turns candidate operations into a validated, ordered OrganizationPlan.

Resolution steps (single-threaded, over an immutable record snapshot):
1. Drop no-op candidates; reject sources missing from the snapshot.
2. At most one consuming operation (move, rename, delete) per source.
3. Resolve destination collisions with one CollisionPolicy.
4. Reject structural conflicts: delete above pending operations, a directory
   moved into itself, a destination inside a subtree that is moved away.
5. Order with a topological sort: descendant sources before ancestor sources,
   copies before the consuming operation of the same source, an operation
   that vacates a path before the one landing on it.
6. Freeze metadata and mark the plan ready.

project_changes() is the dry-run projection shared by the previewer and the
executor, so a preview and a dry run always report the same counts.
"""

import heapq
import logging
import os
import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from diskdominator.core.grouper import make_id
from diskdominator.core.models import FileRecord
from diskdominator.exceptions import ValidationError
from diskdominator.organize.models import (
    ActionType, Change, ChangeKind, ChangeSummary, CollisionPolicy, OperationType,
    OrganizationOperation, OrganizationPlan, PlanMetadata, Suggestion)
from diskdominator.organize.rules import render_template
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_norm = PathUtils.normalize


@dataclass
class PlannerConfig:
    """Planner policy and the constants behind duration estimates."""
    collision_policy: CollisionPolicy = CollisionPolicy.DEFAULT
    per_operation_overhead: float = 0.05        # seconds per operation
    copy_throughput: int = 100 * 1024 * 1024    # bytes per second

    def __post_init__(self):
        if self.per_operation_overhead < 0:
            raise ValueError("per_operation_overhead cannot be negative")
        if self.copy_throughput <= 0:
            raise ValueError("copy_throughput must be positive")


# ======================
#  Shared projection
# ======================

def missing_directories(directory: str, dir_exists: Callable[[str], bool],
                        created: Set[str]) -> List[str]:
    """
    Directories that must be created (outermost first) so that `directory`
    exists. `created` holds normalized paths already made by earlier steps.
    """
    missing = []
    current = directory
    while current and not PathUtils.is_root(current):
        if _norm(current) in created or dir_exists(current):
            break
        missing.append(current)
        parent = PathUtils.parent(current)
        if parent == current:
            break
        current = parent
    missing.reverse()
    return missing


def project_changes(operations: Sequence[OrganizationOperation],
                    dir_exists: Optional[Callable[[str], bool]] = None) -> ChangeSummary:
    """
    Effect of running `operations` in order, computed without touching the
    filesystem (directory existence is only read).
    """
    dir_exists = dir_exists or os.path.isdir
    summary = ChangeSummary()
    created: Set[str] = set()
    counters = {
        OperationType.MOVE: "moves",
        OperationType.COPY: "copies",
        OperationType.RENAME: "renames",
        OperationType.DELETE: "deletes",
    }

    for op in operations:
        if op.type.has_destination:
            for directory in missing_directories(PathUtils.parent(op.destination), dir_exists, created):
                created.add(_norm(directory))
                summary.creates += 1
                summary.changes.append(Change(ChangeKind.CREATE_DIR, directory, operation_id=op.id))

        attr = counters[op.type]
        setattr(summary, attr, getattr(summary, attr) + 1)
        summary.changes.append(Change(ChangeKind(op.type.value), op.source, op.destination, op.size, op.id))
        if op.type == OperationType.DELETE:
            summary.bytes_freed += op.size

    return summary


# ======================
#  Ordering and checks
# ======================

def _dependency_edges(ops: Sequence[OrganizationOperation]) -> Set[Tuple[int, int]]:
    """Edges (i, j): operation i must run before operation j."""
    edges = set()
    for i, a in enumerate(ops):
        for j, b in enumerate(ops):
            if i == j:
                continue
            # descendant source before ancestor source
            if PathUtils.is_under(a.source, b.source):
                edges.add((i, j))
            # copies of a source before the operation that consumes it
            if (a.type == OperationType.COPY and b.type.consumes_source
                    and PathUtils.is_same(a.source, b.source)):
                edges.add((i, j))
            # vacate a path before landing on it
            if (a.type.consumes_source and b.destination
                    and PathUtils.is_same(a.source, b.destination)):
                edges.add((i, j))
    return edges


def _structural_problems(ops: Sequence[OrganizationOperation]) -> List[str]:
    problems = []
    consumers: Dict[str, List[str]] = {}
    for op in ops:
        if op.type.consumes_source:
            consumers.setdefault(_norm(op.source), []).append(op.id)
    for source, ids in consumers.items():
        if len(ids) > 1:
            problems.append(f"More than one operation consumes {source}: {', '.join(ids)}")

    for op in ops:
        if op.type == OperationType.DELETE:
            for other in ops:
                if other is op:
                    continue
                if (PathUtils.is_under(other.source, op.source)
                        or (other.destination and PathUtils.is_under(other.destination, op.source))):
                    problems.append(f"Delete of {op.source} has pending child operation {other.id}")
        elif op.type.consumes_source and PathUtils.is_under(op.destination, op.source):
            problems.append(f"Cannot move {op.source} into its own subtree ({op.destination})")

        if op.destination:
            for other in ops:
                if other is not op and other.type in (OperationType.MOVE, OperationType.RENAME) \
                        and PathUtils.is_under(op.destination, other.source):
                    problems.append(
                        f"Destination {op.destination} of {op.id} is inside {other.source}, "
                        f"which {other.id} removes")
    return problems


def _topological_order(count: int, edges: Set[Tuple[int, int]]) -> Tuple[List[int], List[int]]:
    """Kahn's algorithm, ties broken by input index. Returns (order, nodes left in cycles)."""
    successors: Dict[int, List[int]] = {i: [] for i in range(count)}
    indegree = [0] * count
    for i, j in edges:
        successors[i].append(j)
        indegree[j] += 1

    ready = [i for i in range(count) if indegree[i] == 0]
    heapq.heapify(ready)
    order = []
    while ready:
        node = heapq.heappop(ready)
        order.append(node)
        for nxt in successors[node]:
            indegree[nxt] -= 1
            if indegree[nxt] == 0:
                heapq.heappush(ready, nxt)
    remaining = [i for i in range(count) if indegree[i] > 0]
    return order, remaining


def uniquify(destination: str, taken: Callable[[str], bool]) -> str:
    """First free "name (n).ext" next to `destination`, n = 1, 2, ..."""
    directory = PathUtils.parent(destination)
    stem, ext = PathUtils.split_ext(PathUtils.basename(destination))
    n = 1
    while True:
        candidate = PathUtils.join(directory, f"{stem} ({n}){ext}")
        if not taken(candidate):
            return candidate
        n += 1


# ======================
#  Planner
# ======================

class OrganizationPlanner:
    """
    Args:
        config: Collision policy and estimate constants.
        path_exists: Occupancy check for destinations outside the snapshot
            (defaults to os.path.lexists).
    """

    def __init__(self, config: Optional[PlannerConfig] = None,
                 path_exists: Optional[Callable[[str], bool]] = None):
        self.config = config or PlannerConfig()
        self.path_exists = path_exists or os.path.lexists

    def resolve(self, candidates: Iterable[OrganizationOperation],
                records: Iterable[FileRecord]) -> Tuple[List[OrganizationOperation], List[str]]:
        """Ordered operations plus the list of problems found (empty when valid)."""
        snapshot = {_norm(r.path): r for r in records}
        problems: List[str] = []

        ops: List[OrganizationOperation] = []
        seen = set()
        for op in candidates:
            if op.destination and PathUtils.is_same(op.source, op.destination):
                logger.debug(f"Dropping no-op {op.id}")
                continue
            identity = (op.type, _norm(op.source), _norm(op.destination or ""))
            if identity in seen:
                logger.debug(f"Dropping repeated candidate {op.id}")
                continue
            seen.add(identity)
            if _norm(op.source) not in snapshot:
                problems.append(f"Source of {op.id} is not in the scanned files: {op.source}")
                continue
            ops.append(op)

        ops = self._resolve_collisions(ops, snapshot, problems)
        problems.extend(_structural_problems(ops))

        order, cyclic = _topological_order(len(ops), _dependency_edges(ops))
        if cyclic:
            ids = ", ".join(ops[i].id for i in cyclic)
            problems.append(f"Operations form a dependency cycle: {ids}")
            return ops, problems
        return [ops[i] for i in order], problems

    def _resolve_collisions(self, ops: List[OrganizationOperation], snapshot: Dict[str, FileRecord],
                            problems: List[str]) -> List[OrganizationOperation]:
        vacated = {_norm(op.source) for op in ops if op.type.consumes_source}
        claimed: Set[str] = set()

        def occupied(path: str) -> bool:
            key = _norm(path)
            return key in snapshot or self.path_exists(path)

        def taken(path: str) -> bool:
            return _norm(path) in claimed or occupied(path)

        resolved = []
        for op in ops:
            if not op.destination:
                resolved.append(op)
                continue
            key = _norm(op.destination)
            collides = key in claimed or (key not in vacated and occupied(op.destination))
            if collides:
                if self.config.collision_policy.uniquifies(op.type):
                    new_destination = uniquify(op.destination, taken)
                    logger.debug(f"Destination {op.destination} taken; using {new_destination}")
                    op = replace(op, destination=new_destination)
                    key = _norm(new_destination)
                else:
                    problems.append(f"Destination collision for {op.id}: {op.destination}")
            claimed.add(key)
            resolved.append(op)
        return resolved

    def metadata_for(self, ops: Sequence[OrganizationOperation]) -> PlanMetadata:
        copy_bytes = 0
        for op in ops:
            crosses_disk = (op.type == OperationType.MOVE
                            and PathUtils.disk_of(op.source) != PathUtils.disk_of(op.destination))
            if op.type == OperationType.COPY or crosses_disk:
                copy_bytes += op.size
        duration = len(ops) * self.config.per_operation_overhead + copy_bytes / self.config.copy_throughput
        paths = set()
        for op in ops:
            paths.add(op.source)
            if op.destination:
                paths.add(op.destination)
        return PlanMetadata(
            total_files=len({_norm(op.source) for op in ops}),
            total_size=sum(op.size for op in ops),
            estimated_duration=round(duration, 3),
            affected_paths=tuple(sorted(paths)),
        )

    def build(self, candidates: Iterable[OrganizationOperation], records: Iterable[FileRecord],
              name: str, description: str = "") -> OrganizationPlan:
        """
        Ready plan, or ValidationError carrying the problems and the plan left in draft.
        """
        records = list(records)
        ops, problems = self.resolve(candidates, records)
        plan = OrganizationPlan(
            id=OrganizationPlan.new_id(),
            name=name,
            operations=tuple(ops),
            description=description,
        )
        if problems:
            for problem in problems:
                logger.warning(f"Plan '{name}': {problem}")
            raise ValidationError(problems, plan=plan)

        plan.mark_ready(self.metadata_for(ops))
        logger.debug(f"Plan {plan.id} ready with {len(ops)} operation(s)")
        return plan

    def verify(self, plan: OrganizationPlan) -> None:
        """Re-check conflicts and ordering of an existing plan."""
        ops = list(plan.operations)
        problems = _structural_problems(ops)

        destinations: Dict[str, str] = {}
        for op in ops:
            if not op.destination:
                continue
            key = _norm(op.destination)
            if key in destinations:
                problems.append(f"Operations {destinations[key]} and {op.id} share destination {op.destination}")
            destinations[key] = op.id

        for i, j in sorted(_dependency_edges(ops)):
            if i > j:
                problems.append(f"Operation {ops[i].id} must run before {ops[j].id}")

        if problems:
            raise ValidationError(problems, plan=plan)

    @staticmethod
    def operations_from_suggestion(suggestion: Suggestion, records: Iterable[FileRecord],
                                   now: Optional[float] = None) -> List[OrganizationOperation]:
        """
        Candidate operations for an accepted Advisor suggestion. Paths the
        snapshot does not know are still returned; build() rejects them.
        """
        now = time.time() if now is None else now
        index = {_norm(r.path): r for r in records}
        op_type = OperationType(suggestion.action.value)
        ops = []
        for path in suggestion.affected_files:
            record = index.get(_norm(path)) or FileRecord(path=path, size=0)
            destination = None
            if suggestion.action in (ActionType.MOVE, ActionType.COPY):
                destination = PathUtils.join(render_template(suggestion.destination, record, now), record.name)
            elif suggestion.action == ActionType.RENAME:
                destination = PathUtils.join(PathUtils.parent(path), render_template(suggestion.pattern, record, now))
            ops.append(OrganizationOperation(
                id=f"{suggestion.id}-{make_id(path)}",
                type=op_type,
                source=path,
                destination=destination,
                size=record.size,
                origin=suggestion.id,
            ))
        return ops
