"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

organize/executor.py
Applies a ready plan to the filesystem.

State machine:
    plan:      ready -> executing -> completed | failed | cancelled -> rolled_back
    execution: running -> completed | failed | cancelled -> rolled_back

Every forward operation is preceded by its inverse in the reversal log
(pending), which becomes applied when the operation succeeds and discarded
when it fails. Rollback replays applied entries in reverse sequence order.

Operations run in plan order. With max_workers > 1, consecutive operations
whose paths do not overlap run as one batch on a thread pool; directory
creation and log writes for a batch still happen in plan order on the
calling thread.
"""

import logging
import os
import tempfile
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List, Optional

from diskdominator.events import PLAN_EXECUTION_COMPLETE, PLAN_PROGRESS, EventSink, safe_emit
from diskdominator.exceptions import ConflictError, PlanStateError
from diskdominator.organize.models import (
    ExecutionStatus, OperationStatus, OperationType, OrganizationOperation, OrganizationPlan,
    PlanExecution, PlanStatus, ReversalAction, ReversalEntry)
from diskdominator.organize.planner import OrganizationPlanner, missing_directories, project_changes
from diskdominator.services.file_service import FileService
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

# Errors recorded on an operation instead of propagating
OPERATION_ERRORS = (OSError, RuntimeError, ConflictError)


@dataclass
class ExecutionOptions:
    dry_run: bool = False
    create_backup: bool = True
    backup_dir: Optional[str] = None
    overwrite: bool = False
    max_workers: int = 1

    def __post_init__(self):
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")


@dataclass
class _Step:
    """Book-keeping for one operation inside a batch."""
    index: int
    operation: OrganizationOperation
    entry: Optional[ReversalEntry] = None
    backup_path: Optional[str] = None
    error: Optional[Exception] = None


def _paths_of(op: OrganizationOperation) -> List[str]:
    paths = [op.source]
    if op.destination:
        paths.append(op.destination)
        paths.append(PathUtils.parent(op.destination))
    return paths


def _disjoint(a: OrganizationOperation, b: OrganizationOperation) -> bool:
    for pa in _paths_of(a):
        for pb in _paths_of(b):
            if PathUtils.is_same_or_under(pa, pb) or PathUtils.is_same_or_under(pb, pa):
                return False
    return True


def split_batches(operations: List[OrganizationOperation], max_workers: int) -> List[List[int]]:
    """Consecutive, pairwise disjoint runs of operation indices (size <= max_workers)."""
    batches: List[List[int]] = []
    current: List[int] = []
    for index, op in enumerate(operations):
        fits = (len(current) < max_workers
                and all(_disjoint(operations[i], op) for i in current))
        if current and not fits:
            batches.append(current)
            current = []
        current.append(index)
    if current:
        batches.append(current)
    return batches


class PlanExecutor:
    def __init__(self, planner: Optional[OrganizationPlanner] = None,
                 event_sink: Optional[EventSink] = None,
                 dir_exists: Optional[Callable[[str], bool]] = None):
        self.planner = planner or OrganizationPlanner()
        self.event_sink = event_sink
        self.dir_exists = dir_exists or os.path.isdir

    # ------------------------------
    # Execution
    # ------------------------------

    def execute(self, plan: OrganizationPlan, options: Optional[ExecutionOptions] = None,
                cancel_flag: Optional[Callable[[], bool]] = None) -> PlanExecution:
        """
        Run `plan` once.

        Args:
            plan: A ready plan.
            options: Dry run, backup and concurrency settings.
            cancel_flag: Checked between operations; True stops the run.

        Returns:
            The PlanExecution record (also for failed or cancelled runs).

        Raises:
            PlanStateError: The plan is not ready.
            ValidationError: The plan no longer passes verification.
        """
        options = options or ExecutionOptions()
        if plan.status != PlanStatus.READY:
            raise PlanStateError(f"Only a ready plan can be executed (plan is {plan.status.value})")
        self.planner.verify(plan)

        execution = PlanExecution(
            id=uuid.uuid4().hex,
            plan_id=plan.id,
            operations=list(plan.operations),
            dry_run=options.dry_run,
        )
        execution.progress.total = len(plan.operations)

        if options.dry_run:
            return self._dry_run(plan, execution)

        plan.transition(PlanStatus.EXECUTING)
        logger.debug(f"Executing plan {plan.id} ({len(plan.operations)} operations)")

        backup_root = None
        if options.create_backup:
            base = options.backup_dir or tempfile.gettempdir()
            backup_root = os.path.join(base, f"diskdominator-backup-{execution.id}")

        cancelled = False
        failed = False
        pool = ThreadPoolExecutor(max_workers=options.max_workers) if options.max_workers > 1 else None
        try:
            for batch in split_batches(execution.operations, options.max_workers):
                if cancel_flag and cancel_flag():
                    cancelled = True
                    break
                if not self._run_batch(execution, batch, options, backup_root, pool):
                    failed = True
                    break
        finally:
            if pool:
                pool.shutdown(wait=True)

        execution.rollback_available = execution.reversal_log.complete
        if failed:
            execution.transition(ExecutionStatus.FAILED)
            plan.transition(PlanStatus.FAILED)
        elif cancelled:
            logger.debug(f"Plan {plan.id} cancelled after {execution.progress.current} operation(s)")
            execution.transition(ExecutionStatus.CANCELLED)
            plan.transition(PlanStatus.CANCELLED)
        else:
            execution.transition(ExecutionStatus.COMPLETED)
            plan.transition(PlanStatus.COMPLETED)

        if (failed or cancelled) and options.create_backup and execution.rollback_available:
            self.rollback(execution, plan)

        execution.completed_at = time.time()
        self._cleanup_backup_root(backup_root)
        self._emit_complete(execution)
        return execution

    def _dry_run(self, plan: OrganizationPlan, execution: PlanExecution) -> PlanExecution:
        changes = project_changes(plan.operations, self.dir_exists)
        summary = execution.summary
        summary.created_dirs = changes.creates
        summary.moved = changes.moves
        summary.copied = changes.copies
        summary.renamed = changes.renames
        summary.deleted = changes.deletes
        summary.bytes_saved = changes.bytes_freed

        for index, op in enumerate(plan.operations, 1):
            execution.progress.current = index
            execution.progress.current_file = op.source
            self._emit_progress(execution, op)

        execution.transition(ExecutionStatus.COMPLETED)
        execution.completed_at = time.time()
        self._emit_complete(execution)
        return execution

    def _run_batch(self, execution: PlanExecution, batch: List[int], options: ExecutionOptions,
                   backup_root: Optional[str], pool: Optional[ThreadPoolExecutor]) -> bool:
        """
        Run one batch; returns False if any operation failed.

        Every step is prepared before any runs forward. If one fails to
        prepare, no step of the batch runs: the prepared ones are put back to
        pending and the rest are never started.
        """
        steps = []
        for index in batch:
            op = execution.operations[index].with_status(OperationStatus.RUNNING)
            execution.operations[index] = op
            step = _Step(index, op)
            try:
                self._prepare(execution, step, options, backup_root)
            except OPERATION_ERRORS as e:
                step.error = e
                self._abandon(execution, steps, batch[len(steps) + 1:])
                self._settle(execution, step)
                return False
            steps.append(step)

        if pool and len(steps) > 1:
            errors = list(pool.map(lambda s: self._forward(s, options), steps))
        else:
            errors = [self._forward(s, options) for s in steps]
        for step, error in zip(steps, errors):
            step.error = error

        ok = True
        for step in steps:
            self._settle(execution, step)
            ok = ok and step.error is None
        return ok

    @staticmethod
    def _abandon(execution: PlanExecution, prepared: List[_Step], unstarted: List[int]) -> None:
        """Return batch-mates of a failed step to pending without running them."""
        for step in prepared:
            if step.entry:
                execution.reversal_log.mark_discarded(step.entry)
            execution.operations[step.index] = step.operation.with_status(OperationStatus.PENDING)
            logger.debug(f"Skipped {step.operation!r}: a batch-mate failed to prepare")
        for index in unstarted:
            logger.debug(f"Skipped {execution.operations[index]!r}: a batch-mate failed to prepare")

    def _prepare(self, execution: PlanExecution, step: _Step, options: ExecutionOptions,
                 backup_root: Optional[str]) -> None:
        """Create parent directories, handle an occupied destination and log the inverse."""
        op = step.operation
        log = execution.reversal_log

        if op.destination:
            for directory in missing_directories(PathUtils.parent(op.destination), self.dir_exists, set()):
                entry = log.append(ReversalAction.REMOVE_DIR, directory, operation_id=op.id)
                try:
                    FileService.make_dir(directory)
                except OSError:
                    log.mark_discarded(entry)
                    raise
                log.mark_applied(entry)
                execution.summary.created_dirs += 1

            if FileService.exists(op.destination):
                if not options.overwrite:
                    raise ConflictError(op.destination)
                self._displace(execution, step, options, backup_root)

        if op.type in (OperationType.MOVE, OperationType.RENAME):
            step.entry = log.append(ReversalAction.MOVE, op.destination, op.source, op.id)
        elif op.type == OperationType.COPY:
            step.entry = log.append(ReversalAction.REMOVE_COPY, op.destination, operation_id=op.id)
        elif options.create_backup:
            step.backup_path = self._backup_path(backup_root, step.index, op.source)
            step.entry = log.append(ReversalAction.RESTORE, step.backup_path, op.source, op.id)
        else:
            log.mark_incomplete(f"{op.source} moved to the system trash")

    def _displace(self, execution: PlanExecution, step: _Step,
                  options: ExecutionOptions, backup_root: Optional[str]) -> None:
        """Move an existing destination out of the way before overwriting it."""
        op = step.operation
        log = execution.reversal_log
        if options.create_backup:
            backup_path = self._backup_path(backup_root, step.index, op.destination, "replaced")
            entry = log.append(ReversalAction.RESTORE, backup_path, op.destination, op.id)
            try:
                FileService.move(op.destination, backup_path)
            except OPERATION_ERRORS:
                log.mark_discarded(entry)
                raise
            log.mark_applied(entry)
        else:
            FileService.move_to_trash(op.destination)
            log.mark_incomplete(f"{op.destination} overwritten without backup")

    @staticmethod
    def _backup_path(backup_root: str, index: int, path: str, kind: str = "deleted") -> str:
        os.makedirs(backup_root, exist_ok=True)
        return os.path.join(backup_root, f"{index:05d}_{kind}_{PathUtils.basename(path)}")

    @staticmethod
    def _forward(step: _Step, options: ExecutionOptions) -> Optional[Exception]:
        """The filesystem mutation itself. Returns the error instead of raising."""
        op = step.operation
        try:
            if op.type in (OperationType.MOVE, OperationType.RENAME):
                FileService.move(op.source, op.destination)
            elif op.type == OperationType.COPY:
                FileService.copy(op.source, op.destination)
            elif step.backup_path:
                FileService.move(op.source, step.backup_path)
            else:
                FileService.move_to_trash(op.source)
        except OPERATION_ERRORS as e:
            return e
        return None

    def _settle(self, execution: PlanExecution, step: _Step) -> None:
        op = step.operation
        log = execution.reversal_log
        summary = execution.summary

        if step.error is None:
            if step.entry:
                log.mark_applied(step.entry)
            execution.operations[step.index] = op.with_status(OperationStatus.COMPLETED)
            summary.completed += 1
            if op.type == OperationType.MOVE:
                summary.moved += 1
            elif op.type == OperationType.COPY:
                summary.copied += 1
            elif op.type == OperationType.RENAME:
                summary.renamed += 1
            else:
                summary.deleted += 1
                summary.bytes_saved += op.size
            logger.debug(f"Completed {op!r}")
        else:
            if step.entry:
                log.mark_discarded(step.entry)
            message = f"{op.source}: {step.error}"
            execution.operations[step.index] = op.with_status(OperationStatus.FAILED, str(step.error))
            summary.failed += 1
            summary.errors.append(message)
            logger.error(f"Operation {op.id} failed: {message}")

        execution.progress.current += 1
        execution.progress.current_file = op.source
        self._emit_progress(execution, execution.operations[step.index])

    # ------------------------------
    # Rollback
    # ------------------------------

    def rollback(self, execution: PlanExecution, plan: Optional[OrganizationPlan] = None) -> bool:
        """
        Undo an execution by replaying its applied log entries in reverse order.
        Returns False when rollback is unavailable or an inverse step failed.
        """
        if execution.dry_run or not execution.rollback_available:
            logger.warning(f"Rollback not available for execution {execution.id}")
            return False
        if execution.status not in (ExecutionStatus.COMPLETED, ExecutionStatus.FAILED,
                                    ExecutionStatus.CANCELLED):
            raise PlanStateError(f"Cannot roll back a {execution.status.value} execution")

        ok = True
        for entry in execution.reversal_log.applied_in_reverse():
            try:
                if entry.action in (ReversalAction.MOVE, ReversalAction.RESTORE):
                    FileService.move(entry.path, entry.restore_to)
                elif entry.action == ReversalAction.REMOVE_COPY:
                    FileService.remove(entry.path)
                else:
                    FileService.remove_empty_dir(entry.path)
            except OPERATION_ERRORS as e:
                ok = False
                execution.summary.errors.append(f"rollback {entry.action.value} {entry.path}: {e}")
                logger.error(f"Rollback step {entry.sequence} failed: {e}")

        execution.rollback_available = False
        if not ok:
            return False

        for index, op in enumerate(execution.operations):
            if op.status == OperationStatus.COMPLETED:
                execution.operations[index] = op.with_status(OperationStatus.ROLLED_BACK)
                execution.summary.rolled_back += 1
        execution.transition(ExecutionStatus.ROLLED_BACK)
        if plan is not None:
            plan.transition(PlanStatus.ROLLED_BACK)
        logger.debug(f"Execution {execution.id} rolled back")
        return True

    # ------------------------------
    # Helpers
    # ------------------------------

    @staticmethod
    def _cleanup_backup_root(backup_root: Optional[str]) -> None:
        if backup_root and os.path.isdir(backup_root) and not os.listdir(backup_root):
            os.rmdir(backup_root)

    def _emit_progress(self, execution: PlanExecution, op: OrganizationOperation) -> None:
        safe_emit(self.event_sink, PLAN_PROGRESS, {
            "plan_id": execution.plan_id,
            "execution_id": execution.id,
            "index": execution.progress.current,
            "total": execution.progress.total,
            "path": op.source,
            "bytes": op.size,
            "status": op.status.value,
            "percentage": execution.progress.percentage,
            "dry_run": execution.dry_run,
        })

    def _emit_complete(self, execution: PlanExecution) -> None:
        summary = execution.summary
        safe_emit(self.event_sink, PLAN_EXECUTION_COMPLETE, {
            "plan_id": execution.plan_id,
            "execution_id": execution.id,
            "status": execution.status.value,
            "dry_run": execution.dry_run,
            "completed": summary.completed,
            "failed": summary.failed,
            "rolled_back": summary.rolled_back,
            "bytes_saved": summary.bytes_saved,
            "errors": list(summary.errors),
        })
