"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

commands.py
Command surface shared by the CLI and any other front end.
Request/response commands over the engines; notifications go to the EventSink
passed in by the caller. Plans and executions live in memory for the session.

Usage:
    sink = CallbackEventSink()
    duplicates = DuplicateCommand(event_sink=sink)
    groups = duplicates.detect_duplicates(DuplicateScanOptions(), roots=["/data"])
    summary = duplicates.calculate_savings(groups)

    organize = OrganizeCommand(event_sink=sink)
    plan = organize.create_plan(rules, scope=["/data/Downloads"])
    changes = organize.preview_plan(plan.id)
    execution = organize.execute_plan(plan.id, dry_run=False, create_backup=True)
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from diskdominator.core.grouper import DuplicateGrouper
from diskdominator.core.models import (
    DetectionMethod, DuplicateGroup, DuplicateScanOptions, FileRecord, SavingsSummary)
from diskdominator.core.savings import SavingsCalculator
from diskdominator.core.scanner import FileScannerImpl
from diskdominator.events import EventSink
from diskdominator.exceptions import PlanStateError, ValidationError
from diskdominator.organize.executor import ExecutionOptions, PlanExecutor
from diskdominator.organize.models import (
    ChangeSummary, OrganizationPlan, OrganizationRule, PlanExecution, Suggestion)
from diskdominator.organize.planner import OrganizationPlanner, PlannerConfig
from diskdominator.organize.previewer import PlanPreviewer
from diskdominator.organize.rules import RuleEngine
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[str, int, Optional[int]], None]


def _scan(roots: Sequence[str], excluded: Sequence[str], hash_contents: bool,
          include_directories: bool = False,
          progress_callback: Optional[ProgressCallback] = None,
          stopped_flag: Optional[Callable[[], bool]] = None) -> List[FileRecord]:
    scanner = FileScannerImpl(
        roots=list(roots),
        excluded_dirs=list(excluded),
        hash_contents=False,
        include_directories=include_directories,
    )
    records = scanner.scan(stopped_flag=stopped_flag, progress_callback=progress_callback)
    if hash_contents:
        # Lazy hashing: only records that share a size can be duplicates
        records = scanner.hash_records(records, stopped_flag=stopped_flag)
    return records


class DuplicateCommand:
    """Detection workflow: (scan) -> group -> select originals -> savings."""

    def __init__(self, event_sink: Optional[EventSink] = None, workers: int = 1):
        self.event_sink = event_sink
        self.workers = workers
        self._records: List[FileRecord] = []
        self.deferred: List[FileRecord] = []

    def detect_duplicates(
            self,
            options: DuplicateScanOptions,
            records: Optional[Iterable[FileRecord]] = None,
            roots: Optional[Sequence[str]] = None,
            include_directories: bool = False,
            progress_callback: Optional[ProgressCallback] = None,
            stopped_flag: Optional[Callable[[], bool]] = None
    ) -> List[DuplicateGroup]:
        """
        Detect duplicate groups.

        Args:
            options: Filters and detection/grouping methods.
            records: FileRecord snapshot; scanned from `roots` when omitted.
            roots: Directories to scan when no records are given.
            include_directories: Also detect duplicate folders (scan only).
            progress_callback: (stage, current, total) -> None
            stopped_flag: () -> bool, True to stop.

        Returns:
            Groups ordered by options.group_by. Unhashed records are in `self.deferred`.
        """
        if records is None:
            if not roots:
                raise ValueError("Either records or roots must be given")
            records = _scan(roots, options.excluded_paths,
                            hash_contents=options.method == DetectionMethod.HASH,
                            include_directories=include_directories,
                            progress_callback=progress_callback, stopped_flag=stopped_flag)
        self._records = list(records)

        grouper = DuplicateGrouper(event_sink=self.event_sink, workers=self.workers)
        groups = grouper.group(self._records, options,
                               stopped_flag=stopped_flag, progress_callback=progress_callback)
        self.deferred = grouper.deferred
        logger.debug(f"Detected {len(groups)} duplicate group(s) in {len(self._records)} record(s)")
        return groups

    @staticmethod
    def calculate_savings(groups: List[DuplicateGroup]) -> SavingsSummary:
        return SavingsCalculator.calculate(groups)

    def get_records(self) -> List[FileRecord]:
        """Records of the last detection run."""
        return self._records.copy()


RuleInput = Union[OrganizationRule, Dict[str, Any]]
SuggestionInput = Union[Suggestion, Dict[str, Any]]


class OrganizeCommand:
    """Plan lifecycle: create -> preview -> execute -> (rollback | requeue)."""

    def __init__(self, event_sink: Optional[EventSink] = None,
                 planner_config: Optional[PlannerConfig] = None,
                 now: Optional[Callable[[], float]] = None):
        self.event_sink = event_sink
        self.now = now
        self.planner = OrganizationPlanner(planner_config)
        self.previewer = PlanPreviewer(self.planner)
        self.executor = PlanExecutor(self.planner, event_sink)
        self._plans: Dict[str, OrganizationPlan] = {}
        self._executions: Dict[str, List[PlanExecution]] = {}

    def create_plan(
            self,
            rules: Sequence[RuleInput] = (),
            suggestions: Sequence[SuggestionInput] = (),
            scope: Optional[Sequence[str]] = None,
            records: Optional[Iterable[FileRecord]] = None,
            name: Optional[str] = None,
            description: str = ""
    ) -> OrganizationPlan:
        """
        Build a ready plan from rules and accepted suggestions.
        `scope` limits the snapshot (and is scanned when no records are given).
        Raises ValidationError; the rejected draft is still registered.
        """
        rules = [r if isinstance(r, OrganizationRule) else OrganizationRule.from_dict(r) for r in rules]
        suggestions = [s if isinstance(s, Suggestion) else Suggestion.from_dict(s) for s in suggestions]

        if records is None:
            if not scope:
                raise ValueError("Either records or scope must be given")
            records = _scan(scope, (), hash_contents=False)
        records = list(records)
        if scope:
            records = [r for r in records if any(PathUtils.is_same_or_under(r.path, s) for s in scope)]

        engine = RuleEngine(rules, now=self.now)
        candidates = engine.evaluate(records)
        now = engine.now()
        for suggestion in suggestions:
            candidates.extend(self.planner.operations_from_suggestion(suggestion, records, now))

        name = name or f"Plan ({len(candidates)} operations)"
        try:
            plan = self.planner.build(candidates, records, name, description)
        except ValidationError as e:
            if e.plan is not None:
                self._plans[e.plan.id] = e.plan
            raise
        self._plans[plan.id] = plan
        return plan

    def get_plan(self, plan_id: str) -> OrganizationPlan:
        try:
            return self._plans[plan_id]
        except KeyError:
            raise PlanStateError(f"Unknown plan: {plan_id}") from None

    def list_plans(self) -> List[OrganizationPlan]:
        return list(self._plans.values())

    def get_executions(self, plan_id: str) -> List[PlanExecution]:
        self.get_plan(plan_id)
        return list(self._executions.get(plan_id, []))

    def preview_plan(self, plan_id: str) -> ChangeSummary:
        return self.previewer.preview(self.get_plan(plan_id))

    def execute_plan(self, plan_id: str, dry_run: bool = False, create_backup: bool = True,
                     backup_dir: Optional[str] = None, overwrite: bool = False, max_workers: int = 1,
                     cancel_flag: Optional[Callable[[], bool]] = None) -> PlanExecution:
        plan = self.get_plan(plan_id)
        options = ExecutionOptions(
            dry_run=dry_run,
            create_backup=create_backup,
            backup_dir=backup_dir,
            overwrite=overwrite,
            max_workers=max_workers,
        )
        execution = self.executor.execute(plan, options, cancel_flag)
        self._executions.setdefault(plan_id, []).append(execution)
        return execution

    def rollback_plan(self, plan_id: str) -> bool:
        """Undo the latest real execution of the plan. False if not possible."""
        plan = self.get_plan(plan_id)
        real_runs = [e for e in self._executions.get(plan_id, []) if not e.dry_run]
        if not real_runs:
            logger.warning(f"Plan {plan_id} has no execution to roll back")
            return False
        return self.executor.rollback(real_runs[-1], plan)

    def requeue_plan(self, plan_id: str) -> OrganizationPlan:
        """Explicitly allow another execution after failure, cancellation or rollback."""
        plan = self.get_plan(plan_id)
        plan.requeue()
        return plan
