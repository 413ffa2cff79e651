"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

organize/rules.py
Evaluates declarative organization rules against a FileRecord snapshot.

Enabled rules run in (priority, id) order. For each file the first rule whose
scope contains it and whose condition matches produces one candidate
operation; later rules are not consulted for that file.
"""

import fnmatch
import logging
import re
import time
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence

from diskdominator.core.grouper import make_id
from diskdominator.core.models import FileRecord
from diskdominator.organize.models import (
    ActionType, ConditionOperator, ConditionType, OperationType, OrganizationOperation,
    OrganizationRule, RuleCondition, RuleScope)
from diskdominator.utils.convert_utils import ConvertUtils
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

_ACTION_TO_OPERATION = {
    ActionType.MOVE: OperationType.MOVE,
    ActionType.COPY: OperationType.COPY,
    ActionType.RENAME: OperationType.RENAME,
    ActionType.DELETE: OperationType.DELETE,
}


def _alternatives(value) -> List[str]:
    """'jpg|jpeg|png' or ['jpg', 'png'] -> list of stripped alternatives."""
    if isinstance(value, (list, tuple, set, frozenset)):
        items = [str(v) for v in value]
    else:
        items = str(value).split("|")
    return [item.strip() for item in items if item.strip()]


def _compare(actual: float, operator: ConditionOperator, value, convert: Callable) -> bool:
    if operator == ConditionOperator.BETWEEN:
        low, high = (convert(v) for v in value)
        return low <= actual <= high
    expected = convert(value)
    if operator == ConditionOperator.EQUALS:
        return actual == expected
    if operator == ConditionOperator.GREATER_THAN:
        return actual > expected
    if operator == ConditionOperator.LESS_THAN:
        return actual < expected
    raise ValueError(f"Operator '{operator.value}' is not a comparison")


def render_template(template: str, record: FileRecord, now: float) -> str:
    """
    Expand {name} {stem} {ext} {year} {month} {day} {category} for `record`.
    Dates come from the modification time (or `now` when unknown).
    """
    stem, ext = PathUtils.split_ext(record.name)
    moment = datetime.fromtimestamp(record.modified if record.modified is not None else now)
    values = {
        "name": record.name,
        "stem": stem,
        "ext": ext.lstrip("."),
        "year": f"{moment.year:04d}",
        "month": f"{moment.month:02d}",
        "day": f"{moment.day:02d}",
        "category": record.category.value,
    }
    try:
        return template.format_map(values)
    except (KeyError, IndexError, ValueError) as e:
        raise ValueError(f"Invalid template '{template}': {e}") from e


class RuleEngine:
    """
    Args:
        rules: Rules to evaluate; disabled rules are ignored.
        now: Clock used for age conditions and undated templates.
    """

    def __init__(self, rules: Sequence[OrganizationRule], now: Optional[Callable[[], float]] = None):
        self.rules = sorted((r for r in rules if r.enabled), key=lambda r: (r.priority, r.id))
        self.now = now or time.time

    # ------------------------------
    # Scope
    # ------------------------------

    @staticmethod
    def in_scope(scope: RuleScope, record: FileRecord) -> bool:
        if not scope.paths:
            return scope.include_hidden or not (record.is_hidden or record.name.startswith("."))
        for root in scope.paths:
            if not PathUtils.is_under(record.path, root):
                continue
            if not scope.recursive and not PathUtils.is_same(PathUtils.parent(record.path), root):
                continue
            if not scope.include_hidden:
                relative = PathUtils.segments(record.path)[len(PathUtils.segments(root)):]
                if record.is_hidden or any(part.startswith(".") for part in relative):
                    continue
            return True
        return False

    # ------------------------------
    # Conditions
    # ------------------------------

    @staticmethod
    def condition_matches(condition: RuleCondition, record: FileRecord, now: float) -> bool:
        op = condition.operator
        flags = 0 if condition.case_sensitive else re.IGNORECASE
        fold = (lambda s: s) if condition.case_sensitive else str.lower

        if condition.type == ConditionType.EXTENSION:
            extension = PathUtils.split_ext(record.name)[1].lstrip(".")
            if op == ConditionOperator.MATCHES:
                return re.fullmatch(str(condition.value), extension, flags) is not None
            wanted = {fold(v.lstrip(".")) for v in _alternatives(condition.value)}
            if op == ConditionOperator.EQUALS:
                return fold(extension) in wanted
            if op == ConditionOperator.CONTAINS:
                return any(w in fold(extension) for w in wanted)

        elif condition.type == ConditionType.PATTERN:
            name = fold(record.name)
            options = [fold(v) for v in _alternatives(condition.value)]
            if op == ConditionOperator.EQUALS:
                return name in options
            if op == ConditionOperator.CONTAINS:
                return any(o in name for o in options)
            if op == ConditionOperator.MATCHES:
                return any(fnmatch.fnmatchcase(name, o) for o in options)

        elif condition.type == ConditionType.SIZE:
            return _compare(record.size, op, condition.value, ConvertUtils.human_to_bytes)

        elif condition.type == ConditionType.AGE:
            if record.modified is None:
                return False
            age_days = (now - record.modified) / SECONDS_PER_DAY
            return _compare(age_days, op, condition.value, float)

        raise ValueError(f"Operator '{op.value}' is not supported for {condition.type.value}")

    # ------------------------------
    # Evaluation
    # ------------------------------

    def matching_rule(self, record: FileRecord, now: Optional[float] = None) -> Optional[OrganizationRule]:
        now = self.now() if now is None else now
        for rule in self.rules:
            if self.in_scope(rule.scope, record) and self.condition_matches(rule.condition, record, now):
                return rule
        return None

    @staticmethod
    def operation_for(rule: OrganizationRule, record: FileRecord, now: float) -> OrganizationOperation:
        op_type = _ACTION_TO_OPERATION[rule.action.type]
        destination = None
        if op_type in (OperationType.MOVE, OperationType.COPY):
            directory = render_template(rule.action.destination, record, now)
            destination = PathUtils.join(directory, record.name)
        elif op_type == OperationType.RENAME:
            new_name = render_template(rule.action.template, record, now)
            if PathUtils.depth(new_name) != 1:
                raise ValueError(f"Rename pattern must produce a plain file name, got '{new_name}'")
            destination = PathUtils.join(PathUtils.parent(record.path), new_name)
        return OrganizationOperation(
            id=f"{rule.id}-{make_id(record.path)}",
            type=op_type,
            source=record.path,
            destination=destination,
            size=record.size,
            origin=rule.id,
        )

    def evaluate(self, records: Iterable[FileRecord]) -> List[OrganizationOperation]:
        """Candidate operations, one per matched file, in path order."""
        now = self.now()
        candidates = []
        for record in sorted(records, key=lambda r: r.path):
            if record.is_directory:
                continue
            rule = self.matching_rule(record, now)
            if rule is None:
                continue
            operation = self.operation_for(rule, record, now)
            logger.debug(f"Rule '{rule.id}' matched {record.path}: {operation.type.value}")
            candidates.append(operation)
        logger.debug(f"{len(candidates)} candidate operation(s) from {len(self.rules)} rule(s)")
        return candidates
