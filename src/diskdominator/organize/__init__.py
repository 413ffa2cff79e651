"""
Organization engine: rules -> candidate operations -> validated plan -> preview -> execution.

- RuleEngine: first-match-wins evaluation of declarative rules
- OrganizationPlanner: collision policy, conflict checks, topological ordering
- PlanPreviewer: change summary without mutation
- PlanExecutor: reversal-logged execution with rollback and cancellation
"""

from .models import (
    ActionType, ConditionOperator, ConditionType, CollisionPolicy, OperationType, OperationStatus,
    PlanStatus, ExecutionStatus, RuleCondition, RuleAction, RuleScope, OrganizationRule, Suggestion,
    OrganizationOperation, OrganizationPlan, PlanMetadata, ChangeSummary, PlanExecution, ReversalLog)
from .rules import RuleEngine
from .planner import OrganizationPlanner, PlannerConfig, project_changes
from .previewer import PlanPreviewer
from .executor import PlanExecutor, ExecutionOptions

__all__ = [
    "ActionType",
    "ConditionOperator",
    "ConditionType",
    "CollisionPolicy",
    "OperationType",
    "OperationStatus",
    "PlanStatus",
    "ExecutionStatus",
    "RuleCondition",
    "RuleAction",
    "RuleScope",
    "OrganizationRule",
    "Suggestion",
    "OrganizationOperation",
    "OrganizationPlan",
    "PlanMetadata",
    "ChangeSummary",
    "PlanExecution",
    "ReversalLog",
    "RuleEngine",
    "OrganizationPlanner",
    "PlannerConfig",
    "project_changes",
    "PlanPreviewer",
    "PlanExecutor",
    "ExecutionOptions",
]
