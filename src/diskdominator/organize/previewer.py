"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

organize/previewer.py
Dry-run projection of a ready plan.
"""
import logging
import os
from typing import Callable, Optional

from diskdominator.exceptions import PlanStateError
from diskdominator.organize.models import ChangeSummary, OrganizationPlan, PlanStatus
from diskdominator.organize.planner import OrganizationPlanner, project_changes

logger = logging.getLogger(__name__)


class PlanPreviewer:
    """
    Reports what a plan would change without mutating anything. Uses the
    planner's verify() and the same projection as the executor's dry run.
    """

    def __init__(self, planner: Optional[OrganizationPlanner] = None,
                 dir_exists: Optional[Callable[[str], bool]] = None):
        self.planner = planner or OrganizationPlanner()
        self.dir_exists = dir_exists or os.path.isdir

    def preview(self, plan: OrganizationPlan) -> ChangeSummary:
        if plan.status != PlanStatus.READY:
            raise PlanStateError(f"Only a ready plan can be previewed (plan is {plan.status.value})")
        self.planner.verify(plan)
        summary = project_changes(plan.operations, self.dir_exists)
        logger.debug(f"Preview of {plan.id}: {summary.counts()}")
        return summary
