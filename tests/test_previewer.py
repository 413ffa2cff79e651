"""
Tests for PlanPreviewer.
"""
import pytest

from diskdominator.exceptions import PlanStateError, ValidationError
from diskdominator.organize.models import OperationType, OrganizationOperation, OrganizationPlan, PlanMetadata
from diskdominator.organize.planner import OrganizationPlanner
from diskdominator.organize.previewer import PlanPreviewer
from conftest import make_record


def _ready_plan():
    planner = OrganizationPlanner(path_exists=lambda p: False)
    ops = [
        OrganizationOperation(id="m", type=OperationType.MOVE, source="/in/a.jpg",
                              destination="/sorted/img/a.jpg", size=10),
        OrganizationOperation(id="c", type=OperationType.COPY, source="/in/b.jpg",
                              destination="/sorted/img/b.jpg", size=20),
        OrganizationOperation(id="r", type=OperationType.RENAME, source="/in/c.txt",
                              destination="/in/d.txt", size=5),
        OrganizationOperation(id="d", type=OperationType.DELETE, source="/in/e.tmp", size=40),
    ]
    records = [make_record(op.source, op.size) for op in ops]
    return planner.build(ops, records, "preview")


class TestPlanPreviewer:
    def test_counts(self):
        previewer = PlanPreviewer(dir_exists=lambda p: p == "/in")
        summary = previewer.preview(_ready_plan())
        assert summary.counts() == {"creates": 2, "moves": 1, "copies": 1, "renames": 1, "deletes": 1}
        assert summary.bytes_freed == 40

    def test_created_directories_listed_outermost_first(self):
        summary = PlanPreviewer(dir_exists=lambda p: False).preview(_ready_plan())
        created = [c.path for c in summary.changes if c.kind.value == "create_dir"]
        assert created == ["/sorted", "/sorted/img", "/in"]

    def test_preview_does_not_change_plan(self):
        plan = _ready_plan()
        before = (plan.status, plan.operations)
        PlanPreviewer(dir_exists=lambda p: True).preview(plan)
        assert (plan.status, plan.operations) == before

    def test_draft_plan_rejected(self):
        plan = OrganizationPlan(id="p", name="draft", operations=())
        with pytest.raises(PlanStateError):
            PlanPreviewer().preview(plan)

    def test_plan_failing_verification(self):
        plan = OrganizationPlan(id="p", name="bad", operations=(
            OrganizationOperation(id="a", type=OperationType.COPY, source="/x", destination="/out/f"),
            OrganizationOperation(id="b", type=OperationType.COPY, source="/y", destination="/out/f"),
        ))
        plan.mark_ready(PlanMetadata(total_files=2, total_size=0, estimated_duration=0, affected_paths=()))
        with pytest.raises(ValidationError, match="share destination"):
            PlanPreviewer().preview(plan)
