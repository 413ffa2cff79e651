"""
Tests for OrganizationPlanner: collision resolution, structural conflicts,
dependency ordering and plan metadata.
"""
import pytest

from diskdominator.exceptions import ValidationError
from diskdominator.organize.models import (
    ActionType, CollisionPolicy, OperationType, OrganizationOperation, OrganizationPlan, PlanStatus,
    Suggestion)
from diskdominator.organize.planner import (
    OrganizationPlanner, PlannerConfig, missing_directories, project_changes, uniquify)
from conftest import make_record, ts


def _op(op_id, op_type, source, destination=None, size=0):
    return OrganizationOperation(id=op_id, type=OperationType(op_type), source=source,
                                 destination=destination, size=size)


def _planner(policy=CollisionPolicy.DEFAULT, existing=()):
    existing = set(existing)
    return OrganizationPlanner(PlannerConfig(collision_policy=policy), path_exists=lambda p: p in existing)


def _records(*paths):
    return [make_record(p, 10) for p in paths]


class TestValidation:
    def test_swap_cycle_is_rejected(self):
        ops = [_op("ab", "move", "/d/A", "/d/B"), _op("ba", "move", "/d/B", "/d/A")]
        with pytest.raises(ValidationError) as exc:
            _planner().build(ops, _records("/d/A", "/d/B"), "swap")
        assert any("cycle" in p for p in exc.value.problems)
        assert exc.value.plan.status == PlanStatus.DRAFT

    def test_unknown_source(self):
        with pytest.raises(ValidationError, match="not in the scanned files"):
            _planner().build([_op("x", "delete", "/d/missing")], _records("/d/a"), "p")

    def test_two_consumers_of_one_source(self):
        ops = [_op("m", "move", "/d/a", "/e/a"), _op("d", "delete", "/d/a")]
        with pytest.raises(ValidationError, match="More than one operation consumes"):
            _planner().build(ops, _records("/d/a"), "p")

    def test_delete_with_pending_child_operation(self):
        ops = [_op("del", "delete", "/d/folder"), _op("mv", "move", "/d/folder/a.txt", "/e/a.txt")]
        records = _records("/d/folder/a.txt") + [make_record("/d/folder", 10, is_directory=True)]
        with pytest.raises(ValidationError, match="pending child"):
            _planner().build(ops, records, "p")

    def test_move_into_own_subtree(self):
        ops = [_op("mv", "move", "/d/folder", "/d/folder/inner/folder")]
        records = [make_record("/d/folder", 10, is_directory=True)]
        with pytest.raises(ValidationError, match="own subtree"):
            _planner().build(ops, records, "p")

    def test_destination_inside_moved_directory(self):
        ops = [_op("mv", "move", "/d/folder", "/e/folder"), _op("cp", "copy", "/d/x.txt", "/d/folder/x.txt")]
        records = [make_record("/d/folder", 10, is_directory=True)] + _records("/d/x.txt")
        with pytest.raises(ValidationError, match="which mv removes"):
            _planner().build(ops, records, "p")


class TestCollisions:
    def test_existing_destination_is_uniquified(self):
        planner = _planner(existing={"/sorted/a.jpg"})
        plan = planner.build([_op("m", "move", "/in/a.jpg", "/sorted/a.jpg")], _records("/in/a.jpg"), "p")
        assert plan.operations[0].destination == "/sorted/a (1).jpg"

    def test_two_candidates_for_one_destination(self):
        ops = [_op("m1", "move", "/in/x/a.jpg", "/sorted/a.jpg"), _op("m2", "move", "/in/y/a.jpg", "/sorted/a.jpg")]
        plan = _planner().build(ops, _records("/in/x/a.jpg", "/in/y/a.jpg"), "p")
        assert sorted(op.destination for op in plan.operations) == ["/sorted/a (1).jpg", "/sorted/a.jpg"]

    def test_destination_in_snapshot_is_taken(self):
        ops = [_op("c", "copy", "/in/a.jpg", "/out/a.jpg")]
        plan = _planner().build(ops, _records("/in/a.jpg", "/out/a.jpg", "/out/a (1).jpg"), "p")
        assert plan.operations[0].destination == "/out/a (2).jpg"

    def test_rename_collision_rejected_by_default(self):
        ops = [_op("r", "rename", "/in/a.txt", "/in/b.txt")]
        with pytest.raises(ValidationError, match="collision"):
            _planner().build(ops, _records("/in/a.txt", "/in/b.txt"), "p")

    def test_reject_policy(self):
        ops = [_op("m", "move", "/in/a.jpg", "/out/a.jpg")]
        with pytest.raises(ValidationError, match="collision"):
            _planner(CollisionPolicy.REJECT, existing={"/out/a.jpg"}).build(ops, _records("/in/a.jpg"), "p")

    def test_uniquify_policy_applies_to_renames(self):
        ops = [_op("r", "rename", "/in/a.txt", "/in/b.txt")]
        plan = _planner(CollisionPolicy.UNIQUIFY).build(ops, _records("/in/a.txt", "/in/b.txt"), "p")
        assert plan.operations[0].destination == "/in/b (1).txt"

    def test_vacated_path_is_free(self):
        ops = [_op("first", "move", "/in/b.txt", "/out/b.txt"), _op("second", "rename", "/in/a.txt", "/in/b.txt")]
        plan = _planner().build(ops, _records("/in/a.txt", "/in/b.txt"), "p")
        assert [op.id for op in plan.operations] == ["first", "second"]
        assert plan.operations[1].destination == "/in/b.txt"

    def test_uniquify_helper(self):
        taken = {"/x/a (1).txt"}
        assert uniquify("/x/a.txt", lambda p: p in taken) == "/x/a (2).txt"


class TestOrdering:
    def test_vacate_before_land_regardless_of_input_order(self):
        ops = [_op("land", "rename", "/in/a.txt", "/in/b.txt"), _op("vacate", "move", "/in/b.txt", "/out/b.txt")]
        plan = _planner().build(ops, _records("/in/a.txt", "/in/b.txt"), "p")
        assert [op.id for op in plan.operations] == ["vacate", "land"]

    def test_descendant_before_ancestor(self):
        ops = [_op("parent", "move", "/in/dir", "/out/dir"), _op("child", "move", "/in/dir/a.txt", "/keep/a.txt")]
        records = [make_record("/in/dir", 10, is_directory=True)] + _records("/in/dir/a.txt")
        plan = _planner().build(ops, records, "p")
        assert [op.id for op in plan.operations] == ["child", "parent"]

    def test_copy_before_consuming_operation(self):
        ops = [_op("mv", "move", "/in/a.txt", "/out/a.txt"), _op("cp", "copy", "/in/a.txt", "/backup/a.txt")]
        plan = _planner().build(ops, _records("/in/a.txt"), "p")
        assert [op.id for op in plan.operations] == ["cp", "mv"]

    def test_independent_operations_keep_input_order(self):
        ops = [_op(str(n), "delete", f"/in/{n}.txt") for n in (3, 1, 2)]
        plan = _planner().build(ops, _records("/in/1.txt", "/in/2.txt", "/in/3.txt"), "p")
        assert [op.id for op in plan.operations] == ["3", "1", "2"]

    def test_no_op_and_repeated_candidates_dropped(self):
        ops = [_op("noop", "move", "/in/a.txt", "/in/a.txt"),
               _op("d1", "delete", "/in/b.txt"), _op("d2", "delete", "/in/b.txt")]
        plan = _planner().build(ops, _records("/in/a.txt", "/in/b.txt"), "p")
        assert [op.id for op in plan.operations] == ["d1"]


class TestMetadataAndVerify:
    def test_ready_plan_metadata(self):
        config = PlannerConfig(per_operation_overhead=1.0, copy_throughput=100)
        planner = OrganizationPlanner(config, path_exists=lambda p: False)
        ops = [_op("cp", "copy", "D:/a.bin", "D:/b.bin", size=200),
               _op("mv", "move", "D:/c.bin", "E:/c.bin", size=100),
               _op("rn", "rename", "D:/d.bin", "D:/e.bin", size=50)]
        records = [make_record("D:/a.bin", 200), make_record("D:/c.bin", 100), make_record("D:/d.bin", 50)]
        plan = planner.build(ops, records, "p", "desc")
        assert plan.status == PlanStatus.READY
        assert plan.metadata.total_files == 3
        assert plan.metadata.total_size == 350
        # 3 ops * 1s + (200 copied + 100 moved across disks) / 100 B/s
        assert plan.metadata.estimated_duration == 6.0
        assert "E:/c.bin" in plan.metadata.affected_paths
        assert plan.description == "desc"

    def test_verify_accepts_built_plan(self):
        plan = _planner().build([_op("d", "delete", "/a")], _records("/a"), "p")
        _planner().verify(plan)

    def test_verify_rejects_bad_order(self):
        plan = OrganizationPlan(id="p", name="p", operations=(
            _op("land", "rename", "/in/a.txt", "/in/b.txt"), _op("vacate", "move", "/in/b.txt", "/out/b.txt")))
        with pytest.raises(ValidationError, match="must run before"):
            _planner().verify(plan)


class TestProjection:
    def test_missing_directories_outermost_first(self):
        existing = {"/data"}
        assert missing_directories("/data/a/b", lambda p: p in existing, set()) == ["/data/a", "/data/a/b"]

    def test_missing_directories_stops_at_root(self):
        assert missing_directories("/a", lambda p: False, set()) == ["/a"]

    def test_project_changes_counts_each_directory_once(self):
        ops = [_op("m1", "move", "/in/a", "/out/new/a"), _op("m2", "copy", "/in/b", "/out/new/b"),
               _op("d", "delete", "/in/c", size=7)]
        summary = project_changes(ops, dir_exists=lambda p: p in {"/out"})
        assert summary.counts() == {"creates": 1, "moves": 1, "copies": 1, "renames": 0, "deletes": 1}
        assert summary.bytes_freed == 7


class TestSuggestions:
    def test_operations_from_suggestion(self):
        suggestion = Suggestion(id="s1", title="Sort", action=ActionType.MOVE,
                                affected_files=("/dl/a.pdf", "/dl/b.pdf"), destination="/docs/{year}")
        records = [make_record("/dl/a.pdf", 5, modified=ts("2022-03-01")),
                   make_record("/dl/b.pdf", 6, modified=ts("2023-03-01"))]
        ops = OrganizationPlanner.operations_from_suggestion(suggestion, records, now=ts("2024-01-01"))
        assert [op.destination for op in ops] == ["/docs/2022/a.pdf", "/docs/2023/b.pdf"]
        assert all(op.origin == "s1" for op in ops)
        assert ops[1].size == 6

    def test_unknown_suggestion_path_rejected_on_build(self):
        suggestion = Suggestion(id="s1", title="Clean", action=ActionType.DELETE, affected_files=("/gone.tmp",))
        ops = OrganizationPlanner.operations_from_suggestion(suggestion, [])
        with pytest.raises(ValidationError):
            _planner().build(ops, [], "p")
