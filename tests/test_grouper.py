"""
Unit tests for DuplicateGrouper.
Verifies identity keys, filters, group construction, ordering and events.
"""
import pytest

from diskdominator.core.grouper import DuplicateGrouper, make_id
from diskdominator.core.scanner import FileScannerImpl
from diskdominator.core.models import (
    DetectionMethod, DuplicateScanOptions, FileCategory, GroupingMethod, ItemKind)
from diskdominator.events import DUPLICATE_FOUND, RecordingEventSink
from diskdominator.exceptions import ScanIncomplete
from conftest import make_record


def _snapshot():
    return [
        make_record("D:/Photos/2023/img.jpg", 2048, "a1b2c3", created="2023-08-10"),
        make_record("E:/Backup/Photos/2023/img.jpg", 2048, "a1b2c3", created="2023-08-20"),
        make_record("C:/Temp/img.jpg", 2048, "a1b2c3", created="2023-08-05"),
        make_record("D:/Docs/report.pdf", 500, "ffff01"),
        make_record("E:/Docs/report (1).pdf", 500, "ffff01"),
        make_record("D:/unique.txt", 10, "0000aa"),
    ]


class TestIdentityKey:
    def test_hash(self):
        assert DuplicateGrouper.identity_key(make_record("/a", content_hash="ab"), DetectionMethod.HASH) == "ab"

    def test_unhashed_record_has_no_key(self):
        assert DuplicateGrouper.identity_key(make_record("/a"), DetectionMethod.HASH) is None

    def test_size(self):
        assert DuplicateGrouper.identity_key(make_record("/a", 42), DetectionMethod.SIZE) == "42"

    def test_name_is_normalized(self):
        key = DuplicateGrouper.identity_key(make_record("/x/Photo (1).JPG"), DetectionMethod.NAME)
        assert key == "photo.jpg"

    def test_name_and_size(self):
        key = DuplicateGrouper.identity_key(make_record("/x/photo.jpg", 7), DetectionMethod.NAME_AND_SIZE)
        assert key == "photo.jpg:7"


class TestGrouping:
    def test_scenario_keeps_organized_original(self):
        groups = DuplicateGrouper().group(_snapshot())
        photo = next(g for g in groups if g.identity_key == "a1b2c3")
        assert photo.kept.path == "D:/Photos/2023/img.jpg"
        assert photo.reclaimable_bytes == 4096
        assert photo.category == FileCategory.IMAGE
        assert photo.items[0].path == "D:/Photos/2023/img.jpg"

    def test_singletons_are_not_groups(self):
        groups = DuplicateGrouper().group(_snapshot())
        assert len(groups) == 2
        assert all(g.duplicate_count >= 2 for g in groups)

    def test_exactly_one_kept_per_group(self):
        for group in DuplicateGrouper().group(_snapshot()):
            assert sum(item.should_keep for item in group.items) == 1

    def test_idempotent(self):
        grouper = DuplicateGrouper()
        first = grouper.group(_snapshot())
        second = grouper.group(_snapshot())
        assert [(g.id, [i.path for i in g.items], g.kept.path) for g in first] == \
               [(g.id, [i.path for i in g.items], g.kept.path) for g in second]

    def test_input_not_modified(self):
        records = _snapshot()
        before = list(records)
        DuplicateGrouper().group(records)
        assert records == before

    def test_ids_are_stable(self):
        group = next(g for g in DuplicateGrouper().group(_snapshot()) if g.identity_key == "a1b2c3")
        assert group.id == make_id("hash", "file", "a1b2c3")
        assert {i.id for i in group.items} == {make_id(i.path) for i in group.items}

    def test_files_and_folders_never_share_a_group(self):
        records = [
            make_record("/a/data", 10, "same", is_directory=True),
            make_record("/b/data", 10, "same", is_directory=True),
            make_record("/c/data", 10, "same"),
        ]
        groups = DuplicateGrouper().group(records)
        assert len(groups) == 1
        assert groups[0].kind == ItemKind.FOLDER
        assert groups[0].category == FileCategory.OTHER

    def test_repeated_path_counted_once(self):
        records = [make_record("/a/x", 1, "h"), make_record("/a/x", 1, "h")]
        assert DuplicateGrouper().group(records) == []

    def test_size_method(self):
        options = DuplicateScanOptions(method=DetectionMethod.SIZE)
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert sorted(g.identity_key for g in groups) == ["2048", "500"]

    def test_name_method_ignores_hash(self):
        records = [make_record("/a/report.pdf", 1), make_record("/b/Report (2).pdf", 5)]
        options = DuplicateScanOptions(method=DetectionMethod.NAME)
        groups = DuplicateGrouper().group(records, options)
        assert len(groups) == 1
        assert groups[0].identity_key == "report.pdf"


class TestDeferred:
    def test_unhashed_records_are_deferred(self):
        records = _snapshot() + [make_record("/late/a.bin", 99), make_record("/late/b.bin", 99)]
        grouper = DuplicateGrouper()
        groups = grouper.group(records)
        assert len(groups) == 2
        assert [r.path for r in grouper.deferred] == ["/late/a.bin", "/late/b.bin"]

    def test_require_complete_raises(self):
        records = _snapshot() + [make_record("/late/a.bin", 500)]
        with pytest.raises(ScanIncomplete) as exc:
            DuplicateGrouper().group(records, require_complete=True)
        assert exc.value.pending_paths == ["/late/a.bin"]

    def test_unhashed_record_with_unique_size_is_not_deferred(self):
        """Lazy hashing skips files no other file matches in size; they are not pending."""
        records = _snapshot() + [make_record("/late/solo.bin", 12345)]
        grouper = DuplicateGrouper()
        groups = grouper.group(records, require_complete=True)
        assert len(groups) == 2
        assert grouper.deferred == []

    def test_size_shared_with_filtered_record_does_not_count(self):
        records = [make_record("/a/x", 7), make_record("/b/.x", 7, is_hidden=True)]
        grouper = DuplicateGrouper()
        grouper.group(records)
        assert grouper.deferred == []

    def test_size_method_never_defers(self):
        grouper = DuplicateGrouper()
        grouper.group([make_record("/a", 1), make_record("/b", 1)], DuplicateScanOptions(method=DetectionMethod.SIZE))
        assert grouper.deferred == []


class TestFilters:
    def test_disk_filter(self):
        options = DuplicateScanOptions(disks=["d"])
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert groups == []

    def test_disk_filter_keeps_matching_members(self):
        options = DuplicateScanOptions(disks=["D", "E"])
        groups = DuplicateGrouper().group(_snapshot(), options)
        photo = next(g for g in groups if g.identity_key == "a1b2c3")
        assert {i.path for i in photo.items} == {"D:/Photos/2023/img.jpg", "E:/Backup/Photos/2023/img.jpg"}

    def test_size_bounds_inclusive(self):
        options = DuplicateScanOptions(min_size=500, max_size=500)
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert [g.identity_key for g in groups] == ["ffff01"]

    def test_file_types(self):
        options = DuplicateScanOptions(file_types=["pdf"])
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert [g.identity_key for g in groups] == ["ffff01"]

    def test_hidden_excluded_by_default(self):
        records = [make_record("/a/.cache/x", 1, "h", is_hidden=True), make_record("/b/x", 1, "h"),
                   make_record("/c/x", 1, "h", is_hidden=True)]
        assert DuplicateGrouper().group(records) == []
        groups = DuplicateGrouper().group(records, DuplicateScanOptions(include_hidden=True))
        assert groups[0].duplicate_count == 3

    def test_scan_root_inside_dot_directory(self, temp_dir):
        """Only segments below the scan root make a scanned file hidden."""
        root = temp_dir / ".local" / "share" / "photos"
        root.mkdir(parents=True)
        (root / "a.jpg").write_bytes(b"same")
        (root / "b.jpg").write_bytes(b"same")
        groups = DuplicateGrouper().group(FileScannerImpl([str(root)]).scan())
        assert len(groups) == 1
        assert groups[0].duplicate_count == 2

    def test_system_excluded_by_default(self):
        records = [make_record("/a/x", 1, "h", is_system=True), make_record("/b/x", 1, "h")]
        assert DuplicateGrouper().group(records) == []

    def test_excluded_paths(self):
        options = DuplicateScanOptions(excluded_paths=["C:/Temp"])
        photo = DuplicateGrouper().group(_snapshot(), options)[0]
        assert "C:/Temp/img.jpg" not in {i.path for i in photo.items}


class TestOrdering:
    def test_default_orders_by_identity_key(self):
        groups = DuplicateGrouper().group(_snapshot())
        assert [g.identity_key for g in groups] == ["a1b2c3", "ffff01"]

    def test_by_type(self):
        options = DuplicateScanOptions(group_by=GroupingMethod.TYPE)
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert [g.category for g in groups] == [FileCategory.DOCUMENT, FileCategory.IMAGE]

    def test_by_name(self):
        options = DuplicateScanOptions(group_by=GroupingMethod.NAME)
        groups = DuplicateGrouper().group(_snapshot(), options)
        assert [g.name for g in groups] == ["img.jpg", "report.pdf"]


class TestConcurrencyAndEvents:
    def test_workers_do_not_change_result(self):
        records = [make_record(f"/{d}/f{n}.bin", n + 1, f"h{n}") for n in range(20) for d in ("a", "b")]
        serial = DuplicateGrouper().group(records)
        parallel = DuplicateGrouper(workers=4).group(records)
        assert [(g.id, g.kept.path) for g in serial] == [(g.id, g.kept.path) for g in parallel]

    def test_workers_must_be_positive(self):
        with pytest.raises(ValueError):
            DuplicateGrouper(workers=0)

    def test_duplicate_found_events(self):
        sink = RecordingEventSink()
        groups = DuplicateGrouper(event_sink=sink).group(_snapshot())
        events = sink.of_type(DUPLICATE_FOUND)
        assert [e["group_id"] for e in events] == [g.id for g in groups]
        assert events[0]["kept_path"] == "D:/Photos/2023/img.jpg"
        assert events[0]["reclaimable_bytes"] == 4096

    def test_failing_sink_does_not_abort(self):
        class Broken:
            def emit(self, event, payload):
                raise RuntimeError("listener crashed")

        assert len(DuplicateGrouper(event_sink=Broken()).group(_snapshot())) == 2

    def test_stopped_returns_nothing(self):
        assert DuplicateGrouper().group(_snapshot(), stopped_flag=lambda: True) == []

    def test_progress_reported(self):
        calls = []
        DuplicateGrouper().group(_snapshot(), progress_callback=lambda *a: calls.append(a))
        assert calls[-1] == ("grouping", 2, 2)

    def test_parallel_progress_reported_per_group(self):
        records = [make_record(f"/{d}/f{n}.bin", n + 1, f"h{n}") for n in range(6) for d in ("a", "b")]
        calls = []
        DuplicateGrouper(workers=3).group(records, progress_callback=lambda *a: calls.append(a))
        assert [c[1] for c in calls] == [1, 2, 3, 4, 5, 6]
        assert all(c[0] == "grouping" and c[2] == 6 for c in calls)

    def test_parallel_run_honours_stop_flag(self):
        records = [make_record(f"/{d}/f{n}.bin", n + 1, f"h{n}") for n in range(6) for d in ("a", "b")]
        checks = []

        def stop_after_start():
            checks.append(True)
            return len(checks) > 1

        assert DuplicateGrouper(workers=3).group(records, stopped_flag=stop_after_start) == []
