"""
Unit tests for OriginalSelector.
Verifies the ranking criteria and that the result never depends on input order.
"""
import itertools

import pytest

from diskdominator.core.models import DuplicateItem
from diskdominator.core.selector import OriginalSelector
from conftest import make_record


def _items(*records):
    return [DuplicateItem(id=str(i), record=r) for i, r in enumerate(records)]


class TestOriginalSelector:
    def test_backup_location_loses_to_older_regular_copy(self):
        items = _items(
            make_record("E:/Backup/Videos/x.mp4", created="2023-05-15"),
            make_record("D:/Videos/Vacations/x.mp4", created="2023-05-12"),
        )
        kept = OriginalSelector().select(items)
        assert kept.path == "D:/Videos/Vacations/x.mp4"

    def test_temp_location_outweighs_age(self):
        """An older file in a temp folder still loses."""
        items = _items(
            make_record("C:/Temp/img.jpg", created="2020-01-01"),
            make_record("D:/Photos/img.jpg", created="2023-01-01"),
        )
        assert OriginalSelector().select(items).path == "D:/Photos/img.jpg"

    def test_older_creation_wins(self):
        items = _items(
            make_record("D:/a/img.jpg", created="2023-08-20"),
            make_record("D:/b/img.jpg", created="2023-08-10"),
        )
        assert OriginalSelector().select(items).path == "D:/b/img.jpg"

    def test_unknown_creation_ranks_after_known(self):
        items = _items(
            make_record("D:/a/img.jpg"),
            make_record("D:/b/img.jpg", created="2023-08-10"),
        )
        assert OriginalSelector().select(items).path == "D:/b/img.jpg"

    def test_organized_location_breaks_date_tie(self):
        items = _items(
            make_record("D:/misc/report.pdf"),
            make_record("D:/Documents/report.pdf"),
        )
        assert OriginalSelector().select(items).path == "D:/Documents/report.pdf"

    def test_shallower_path_then_lexicographic(self):
        items = _items(
            make_record("D:/a/b/c/file.txt"),
            make_record("D:/z/file.txt"),
            make_record("D:/y/file.txt"),
        )
        ranked = OriginalSelector().rank(items)
        assert [i.path for i in ranked] == ["D:/y/file.txt", "D:/z/file.txt", "D:/a/b/c/file.txt"]

    def test_segment_match_is_whole_and_case_insensitive(self):
        selector = OriginalSelector()
        temperature = DuplicateItem(id="1", record=make_record("D:/Temperature/x.txt"))
        cache = DuplicateItem(id="2", record=make_record("D:/CACHE/x.txt"))
        assert selector.sort_key(temperature)[0] is False
        assert selector.sort_key(cache)[0] is True

    def test_result_independent_of_input_order(self):
        records = [
            make_record("E:/Backup/Photos/2023/img.jpg", created="2023-08-20"),
            make_record("D:/Photos/2023/img.jpg", created="2023-08-10"),
            make_record("C:/Temp/img.jpg", created="2023-08-05"),
        ]
        selector = OriginalSelector()
        chosen = set()
        for permutation in itertools.permutations(records):
            chosen.add(selector.select(_items(*permutation)).path)
        assert chosen == {"D:/Photos/2023/img.jpg"}

    def test_exactly_one_item_marked(self):
        items = _items(make_record("/a/x"), make_record("/b/x"), make_record("/c/x"))
        OriginalSelector().select(items)
        assert sum(i.should_keep for i in items) == 1
        assert sum(i.is_original for i in items) == 1

    def test_empty_group_rejected(self):
        with pytest.raises(ValueError):
            OriginalSelector().select([])

    def test_custom_segments(self):
        selector = OriginalSelector(temp_segments={"Old"})
        items = _items(make_record("/old/x", created="2020-01-01"), make_record("/new/x", created="2021-01-01"))
        assert selector.select(items).path == "/new/x"
