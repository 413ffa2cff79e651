"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/selector.py
Chooses the member of a duplicate group that is kept ("original").

Ranking criteria, applied in order:
1. Not located under a temporary directory (temp, cache, backup, tmp).
2. Older creation timestamp; a known timestamp beats an unknown one.
3. Located under an organized directory (documents, projects, work).
4. Fewer path segments.
5. Lexicographic path (final tie-break, makes the order total).

All directory checks are case-insensitive and look at whole directory
segments only: "D:/Temperature/x.txt" is not a temp location.
"""
import logging
from typing import List, Tuple

from diskdominator.core.interfaces import Selector
from diskdominator.core.models import DuplicateItem
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

TEMP_SEGMENTS = frozenset({"temp", "cache", "backup", "tmp"})
ORGANIZED_SEGMENTS = frozenset({"documents", "projects", "work"})


class OriginalSelector(Selector):
    """Pure, deterministic comparator over DuplicateItems."""

    def __init__(self, temp_segments=TEMP_SEGMENTS, organized_segments=ORGANIZED_SEGMENTS):
        self.temp_segments = frozenset(s.lower() for s in temp_segments)
        self.organized_segments = frozenset(s.lower() for s in organized_segments)

    def sort_key(self, item: DuplicateItem) -> Tuple:
        path = item.path
        in_temp = PathUtils.has_segment(path, self.temp_segments)
        created = item.created
        in_organized = PathUtils.has_segment(path, self.organized_segments)
        return (
            in_temp,
            created is None,
            created if created is not None else 0.0,
            not in_organized,
            PathUtils.depth(path),
            path,
        )

    def rank(self, items: List[DuplicateItem]) -> List[DuplicateItem]:
        """Items ordered best-first. Input order never affects the result."""
        return sorted(items, key=self.sort_key)

    def select(self, items: List[DuplicateItem]) -> DuplicateItem:
        """
        Mark the best item as original and kept, every other item as not kept.
        Returns the kept item.
        """
        if not items:
            raise ValueError("Cannot select an original from an empty group")
        best = self.rank(items)[0]
        for item in items:
            chosen = item is best
            item.is_original = chosen
            item.should_keep = chosen
        logger.debug(f"Selected original: {best.path}")
        return best
