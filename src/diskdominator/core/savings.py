"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/savings.py
Aggregates reclaimable bytes over duplicate groups.
"""
from collections import defaultdict
from typing import Iterable

from diskdominator.core.models import DuplicateGroup, SavingsSummary


class SavingsCalculator:
    """
    Recomputed from the current keep decisions on every call, so a user
    override of `should_keep` is reflected immediately.
    """

    @staticmethod
    def calculate(groups: Iterable[DuplicateGroup]) -> SavingsSummary:
        by_disk = defaultdict(int)
        by_type = defaultdict(int)
        by_category = defaultdict(int)
        total_size = 0
        recoverable = 0
        group_count = 0
        duplicate_count = 0

        for group in groups:
            group_count += 1
            for item in group.items:
                total_size += item.size
                if item.should_keep:
                    continue
                duplicate_count += 1
                recoverable += item.size
                by_disk[item.disk] += item.size
                by_type[group.kind.value] += item.size
                by_category[group.category.value] += item.size

        return SavingsSummary(
            total_size=total_size,
            recoverable=recoverable,
            by_disk=dict(by_disk),
            by_type=dict(by_type),
            by_category=dict(by_category),
            group_count=group_count,
            duplicate_count=duplicate_count,
        )
