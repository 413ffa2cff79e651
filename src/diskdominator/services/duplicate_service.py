"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/duplicate_service.py
Helpers over detected duplicate groups: user keep overrides, deletion lists
and pruning after files were removed.
"""
import logging
from typing import Iterable, List, Optional, Tuple

from diskdominator.core.models import DuplicateGroup, DuplicateItem, SelectionResult, SelectionStrategy
from diskdominator.core.selector import ORGANIZED_SEGMENTS, TEMP_SEGMENTS, OriginalSelector
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

# Wider than the selector's sets: media libraries count as organized, Downloads as transient
STRATEGY_ORGANIZED_SEGMENTS = ORGANIZED_SEGMENTS | {"pictures", "videos", "music"}
STRATEGY_TEMP_SEGMENTS = TEMP_SEGMENTS | {"downloads"}


class DuplicateService:
    @staticmethod
    def files_to_delete(groups: List[DuplicateGroup]) -> List[str]:
        """Paths of every member that is not kept, in group order."""
        return [item.path for group in groups for item in group.reclaimable]

    @staticmethod
    def set_kept(group: DuplicateGroup, item_ref: str) -> DuplicateItem:
        """
        User override: keep the member with the given id or path instead of the
        selector's choice. `is_original` keeps reporting the selector's verdict.
        """
        chosen = None
        for item in group.items:
            if item.id == item_ref or item.path == item_ref:
                chosen = item
                break
        if chosen is None:
            raise ValueError(f"No member '{item_ref}' in group {group.id}")
        for item in group.items:
            item.should_keep = item is chosen
        return chosen

    @staticmethod
    def strategy_key(item: DuplicateItem, strategy: SelectionStrategy, selector: OriginalSelector) -> Tuple:
        """Sort key, best first. Unknown timestamps rank last; the selector's order breaks ties."""
        if strategy == SelectionStrategy.KEEP_NEWEST:
            modified = item.record.modified
            return (modified is None, -(modified or 0.0), selector.sort_key(item))
        if strategy == SelectionStrategy.KEEP_OLDEST:
            created = item.created
            return (created is None, created or 0.0, selector.sort_key(item))
        if strategy == SelectionStrategy.KEEP_IN_ORGANIZED:
            score = 0
            if PathUtils.has_segment(item.path, STRATEGY_ORGANIZED_SEGMENTS):
                score += 1
            if PathUtils.has_segment(item.path, STRATEGY_TEMP_SEGMENTS):
                score -= 1
            return (-score, selector.sort_key(item))
        raise ValueError(f"Unsupported selection strategy: {strategy}")

    @staticmethod
    def apply_strategy(groups: List[DuplicateGroup], strategy: SelectionStrategy,
                       group_ids: Optional[Iterable[str]] = None,
                       selector: Optional[OriginalSelector] = None) -> List[SelectionResult]:
        """
        Keep one member per group according to `strategy`.

        Only groups listed in `group_ids` are touched (all groups when None or
        empty). Exactly one member of every touched group ends up kept;
        `is_original` keeps reporting the selector's verdict.
        """
        selector = selector or OriginalSelector()
        wanted = set(group_ids or ())
        results = []
        for group in groups:
            if wanted and group.id not in wanted:
                continue
            ranked = sorted(group.items, key=lambda i: DuplicateService.strategy_key(i, strategy, selector))
            chosen = ranked[0]
            for item in group.items:
                item.should_keep = item is chosen
            results.append(SelectionResult(
                group_id=group.id,
                keep_ids=[chosen.id],
                delete_ids=[item.id for item in ranked[1:]],
                reason=strategy.reason,
            ))
        logger.debug(f"Applied {strategy.value} to {len(results)} group(s)")
        return results

    @staticmethod
    def remove_files_from_groups(groups: List[DuplicateGroup], file_paths: List[str],
                                 selector: Optional[OriginalSelector] = None) -> List[DuplicateGroup]:
        """
        Removes the given paths from all groups.

        Groups left with fewer than 2 members are discarded. A group that lost
        its kept member gets a new one from the selector.
        """
        selector = selector or OriginalSelector()
        removed = set(file_paths)
        updated_groups = []
        for group in groups:
            remaining = [item for item in group.items if item.path not in removed]
            if len(remaining) < 2:
                continue
            if not any(item.should_keep for item in remaining):
                selector.select(remaining)
            updated_groups.append(DuplicateGroup(
                id=group.id,
                identity_key=group.identity_key,
                kind=group.kind,
                items=remaining,
                name=group.name,
                category=group.category,
            ))
        return updated_groups

    @staticmethod
    def keep_only_one_file_per_group(groups: List[DuplicateGroup]) -> Tuple[List[str], List[DuplicateGroup]]:
        """
        Keeps the kept member of every group and marks the rest for deletion.
        Returns:
            - List of file paths to be deleted
            - Updated list of duplicate groups (empty once all are resolved)
        """
        files_to_delete = DuplicateService.files_to_delete(groups)
        updated_groups = DuplicateService.remove_files_from_groups(groups, files_to_delete)
        return files_to_delete, updated_groups
