"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/grouper.py
Partitions a FileRecord snapshot into duplicate groups.

Pipeline for one detection run:
    filter records (disk, size, hidden/system, type, excluded paths)
      → partition by (kind, identity key)
      → drop partitions with fewer than two members
      → build a DuplicateGroup per partition, ranked and marked by the selector
      → order groups by the requested grouping method

The grouper never mutates its input records and keeps no state between runs
other than the `deferred` list of the last run, so detection over an
unchanged snapshot is idempotent.
"""

import logging
from collections import Counter, defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import xxhash

from diskdominator.core.models import (
    DetectionMethod, DuplicateGroup, DuplicateItem, DuplicateScanOptions, FileCategory,
    FileRecord, GroupingMethod, ItemKind, normalize_disk)
from diskdominator.core.normalizer import normalize_filename
from diskdominator.core.selector import OriginalSelector
from diskdominator.events import DUPLICATE_FOUND, EventSink, safe_emit
from diskdominator.exceptions import ScanIncomplete
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)


def make_id(*parts: str) -> str:
    """Deterministic short id built from xxHash64 of the joined parts."""
    return xxhash.xxh64(":".join(parts).encode("utf-8")).hexdigest()


class DuplicateGrouper:
    """
    Groups records by identity key and delegates keep/discard marking to an
    OriginalSelector. Groups are independent, so with `workers > 1` they are
    built on a bounded thread pool; output order does not depend on it.
    """

    def __init__(
        self,
        selector: Optional[OriginalSelector] = None,
        event_sink: Optional[EventSink] = None,
        workers: int = 1
    ):
        if workers < 1:
            raise ValueError("workers must be at least 1")
        self.selector = selector or OriginalSelector()
        self.event_sink = event_sink
        self.workers = workers
        self.deferred: List[FileRecord] = []

    # ------------------------------
    # Filters
    # ------------------------------

    @staticmethod
    def passes_filters(record: FileRecord, options: DuplicateScanOptions) -> bool:
        if options.disks and normalize_disk(record.disk) not in options.disks:
            return False
        if options.min_size is not None and record.size < options.min_size:
            return False
        if options.max_size is not None and record.size > options.max_size:
            return False
        if not options.include_hidden and record.is_hidden:
            return False
        if not options.include_system and record.is_system:
            return False
        if options.file_types:
            if record.is_directory or record.extension not in options.file_types:
                return False
        for excluded in options.excluded_paths:
            if PathUtils.is_same_or_under(record.path, excluded):
                return False
        return True

    # ------------------------------
    # Identity keys
    # ------------------------------

    @staticmethod
    def identity_key(record: FileRecord, method: DetectionMethod) -> Optional[str]:
        """Key for `record` under `method`; None means the record cannot be keyed yet."""
        if method == DetectionMethod.HASH:
            return record.content_hash
        if method == DetectionMethod.SIZE:
            return str(record.size)
        name = record.name.lower() if record.is_directory else normalize_filename(record.name)
        if method == DetectionMethod.NAME:
            return name
        if method == DetectionMethod.NAME_AND_SIZE:
            return f"{name}:{record.size}"
        raise ValueError(f"Unsupported detection method: {method}")

    def partition(
        self,
        records: Iterable[FileRecord],
        options: DuplicateScanOptions
    ) -> Dict[Tuple[ItemKind, str], List[FileRecord]]:
        """
        Filtered records keyed by (kind, identity key); partitions of any size.

        A record without a key is deferred only if another candidate has the
        same kind and size. With a unique size it cannot have a duplicate, so
        lazy hashing rightly left it unhashed and it is dropped.
        """
        partitions = defaultdict(list)
        seen_paths = set()
        sizes = Counter()
        unkeyed = []
        for record in records:
            if record.path in seen_paths:
                logger.warning(f"Ignoring repeated record for {record.path}")
                continue
            seen_paths.add(record.path)

            if not self.passes_filters(record, options):
                logger.debug(f"Filtered out: {record.path}")
                continue

            sizes[(record.is_directory, record.size)] += 1
            key = self.identity_key(record, options.method)
            if key is None:
                unkeyed.append(record)
                continue
            kind = ItemKind.FOLDER if record.is_directory else ItemKind.FILE
            partitions[(kind, key)].append(record)

        deferred = [r for r in unkeyed if sizes[(r.is_directory, r.size)] >= 2]
        if len(deferred) < len(unkeyed):
            logger.debug(f"{len(unkeyed) - len(deferred)} unhashed record(s) with a unique size skipped")
        self.deferred = deferred
        if deferred:
            logger.warning(f"{len(deferred)} record(s) deferred: content hash not computed yet")
        return partitions

    # ------------------------------
    # Group construction
    # ------------------------------

    def build_group(self, kind: ItemKind, key: str, records: List[FileRecord],
                    method: DetectionMethod) -> DuplicateGroup:
        items = [DuplicateItem(id=make_id(record.path), record=record) for record in records]
        kept = self.selector.select(items)
        ranked = self.selector.rank(items)
        category = FileCategory.OTHER if kind == ItemKind.FOLDER else kept.record.category
        return DuplicateGroup(
            id=make_id(method.value, kind.value, key),
            identity_key=key,
            kind=kind,
            items=ranked,
            name=kept.record.name,
            category=category,
        )

    @staticmethod
    def sort_groups(groups: List[DuplicateGroup], group_by: GroupingMethod) -> List[DuplicateGroup]:
        if group_by == GroupingMethod.NAME:
            key = lambda g: (g.name.lower(), g.identity_key, g.kind.value)
        elif group_by == GroupingMethod.TYPE:
            key = lambda g: (g.category.value, g.name.lower(), g.identity_key, g.kind.value)
        elif group_by == GroupingMethod.LOCATION:
            key = lambda g: (g.kept.disk, g.kept.path, g.identity_key)
        else:
            key = lambda g: (g.identity_key, g.kind.value)
        return sorted(groups, key=key)

    def group(
        self,
        records: Iterable[FileRecord],
        options: Optional[DuplicateScanOptions] = None,
        require_complete: bool = False,
        stopped_flag: Optional[Callable[[], bool]] = None,
        progress_callback: Optional[Callable[[str, int, object], None]] = None
    ) -> List[DuplicateGroup]:
        """
        Detect duplicate groups in `records`.

        Args:
            records: FileRecord snapshot (not modified).
            options: Filters and methods; defaults to hash grouping without filters.
            require_complete: Raise ScanIncomplete instead of deferring unhashed records.
            stopped_flag: Returns True to abandon the run (an empty list is returned).
            progress_callback: (stage, current, total) after each built group.

        Returns:
            Groups ordered by `options.group_by`.
        """
        options = options or DuplicateScanOptions()
        partitions = self.partition(records, options)

        if self.deferred and require_complete:
            raise ScanIncomplete([r.path for r in self.deferred])

        candidates = [
            (kind, key, members) for (kind, key), members in partitions.items()
            if len(members) >= 2
        ]
        logger.debug(f"{len(candidates)} partition(s) with two or more members")

        if stopped_flag and stopped_flag():
            logger.debug("Grouping cancelled before start")
            return []

        build = lambda c: self.build_group(c[0], c[1], c[2], options.method)
        if self.workers > 1 and len(candidates) > 1:
            groups = []
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(build, candidate) for candidate in candidates]
                for index, future in enumerate(as_completed(futures), 1):
                    groups.append(future.result())
                    if progress_callback:
                        progress_callback('grouping', index, len(candidates))
                    if stopped_flag and stopped_flag():
                        for pending in futures:
                            pending.cancel()
                        logger.debug("Grouping interrupted by user")
                        return []
        else:
            groups = []
            for index, candidate in enumerate(candidates, 1):
                if stopped_flag and stopped_flag():
                    logger.debug("Grouping interrupted by user")
                    return []
                groups.append(build(candidate))
                if progress_callback:
                    progress_callback('grouping', index, len(candidates))

        groups = self.sort_groups(groups, options.group_by)

        for group in groups:
            safe_emit(self.event_sink, DUPLICATE_FOUND, {
                "group_id": group.id,
                "identity_key": group.identity_key,
                "kind": group.kind.value,
                "count": group.duplicate_count,
                "kept_path": group.kept.path,
                "reclaimable_bytes": group.reclaimable_bytes,
            })

        return groups
