"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/scanner.py
Reference record source: walks one or more roots and produces FileRecords.
Features:
- os.walk traversal with pre-filtering of excluded, trash and unreadable directories
- Symbolic links are never followed or reported
- Content hashes computed eagerly, or later via hash_records() (lazy mode)
- Optional folder records carrying a tree hash of their contents
"""

import os
import sys
import stat
import time
import logging
from collections import defaultdict
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from diskdominator.core.hasher import HasherImpl
from diskdominator.core.interfaces import FileScanner
from diskdominator.core.models import FileRecord
from diskdominator.utils.path_utils import PathUtils

logger = logging.getLogger(__name__)

_FILE_ATTRIBUTE_HIDDEN = 0x2
_FILE_ATTRIBUTE_SYSTEM = 0x4


class FileScannerImpl(FileScanner):
    """
    Scans directories recursively and turns every regular file into a FileRecord.

    Attributes:
        roots: Directories to scan
        hasher: Content hasher (xxHash64 by default)
        excluded_dirs: Directories skipped together with their subtrees
        hash_contents: Compute content hashes during the scan (False = lazy)
        include_directories: Also report folders (size = sum of contained files)
    """

    def __init__(
        self,
        roots: List[str],
        hasher: Optional[HasherImpl] = None,
        excluded_dirs: Optional[List[str]] = None,
        hash_contents: bool = True,
        include_directories: bool = False
    ):
        if isinstance(roots, (str, Path)):
            roots = [roots]
        self.roots = [str(Path(r).resolve()) for r in roots]
        self.hasher = hasher or HasherImpl()
        self.excluded_dirs = [str(Path(d).resolve()) for d in excluded_dirs] if excluded_dirs else []
        self.hash_contents = hash_contents
        self.include_directories = include_directories

    def scan(self,
             stopped_flag: Optional[Callable[[], bool]] = None,
             progress_callback: Optional[Callable[[str, int, object], None]] = None) -> List[FileRecord]:
        """Collects iter_records() into a list. Returns [] if cancelled."""
        records = []
        for record in self.iter_records(stopped_flag, progress_callback):
            records.append(record)
        if stopped_flag and stopped_flag():
            logger.debug("Scan cancelled")
            return []
        return records

    def iter_records(self,
                     stopped_flag: Optional[Callable[[], bool]] = None,
                     progress_callback: Optional[Callable[[str, int, object], None]] = None
                     ) -> Iterator[FileRecord]:
        """
        Stream FileRecords root by root. Folder records (if enabled) follow the
        files of their root, once every contained file has been seen.
        """
        progress_interval = 5000
        processed = 0

        for root in self.roots:
            self._validate_root(root)
            logger.debug(f"Scanning directory: {root}")
            start_time = time.time()

            dir_sizes: Dict[str, int] = defaultdict(int)
            dir_entries: Dict[str, List[Tuple[str, Optional[str]]]] = defaultdict(list)

            try:
                for current, dirs, files in os.walk(root):
                    if stopped_flag and stopped_flag():
                        logger.debug("Scan interrupted by user")
                        return

                    dirs[:] = sorted(d for d in dirs if self._prefilter_dirs(Path(current) / d))

                    for filename in sorted(files):
                        record = self._process_file(Path(current) / filename, root)
                        if record is None:
                            continue
                        processed += 1
                        if self.include_directories:
                            self._account_for_folders(record, root, dir_sizes, dir_entries)
                        yield record

                        if progress_callback and processed % progress_interval == 0:
                            progress_callback('scanning', processed, None)

            except PermissionError as pe:
                logger.warning(f"Permission denied during scan: {pe}")

            if self.include_directories:
                for folder in sorted(dir_sizes):
                    yield self._folder_record(folder, root, dir_sizes[folder], dir_entries[folder])

            logger.debug(f"Scanned {root} in {time.time() - start_time:.2f} seconds")

        if progress_callback:
            progress_callback('scanning', processed, None)

    def hash_records(self, records: List[FileRecord],
                     only_size_collisions: bool = True,
                     stopped_flag: Optional[Callable[[], bool]] = None) -> List[FileRecord]:
        """
        Fill in missing content hashes (lazy mode). Returns new records; inputs
        are not modified. With `only_size_collisions`, a record whose size (and
        kind) is unique in the snapshot cannot have a duplicate and stays unhashed.
        """
        sizes = defaultdict(int)
        for record in records:
            sizes[(record.is_directory, record.size)] += 1

        result = []
        for record in records:
            if stopped_flag and stopped_flag():
                result.append(record)
                continue
            if record.is_hashed or (only_size_collisions and sizes[(record.is_directory, record.size)] < 2):
                result.append(record)
                continue
            try:
                digest = self.hasher.compute_hash(record.path)
            except OSError as e:
                logger.warning(f"Could not hash {record.path}: {e}")
                result.append(record)
                continue
            result.append(replace(record, content_hash=digest))
        return result

    @staticmethod
    def _validate_root(root: str) -> None:
        root_path = Path(root)
        if not root_path.exists():
            error_msg = f"Directory does not exist: {root}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)
        if not root_path.is_dir():
            error_msg = f"Not a directory: {root}"
            logger.error(error_msg)
            raise RuntimeError(error_msg)

    @staticmethod
    def _is_system_trash(path: Path) -> bool:
        """
        Check if path belongs to OS trash/recycle bin (cross-platform).
        Returns False on any error (better to scan than skip valid data).
        """
        try:
            path_str = str(path.resolve(strict=False))
            if sys.platform == "win32":
                return "$Recycle.Bin" in path_str or "\\Recycler\\" in path_str
            if sys.platform == "darwin":
                return "/.Trash/" in path_str or path_str.endswith("/.Trash")
            return (".local/share/Trash" in path_str or "/.trash/" in path_str
                    or path_str.endswith("/.trash"))
        except (OSError, ValueError):
            return False

    def _is_excluded_directory(self, path: Path) -> bool:
        try:
            path_str = str(path.resolve(strict=False))
        except (OSError, ValueError):
            return False
        for excluded_dir in self.excluded_dirs:
            normalized_excluded = os.path.normpath(excluded_dir)
            if path_str == normalized_excluded or path_str.startswith(normalized_excluded + os.sep):
                return True
        return False

    def _prefilter_dirs(self, path: Path) -> bool:
        """Skip symlinked, trash, excluded and inaccessible directories."""
        if path.is_symlink():
            logger.debug(f"Skipping symbolic link: {path}")
            return False
        if self._is_system_trash(path):
            logger.debug(f"Skipping system trash directory: {path}")
            return False
        if self.excluded_dirs and self._is_excluded_directory(path):
            logger.debug(f"Skipping excluded directory: {path}")
            return False
        try:
            return path.is_dir() and os.access(path, os.R_OK | os.X_OK)
        except OSError:
            logger.debug(f"Skipping inaccessible directory: {path}")
            return False

    def _process_file(self, path: Path, root: str) -> Optional[FileRecord]:
        try:
            if path.is_symlink():
                logger.debug(f"Skipping symbolic link: {path}")
                return None
            st = path.stat()
        except OSError as e:
            logger.debug(f"Could not stat {path}: {e}")
            return None

        if not stat.S_ISREG(st.st_mode):
            return None

        content_hash = None
        if self.hash_contents:
            try:
                content_hash = self.hasher.compute_file_hash(str(path))
            except OSError as e:
                # Unreadable now; stays deferred for hash grouping
                logger.warning(f"Could not hash {path}: {e}")

        attributes = getattr(st, "st_file_attributes", 0)
        relative = os.path.relpath(str(path), root)
        return FileRecord(
            path=str(path),
            size=st.st_size,
            content_hash=content_hash,
            created=self._creation_time(st),
            modified=st.st_mtime,
            is_hidden=PathUtils.is_hidden(relative) or bool(attributes & _FILE_ATTRIBUTE_HIDDEN),
            is_system=bool(attributes & _FILE_ATTRIBUTE_SYSTEM),
        )

    @staticmethod
    def _creation_time(st: os.stat_result) -> Optional[float]:
        """Birth time where the platform reports one; None otherwise."""
        birth = getattr(st, "st_birthtime", None)
        if birth is not None:
            return birth
        if sys.platform == "win32":
            return st.st_ctime
        return None

    @staticmethod
    def _account_for_folders(record: FileRecord, root: str,
                             dir_sizes: Dict[str, int],
                             dir_entries: Dict[str, List[Tuple[str, Optional[str]]]]) -> None:
        folder = os.path.dirname(record.path)
        while folder != root and PathUtils.is_under(folder, root):
            dir_sizes[folder] += record.size
            rel = os.path.relpath(record.path, folder).replace(os.sep, "/")
            dir_entries[folder].append((rel, record.content_hash))
            folder = os.path.dirname(folder)

    def _folder_record(self, folder: str, root: str, size: int,
                       entries: List[Tuple[str, Optional[str]]]) -> FileRecord:
        content_hash = None
        if self.hash_contents and all(h is not None for _, h in entries):
            content_hash = self.hasher.combine_tree(entries)
        try:
            st = os.stat(folder)
            created, modified = self._creation_time(st), st.st_mtime
        except OSError:
            created = modified = None
        return FileRecord(
            path=folder,
            size=size,
            content_hash=content_hash,
            created=created,
            modified=modified,
            is_directory=True,
            is_hidden=PathUtils.is_hidden(os.path.relpath(folder, root)),
        )
