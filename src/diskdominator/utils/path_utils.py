"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

utils/path_utils.py
String-level path helpers that understand both '/' and '\\' separators.

Records may come from any platform (a Windows scan reviewed on Linux, test
fixtures written as "D:/Photos/img.jpg"), so duplicate detection and planning
compare paths by segments instead of relying on os.path of the running host.
"""
import os
import re
from typing import List, Optional

_SEPARATORS = re.compile(r"[\\/]+")
_DRIVE = re.compile(r"^([A-Za-z]):")


class PathUtils:
    @staticmethod
    def segments(path: str) -> List[str]:
        """Non-empty path segments: "D:/Photos/2023/img.jpg" → ["D:", "Photos", "2023", "img.jpg"]."""
        return [part for part in _SEPARATORS.split(path or "") if part]

    @staticmethod
    def depth(path: str) -> int:
        """Number of path segments."""
        return len(PathUtils.segments(path))

    @staticmethod
    def directory_segments(path: str) -> List[str]:
        """Segments of the containing directories (file name excluded)."""
        return PathUtils.segments(path)[:-1]

    @staticmethod
    def basename(path: str) -> str:
        parts = PathUtils.segments(path)
        return parts[-1] if parts else ""

    @staticmethod
    def parent(path: str) -> str:
        """Parent directory, keeping the separator style and root of the input."""
        stripped = path.rstrip("\\/")
        index = max(stripped.rfind("/"), stripped.rfind("\\"))
        if index < 0:
            return ""
        if index == 0:
            return stripped[0]
        parent = stripped[:index]
        # "C:" alone is drive-relative; keep the separator
        if _DRIVE.match(parent) and len(parent) == 2:
            return parent + stripped[index]
        return parent

    @staticmethod
    def join(directory: str, name: str) -> str:
        """Join using the separator style already present in `directory`."""
        if not directory:
            return name
        sep = "\\" if "\\" in directory and "/" not in directory else "/"
        if directory.endswith(("/", "\\")):
            return directory + name
        return f"{directory}{sep}{name}"

    @staticmethod
    def is_root(path: str) -> bool:
        """"/", "D:/" and "D:" are roots; nothing can be created above them."""
        parts = PathUtils.segments(path)
        if not parts:
            return bool(path) and path[0] in "\\/"
        return len(parts) == 1 and _DRIVE.match(parts[0]) is not None and len(parts[0]) == 2

    @staticmethod
    def normalize(path: str) -> str:
        """Canonical form used for comparisons: forward slashes, no trailing separator."""
        if not path:
            return ""
        leading = "/" if path[0] in "\\/" else ""
        return leading + "/".join(PathUtils.segments(path))

    @staticmethod
    def is_same(a: str, b: str) -> bool:
        return PathUtils.normalize(a) == PathUtils.normalize(b)

    @staticmethod
    def is_under(path: str, ancestor: str) -> bool:
        """True if `path` is strictly inside `ancestor`."""
        path_parts = PathUtils.segments(path)
        ancestor_parts = PathUtils.segments(ancestor)
        if path[:1] in ("/", "\\") and ancestor[:1] not in ("/", "\\"):
            return False
        if not ancestor_parts:
            return ancestor[:1] in ("/", "\\") and bool(path_parts)
        if len(path_parts) <= len(ancestor_parts):
            return False
        return path_parts[:len(ancestor_parts)] == ancestor_parts

    @staticmethod
    def is_same_or_under(path: str, ancestor: str) -> bool:
        return PathUtils.is_same(path, ancestor) or PathUtils.is_under(path, ancestor)

    @staticmethod
    def has_segment(path: str, names: frozenset) -> bool:
        """Case-insensitive match of any directory segment against `names` (lower-case)."""
        return any(part.lower() in names for part in PathUtils.directory_segments(path))

    @staticmethod
    def is_hidden(path: str) -> bool:
        """Dot-file convention: any segment starting with '.' marks the path hidden."""
        return any(part.startswith(".") and part not in (".", "..")
                   for part in PathUtils.segments(path))

    @staticmethod
    def disk_of(path: str) -> Optional[str]:
        """
        Volume identifier derived from the path itself.
        Windows drive letter ("D" for "D:/x"), "/" for POSIX absolute paths,
        None for relative paths.
        """
        if not path:
            return None
        match = _DRIVE.match(path)
        if match:
            return match.group(1).upper()
        if path.startswith(("/", "\\")):
            return "/"
        return None

    @staticmethod
    def split_ext(name: str):
        """("report (1)", ".pdf") for "report (1).pdf"; hidden files keep their name as stem."""
        stem, ext = os.path.splitext(name)
        return stem, ext
