"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

core/models.py
Data models for file records, duplicate groups and detection options.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional
from enum import Enum

from diskdominator.utils.convert_utils import ConvertUtils
from diskdominator.utils.path_utils import PathUtils


# =============================
# Enums
# =============================

class DetectionMethod(Enum):
    """
    Identity key used to partition records into duplicate groups.
    """
    HASH = "hash"
    NAME = "name"
    SIZE = "size"
    NAME_AND_SIZE = "name_and_size"

    @property
    def display_name(self) -> str:
        """Human-readable name for UI display."""
        mapping = {
            DetectionMethod.HASH: "Content hash",
            DetectionMethod.NAME: "Normalized name",
            DetectionMethod.SIZE: "Size",
            DetectionMethod.NAME_AND_SIZE: "Name + Size",
        }
        return mapping.get(self, self.value)

    def __repr__(self) -> str:
        return self.value


class GroupingMethod(Enum):
    """Order in which detected groups are returned."""
    HASH = "hash"
    NAME = "name"
    TYPE = "type"
    LOCATION = "location"

    @property
    def display_name(self) -> str:
        mapping = {
            GroupingMethod.HASH: "Identity key",
            GroupingMethod.NAME: "Name",
            GroupingMethod.TYPE: "File type",
            GroupingMethod.LOCATION: "Location",
        }
        return mapping.get(self, self.value)


class SelectionStrategy(Enum):
    """Bulk keep rule applied over many groups at once (overrides the selector's choice)."""
    KEEP_NEWEST = "keep_newest"
    KEEP_OLDEST = "keep_oldest"
    KEEP_IN_ORGANIZED = "keep_in_organized"

    @property
    def reason(self) -> str:
        mapping = {
            SelectionStrategy.KEEP_NEWEST: "Keeping the newest file based on modification date",
            SelectionStrategy.KEEP_OLDEST: "Keeping the oldest file based on creation date",
            SelectionStrategy.KEEP_IN_ORGANIZED: "Keeping files in organized locations over temporary folders",
        }
        return mapping[self]


class ItemKind(Enum):
    FILE = "file"
    FOLDER = "folder"


class FileCategory(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    ARCHIVE = "archive"
    OTHER = "other"

    @classmethod
    def from_extension(cls, extension: str) -> "FileCategory":
        ext = (extension or "").lower().lstrip(".")
        for category, extensions in _CATEGORY_EXTENSIONS.items():
            if ext in extensions:
                return category
        return cls.OTHER


_CATEGORY_EXTENSIONS: Dict[FileCategory, frozenset] = {
    FileCategory.IMAGE: frozenset({"jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "heic", "tiff"}),
    FileCategory.VIDEO: frozenset({"mp4", "avi", "mkv", "mov", "wmv", "flv", "webm"}),
    FileCategory.AUDIO: frozenset({"mp3", "wav", "flac", "aac", "ogg", "wma", "m4a"}),
    FileCategory.DOCUMENT: frozenset({"pdf", "doc", "docx", "txt", "odt", "rtf", "xls", "xlsx", "ppt", "pptx"}),
    FileCategory.ARCHIVE: frozenset({"zip", "rar", "7z", "tar", "gz", "bz2", "xz"}),
}


# ======================
#  Core Data Models
# ======================

@dataclass(frozen=True)
class FileRecord:
    """
    Immutable description of one filesystem entry, as delivered by a scanner.
    `content_hash` stays None until the scanner has hashed the entry.
    """
    path: str
    size: int  # in bytes
    content_hash: Optional[str] = None
    created: Optional[float] = None  # POSIX timestamp
    modified: Optional[float] = None  # POSIX timestamp
    disk: Optional[str] = None
    is_directory: bool = False
    is_hidden: bool = False
    is_system: bool = False

    def __post_init__(self):
        if not self.path:
            raise ValueError("FileRecord path cannot be empty")
        if self.size < 0:
            raise ValueError(f"FileRecord size cannot be negative: {self.path}")
        if self.disk is None:
            object.__setattr__(self, "disk", PathUtils.disk_of(self.path) or "unknown")

    @property
    def name(self) -> str:
        return PathUtils.basename(self.path)

    @property
    def extension(self) -> str:
        """Lower-case extension with dot (".jpg"); empty for folders and bare names."""
        if self.is_directory:
            return ""
        _, ext = PathUtils.split_ext(self.name)
        return ext.lower()

    @property
    def depth(self) -> int:
        return PathUtils.depth(self.path)

    @property
    def category(self) -> FileCategory:
        return FileCategory.from_extension(self.extension)

    @property
    def is_hashed(self) -> bool:
        return self.content_hash is not None

    def __repr__(self):
        return f"<FileRecord path={self.path}, size={self.size}>"


@dataclass
class DuplicateItem:
    """
    One member of a duplicate group.
    `is_original` is the selector's verdict; `should_keep` is the current keep
    decision and may be overridden by the user.
    """
    id: str
    record: FileRecord
    is_original: bool = False
    should_keep: bool = False

    @property
    def path(self) -> str:
        return self.record.path

    @property
    def size(self) -> int:
        return self.record.size

    @property
    def disk(self) -> str:
        return self.record.disk

    @property
    def created(self) -> Optional[float]:
        return self.record.created

    def __repr__(self):
        marker = " keep" if self.should_keep else ""
        return f"<DuplicateItem path={self.path}{marker}>"


@dataclass
class DuplicateGroup:
    """
    A group of two or more records sharing an identity key.
    Size totals are derived from the members on every access.
    """
    id: str
    identity_key: str
    kind: ItemKind
    items: List[DuplicateItem]
    name: str = ""
    category: FileCategory = FileCategory.OTHER

    def __post_init__(self):
        if len(self.items) < 2:
            raise ValueError("A duplicate group needs at least two members")

    @property
    def duplicate_count(self) -> int:
        """How many members are in this group."""
        return len(self.items)

    @property
    def total_size(self) -> int:
        return sum(item.size for item in self.items)

    @property
    def reclaimable_bytes(self) -> int:
        """Sum of sizes of every member that is not kept."""
        return sum(item.size for item in self.items if not item.should_keep)

    @property
    def kept(self) -> Optional[DuplicateItem]:
        for item in self.items:
            if item.should_keep:
                return item
        return None

    @property
    def reclaimable(self) -> List[DuplicateItem]:
        return [item for item in self.items if not item.should_keep]

    def __repr__(self):
        return f"<DuplicateGroup key={self.identity_key}, count={len(self.items)}>"


@dataclass
class SelectionResult:
    """Outcome of a selection strategy for one group."""
    group_id: str
    keep_ids: List[str]
    delete_ids: List[str]
    reason: str


@dataclass
class SavingsSummary:
    total_size: int = 0
    recoverable: int = 0
    by_disk: Dict[str, int] = field(default_factory=dict)
    by_type: Dict[str, int] = field(default_factory=dict)
    by_category: Dict[str, int] = field(default_factory=dict)
    group_count: int = 0
    duplicate_count: int = 0

    def print_summary(self) -> str:
        lines = [
            "Savings summary:",
            f"Groups: {self.group_count} / Redundant copies: {self.duplicate_count}",
            f"Total size in groups: {ConvertUtils.bytes_to_human(self.total_size)}",
            f"Recoverable: {ConvertUtils.bytes_to_human(self.recoverable)}",
        ]
        for disk, size in sorted(self.by_disk.items()):
            lines.append(f"  disk {disk}: {ConvertUtils.bytes_to_human(size)}")
        return "\n".join(lines)


"""
DTO for detection parameters with built-in validation.
Interface-agnostic — used by both CLI and the command surface.
"""


def normalize_disk(disk: str) -> str:
    """Drive letters compare upper-case without colon ("d:" → "D"); other ids verbatim."""
    disk = disk.strip()
    if len(disk.rstrip(":")) == 1 and disk[0].isalpha():
        return disk[0].upper()
    return disk


@dataclass
class DuplicateScanOptions:
    """Filters and methods for one detection run."""
    disks: List[str] = field(default_factory=list)
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    include_hidden: bool = False
    include_system: bool = False
    file_types: List[str] = field(default_factory=list)
    excluded_paths: List[str] = field(default_factory=list)
    method: DetectionMethod = DetectionMethod.HASH
    group_by: GroupingMethod = GroupingMethod.HASH

    def __post_init__(self):
        """Validate parameters immediately after creation."""
        if self.min_size is not None and self.min_size < 0:
            raise ValueError("Minimum size cannot be negative")

        if self.max_size is not None and self.max_size < 0:
            raise ValueError("Maximum size cannot be negative")

        if (self.min_size is not None and self.max_size is not None
                and self.max_size < self.min_size):
            raise ValueError("Maximum size cannot be less than minimum size")

        # Normalize extensions: ensure they start with dot and are lowercase
        normalized = []
        for ext in self.file_types:
            ext = ext.strip().lower()
            if ext and not ext.startswith('.'):
                ext = f".{ext}"
            if ext:
                normalized.append(ext)
        self.file_types = normalized

        self.disks = [normalize_disk(d) for d in self.disks if d.strip()]

    @staticmethod
    def from_human_readable(
            min_size_str: str = "0",
            max_size_str: str = "",
            extensions_str: str = "",
            disks: Optional[List[str]] = None,
            excluded_paths: Optional[List[str]] = None,
            method: DetectionMethod = DetectionMethod.HASH,
            group_by: GroupingMethod = GroupingMethod.HASH,
            include_hidden: bool = False,
    ) -> 'DuplicateScanOptions':
        """
        Factory method to create options from human-readable inputs.
        Useful for CLI argument parsing.
        """
        min_size = ConvertUtils.human_to_bytes(min_size_str) if min_size_str else None
        max_size = ConvertUtils.human_to_bytes(max_size_str) if max_size_str else None

        ext_list = [
            ext.strip() for ext in extensions_str.split(",") if ext.strip()
        ] if extensions_str else []

        return DuplicateScanOptions(
            disks=disks or [],
            min_size=min_size,
            max_size=max_size,
            include_hidden=include_hidden,
            file_types=ext_list,
            excluded_paths=excluded_paths or [],
            method=method,
            group_by=group_by,
        )
