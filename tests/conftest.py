"""
Shared fixtures for detection and organization tests.
Creates isolated temporary directories and in-memory record snapshots.
"""
import pytest
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Dict
import sys

# Add src/ to sys.path so 'diskdominator' is importable without installation
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from diskdominator.core.models import FileRecord  # noqa: E402


def ts(text: str) -> float:
    """'2023-08-10' -> POSIX timestamp (local time)."""
    return datetime.strptime(text, "%Y-%m-%d").timestamp()


def make_record(path: str, size: int = 100, content_hash=None, created=None, **kwargs) -> FileRecord:
    if isinstance(created, str):
        created = ts(created)
    return FileRecord(path=path, size=size, content_hash=content_hash, created=created, **kwargs)


def records_for(root: Path) -> list:
    """FileRecords for every file under `root` (no hashes)."""
    return [
        FileRecord(path=str(p), size=p.stat().st_size, modified=p.stat().st_mtime)
        for p in sorted(root.rglob("*")) if p.is_file()
    ]


@pytest.fixture
def temp_dir():
    """Creates isolated temporary directory, auto-cleanup after test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def test_files(temp_dir) -> Dict[str, Path]:
    """
    Controlled on-disk tree for scanner and end-to-end tests:
    - 3 identical files (one under a 'backup' folder)
    - 2 unique files
    - 1 empty file
    - 1 hidden file
    """
    files = {}
    content_a = b"A" * 1024

    (temp_dir / "docs").mkdir()
    (temp_dir / "backup").mkdir()
    (temp_dir / ".hidden").mkdir()

    files["dup_a"] = temp_dir / "docs" / "photo.jpg"
    files["dup_b"] = temp_dir / "backup" / "photo.jpg"
    files["dup_c"] = temp_dir / "photo (1).jpg"
    for key in ("dup_a", "dup_b", "dup_c"):
        files[key].write_bytes(content_a)

    files["unique1"] = temp_dir / "notes.txt"
    files["unique1"].write_bytes(b"C" * 1500)
    files["unique2"] = temp_dir / "docs" / "report.pdf"
    files["unique2"].write_bytes(b"D" * 2500)

    files["empty"] = temp_dir / "empty.txt"
    files["empty"].write_bytes(b"")

    files["hidden"] = temp_dir / ".hidden" / "photo.jpg"
    files["hidden"].write_bytes(content_a)

    return files
