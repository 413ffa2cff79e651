"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

services/file_service.py
Filesystem side effects used by plan execution and the CLI.
Deletion without a backup always goes through the system trash (send2trash),
never a permanent erase.
"""
import os
import shutil
from pathlib import Path

from send2trash import send2trash

from diskdominator.exceptions import ConflictError


class FileService:
    """Thin, static wrappers over os/shutil with conflict checks."""

    @staticmethod
    def exists(path: str) -> bool:
        return os.path.lexists(path)

    @staticmethod
    def move(source: str, destination: str, overwrite: bool = False) -> None:
        """Move a file or directory. Raises ConflictError if the destination exists."""
        if os.path.lexists(destination):
            if not overwrite:
                raise ConflictError(destination)
            FileService.remove(destination)
        if not os.path.lexists(source):
            raise FileNotFoundError(f"File not found: {source}")
        shutil.move(source, destination)

    @staticmethod
    def copy(source: str, destination: str, overwrite: bool = False) -> None:
        """Copy a file (with metadata) or a whole directory tree."""
        if os.path.lexists(destination):
            if not overwrite:
                raise ConflictError(destination)
            FileService.remove(destination)
        if os.path.isdir(source) and not os.path.islink(source):
            shutil.copytree(source, destination, symlinks=True)
        else:
            shutil.copy2(source, destination)

    @staticmethod
    def remove(path: str) -> None:
        """Permanently remove a file or directory tree (only for paths this program created)."""
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    @staticmethod
    def make_dir(path: str) -> None:
        os.mkdir(path)

    @staticmethod
    def remove_empty_dir(path: str) -> None:
        os.rmdir(path)

    @staticmethod
    def move_to_trash(file_path: str):
        """Moves a file to the system trash."""
        path = Path(file_path).resolve()

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        try:
            send2trash(str(path))
        except Exception as e:
            raise RuntimeError(f"Failed to move to trash: {e}") from e
