"""
Copyright (c) 2025 initumX (initum.x@gmail.com)
Licensed under the MIT License

hasher.py
Implements content hashing with pluggable hash algorithms.

Files are read in fixed-size chunks; directories get a tree hash built from
the sorted (relative path, content hash) pairs of every file beneath them, so
two folders with identical contents share an identity key.
"""

import os
import logging
from typing import Optional, Callable, Iterable, Tuple

import xxhash

from diskdominator.core.interfaces import Hasher, HashAlgorithm

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


# Use the same way to implement and use any other hashing algorithm
class XXHashAlgorithmImpl(HashAlgorithm):
    def new(self):
        return xxhash.xxh64()

    def hash(self, data: bytes) -> str:
        return xxhash.xxh64(data).hexdigest()


class HasherImpl(Hasher):
    """
    A hasher implementation that supports any algorithm via the HashAlgorithm interface.
    """

    def __init__(self, algorithm: Optional[HashAlgorithm] = None, chunk_size: int = CHUNK_SIZE):
        self.algorithm = algorithm or XXHashAlgorithmImpl()
        self.chunk_size = chunk_size

    def compute_hash(self, path: str, stopped_flag: Optional[Callable[[], bool]] = None) -> str:
        """
        Hex digest of a file's content, or the tree hash of a directory.
        Raises OSError if the entry cannot be read; returns "" if cancelled.
        """
        if os.path.isdir(path):
            return self.compute_tree_hash(path, stopped_flag)
        return self.compute_file_hash(path, stopped_flag)

    def compute_file_hash(self, path: str, stopped_flag: Optional[Callable[[], bool]] = None) -> str:
        digest = self.algorithm.new()
        with open(path, 'rb') as f:
            while True:
                if stopped_flag and stopped_flag():
                    return ""
                chunk = f.read(self.chunk_size)
                if not chunk:
                    break
                digest.update(chunk)
        return digest.hexdigest()

    def compute_tree_hash(self, root: str, stopped_flag: Optional[Callable[[], bool]] = None) -> str:
        entries = []
        for current, dirs, files in os.walk(root):
            for filename in files:
                full = os.path.join(current, filename)
                if os.path.islink(full):
                    continue
                if stopped_flag and stopped_flag():
                    return ""
                rel = os.path.relpath(full, root).replace(os.sep, "/")
                entries.append((rel, self.compute_file_hash(full)))
        return self.combine_tree(entries)

    def combine_tree(self, entries: Iterable[Tuple[str, str]]) -> str:
        """
        Tree hash from (relative path with '/' separators, file hash) pairs.
        Order-independent: entries are sorted before hashing.
        """
        digest = self.algorithm.new()
        for rel, file_hash in sorted(entries):
            digest.update(rel.encode("utf-8"))
            digest.update(b"\0")
            digest.update(file_hash.encode("ascii"))
            digest.update(b"\n")
        return digest.hexdigest()
