"""
Unit tests for HasherImpl with XXHashAlgorithmImpl.
Verifies chunked file hashing and order-independent folder tree hashes.
"""
import xxhash

from diskdominator.core.hasher import HasherImpl, XXHashAlgorithmImpl


class TestFileHash:
    def test_same_content_produces_same_hash(self, temp_dir):
        content = b"test content " * 1000
        (temp_dir / "a.bin").write_bytes(content)
        (temp_dir / "b.bin").write_bytes(content)

        hasher = HasherImpl(XXHashAlgorithmImpl())
        first = hasher.compute_hash(str(temp_dir / "a.bin"))
        assert first == hasher.compute_hash(str(temp_dir / "b.bin"))
        assert first == xxhash.xxh64(content).hexdigest()

    def test_different_content_produces_different_hashes(self, temp_dir):
        (temp_dir / "a.bin").write_bytes(b"A" * 100)
        (temp_dir / "b.bin").write_bytes(b"B" * 100)
        hasher = HasherImpl()
        assert hasher.compute_hash(str(temp_dir / "a.bin")) != hasher.compute_hash(str(temp_dir / "b.bin"))

    def test_chunk_size_does_not_change_result(self, temp_dir):
        path = temp_dir / "big.bin"
        path.write_bytes(bytes(range(256)) * 100)
        assert HasherImpl(chunk_size=7).compute_hash(str(path)) == HasherImpl().compute_hash(str(path))

    def test_cancelled_returns_empty(self, temp_dir):
        path = temp_dir / "a.bin"
        path.write_bytes(b"data")
        assert HasherImpl().compute_hash(str(path), stopped_flag=lambda: True) == ""

    def test_algorithm_hash_matches_streaming(self):
        algorithm = XXHashAlgorithmImpl()
        digest = algorithm.new()
        digest.update(b"abc")
        assert digest.hexdigest() == algorithm.hash(b"abc")


class TestTreeHash:
    def _tree(self, root, files):
        for rel, content in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)

    def test_identical_folders_share_hash(self, temp_dir):
        files = {"x.txt": b"1", "sub/y.txt": b"2"}
        self._tree(temp_dir / "one", files)
        self._tree(temp_dir / "two", files)
        hasher = HasherImpl()
        assert hasher.compute_hash(str(temp_dir / "one")) == hasher.compute_hash(str(temp_dir / "two"))

    def test_relative_layout_matters(self, temp_dir):
        self._tree(temp_dir / "one", {"x.txt": b"1"})
        self._tree(temp_dir / "two", {"sub/x.txt": b"1"})
        hasher = HasherImpl()
        assert hasher.compute_hash(str(temp_dir / "one")) != hasher.compute_hash(str(temp_dir / "two"))

    def test_combine_tree_is_order_independent(self):
        hasher = HasherImpl()
        entries = [("a.txt", "01"), ("b/c.txt", "02")]
        assert hasher.combine_tree(entries) == hasher.combine_tree(list(reversed(entries)))
