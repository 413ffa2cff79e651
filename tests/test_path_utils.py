"""
Tests for separator-agnostic path helpers used by selection, rules and planning.
"""
from diskdominator.utils.path_utils import PathUtils


class TestSegments:
    def test_mixed_separators(self):
        assert PathUtils.segments("D:\\Photos/2023\\img.jpg") == ["D:", "Photos", "2023", "img.jpg"]

    def test_depth_and_basename(self):
        assert PathUtils.depth("/home/user/file.txt") == 3
        assert PathUtils.basename("C:\\Temp\\img.jpg") == "img.jpg"

    def test_directory_segments_exclude_file_name(self):
        assert PathUtils.directory_segments("E:/Backup/Videos/x.mp4") == ["E:", "Backup", "Videos"]


class TestParentAndJoin:
    def test_parent_keeps_style(self):
        assert PathUtils.parent("D:/Photos/img.jpg") == "D:/Photos"
        assert PathUtils.parent("C:\\Temp\\img.jpg") == "C:\\Temp"

    def test_parent_of_top_level(self):
        assert PathUtils.parent("D:/x") == "D:/"
        assert PathUtils.parent("/a") == "/"
        assert PathUtils.parent("name") == ""

    def test_join_uses_directory_separator(self):
        assert PathUtils.join("D:/Sorted", "a.jpg") == "D:/Sorted/a.jpg"
        assert PathUtils.join("C:\\Sorted", "a.jpg") == "C:\\Sorted\\a.jpg"
        assert PathUtils.join("/", "a.jpg") == "/a.jpg"


class TestContainment:
    def test_is_under_is_strict(self):
        assert PathUtils.is_under("/a/b/c", "/a/b")
        assert not PathUtils.is_under("/a/b", "/a/b")
        assert not PathUtils.is_under("/a/bc", "/a/b")

    def test_root_contains_absolute_paths(self):
        assert PathUtils.is_under("/a", "/")

    def test_relative_never_under_absolute(self):
        assert not PathUtils.is_under("/a/b", "a")

    def test_same_or_under_ignores_separator_style(self):
        assert PathUtils.is_same_or_under("D:\\Photos", "D:/Photos")
        assert PathUtils.is_same("D:/Photos/", "D:\\Photos")

    def test_is_root(self):
        assert PathUtils.is_root("/")
        assert PathUtils.is_root("D:/")
        assert PathUtils.is_root("D:")
        assert not PathUtils.is_root("D:/Photos")
        assert not PathUtils.is_root("/a")


class TestSegmentMatching:
    def test_case_insensitive_whole_segment(self):
        names = frozenset({"temp"})
        assert PathUtils.has_segment("C:/TEMP/img.jpg", names)
        assert not PathUtils.has_segment("C:/Temperature/img.jpg", names)

    def test_file_name_is_not_a_directory_segment(self):
        assert not PathUtils.has_segment("C:/Photos/temp", frozenset({"temp"}))

    def test_is_hidden(self):
        assert PathUtils.is_hidden("/home/u/.cache/x")
        assert not PathUtils.is_hidden("/home/u/docs/x")


class TestDisk:
    def test_drive_letter(self):
        assert PathUtils.disk_of("d:/Photos") == "D"

    def test_posix_root(self):
        assert PathUtils.disk_of("/home/u") == "/"

    def test_relative(self):
        assert PathUtils.disk_of("docs/a.txt") is None
