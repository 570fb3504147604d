"""Tests for DirectoryManager"""

import errno
import os

import pytest

from handlekit.core.errors import (
    ALREADY_EXISTS,
    DIRECTORY_NOT_EMPTY,
    IO_ERROR,
    IS_A_DIRECTORY,
    NOT_A_DIRECTORY,
    NOT_FOUND,
    PARTIAL_REMOVAL,
    PERMISSION_DENIED,
    ClassifiedError,
)


def touch(path, content: str = "") -> None:
    with open(path, "w", encoding="utf-8") as f:
        f.write(content)


class TestWorkingDirectory:
    """Test process working directory access"""

    def test_current_directory(self, workdir, directories):
        assert os.path.samefile(directories.current_directory(), workdir)

    def test_set_current_directory(self, workdir, directories):
        os.mkdir("inner")
        result = directories.set_current_directory("inner")
        assert os.path.samefile(result, workdir / "inner")
        assert os.path.samefile(directories.current_directory(), workdir / "inner")

    def test_set_missing_directory(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.set_current_directory("nowhere")
        assert exc_info.value.kind == NOT_FOUND
        assert os.path.samefile(directories.current_directory(), workdir)


class TestListing:
    """Test list_entries"""

    def test_lists_files_and_directories(self, workdir, directories):
        touch("b.txt")
        os.mkdir("a_dir")
        touch("a_dir/nested.txt")
        assert set(directories.list_entries()) == {"b.txt", "a_dir"}
        assert directories.list_entries("a_dir") == ["nested.txt"]

    def test_sorted_listing(self, workdir, directories):
        for name in ["c", "a", "b"]:
            touch(name)
        assert directories.list_entries(workdir, sort=True) == ["a", "b", "c"]

    def test_sorted_by_configuration(self, workdir, directories, configure):
        configure(sort_listings=True)
        for name in ["z", "y", "x"]:
            touch(name)
        assert directories.list_entries() == ["x", "y", "z"]

    def test_empty_directory(self, workdir, directories):
        assert directories.list_entries() == []

    def test_missing_directory(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.list_entries("missing")
        assert exc_info.value.kind == NOT_FOUND
        assert exc_info.value.path == "missing"


class TestCreateAndRename:
    """Test make_directory, make_directories and rename"""

    def test_make_directory(self, workdir, directories):
        directories.make_directory("new")
        assert directories.is_directory("new")

    def test_make_existing_directory(self, workdir, directories):
        os.mkdir("new")
        with pytest.raises(ClassifiedError) as exc_info:
            directories.make_directory("new")
        assert exc_info.value.kind == ALREADY_EXISTS

    def test_make_directory_is_single_level(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.make_directory("a/b/c")
        assert exc_info.value.kind == NOT_FOUND
        assert not directories.exists("a")

    def test_make_directories(self, workdir, directories):
        directories.make_directories("a/b/c")
        assert directories.is_directory("a/b/c")
        directories.make_directories("a/b/c", exist_ok=True)
        with pytest.raises(ClassifiedError) as exc_info:
            directories.make_directories("a/b/c")
        assert exc_info.value.kind == ALREADY_EXISTS

    def test_rename_file(self, workdir, directories):
        touch("old.txt", "payload")
        directories.rename("old.txt", "new.txt")
        assert not directories.exists("old.txt")
        with open("new.txt", encoding="utf-8") as f:
            assert f.read() == "payload"

    def test_rename_directory(self, workdir, directories):
        os.mkdir("before")
        touch("before/file")
        directories.rename("before", "after")
        assert directories.is_file("after/file")

    def test_rename_missing(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.rename("ghost", "other")
        assert exc_info.value.kind == NOT_FOUND
        assert exc_info.value.details["target"] == "other"


class TestRemoval:
    """Test remove_file, remove_empty_directory and remove_tree"""

    def test_remove_file(self, workdir, directories):
        touch("gone.txt")
        directories.remove_file("gone.txt")
        assert not directories.exists("gone.txt")

    def test_remove_missing_file(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_file("gone.txt")
        assert exc_info.value.kind == NOT_FOUND

    def test_remove_file_on_directory(self, workdir, directories):
        os.mkdir("folder")
        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_file("folder")
        assert exc_info.value.kind in (IS_A_DIRECTORY, PERMISSION_DENIED)
        assert directories.is_directory("folder")

    def test_remove_empty_directory(self, workdir, directories):
        os.mkdir("empty")
        directories.remove_empty_directory("empty")
        assert not directories.exists("empty")

    def test_remove_non_empty_directory_leaves_it_unchanged(self, workdir, directories):
        os.mkdir("full")
        touch("full/keep.txt", "data")
        os.mkdir("full/sub")

        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_empty_directory("full")

        assert exc_info.value.kind == DIRECTORY_NOT_EMPTY
        assert sorted(os.listdir("full")) == ["keep.txt", "sub"]
        with open("full/keep.txt", encoding="utf-8") as f:
            assert f.read() == "data"

    def test_remove_missing_directory(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_empty_directory("missing")
        assert exc_info.value.kind == NOT_FOUND

    def test_remove_tree(self, workdir, directories):
        os.makedirs("tree/a/b")
        touch("tree/top.txt")
        touch("tree/a/b/deep.txt")
        directories.remove_tree("tree")
        assert not directories.exists("tree")

    def test_remove_tree_missing(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_tree("tree")
        assert exc_info.value.kind == NOT_FOUND

    def test_remove_tree_on_file(self, workdir, directories):
        touch("plain")
        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_tree("plain")
        assert exc_info.value.kind == NOT_A_DIRECTORY
        assert directories.is_file("plain")

    def test_remove_tree_unlinks_symlinks(self, workdir, directories):
        os.makedirs("outside")
        touch("outside/precious.txt")
        os.makedirs("tree")
        os.symlink(workdir / "outside", "tree/link")

        directories.remove_tree("tree")

        assert not directories.exists("tree")
        assert directories.is_file("outside/precious.txt")

    def test_remove_tree_reports_remaining_entries(self, workdir, directories, monkeypatch):
        os.makedirs("tree/locked")
        touch("tree/locked/stuck.txt")
        touch("tree/locked/free.txt")
        touch("tree/other.txt")

        real_remove = os.remove

        def remove(path):
            if os.path.basename(path) == "stuck.txt":
                raise PermissionError(errno.EACCES, "Permission denied", path)
            real_remove(path)

        monkeypatch.setattr(os, "remove", remove)

        with pytest.raises(ClassifiedError) as exc_info:
            directories.remove_tree("tree")

        error = exc_info.value
        assert error.kind == PARTIAL_REMOVAL
        assert error.matches(IO_ERROR)
        assert error.cause.kind == PERMISSION_DENIED
        assert error.details["remaining"] == [
            "tree",
            os.path.join("tree", "locked"),
            os.path.join("tree", "locked", "stuck.txt"),
        ]
        # every other entry was still removed
        assert not directories.exists("tree/other.txt")
        assert not directories.exists("tree/locked/free.txt")
        assert len(error.details["failures"]) == 3


class TestQueries:
    """Test existence checks and size"""

    def test_exists_and_types(self, workdir, directories):
        touch("f")
        os.mkdir("d")
        assert directories.exists("f") and directories.exists("d")
        assert directories.is_file("f") and not directories.is_file("d")
        assert directories.is_directory("d") and not directories.is_directory("f")
        assert not directories.exists("nothing")

    def test_directory_size(self, workdir, directories):
        os.makedirs("d/sub")
        touch("d/one", "12345")
        touch("d/sub/two", "678")
        assert directories.directory_size("d") == 8

    def test_directory_size_on_missing(self, workdir, directories):
        with pytest.raises(ClassifiedError) as exc_info:
            directories.directory_size("absent")
        assert exc_info.value.kind == NOT_FOUND
