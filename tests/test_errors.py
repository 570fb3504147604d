"""Tests for the error taxonomy and OS error translation"""

import errno

import pytest

from handlekit.core.errors import (
    ENCODING_ERROR,
    ERROR,
    INVALID_ARGUMENT,
    IO_ERROR,
    NOT_FOUND,
    NOT_SEEKABLE,
    NOT_WRITABLE,
    PERMISSION_DENIED,
    TAXONOMY,
    ClassifiedError,
    ErrorKind,
    Taxonomy,
)
from handlekit.infrastructure.exceptions import os_errors, translate_os_error


class TestTaxonomy:
    """Test kind declaration and the parent relation"""

    def test_builtin_kinds(self):
        assert NOT_FOUND.parent == IO_ERROR
        assert IO_ERROR.parent == ERROR
        assert ERROR.parent is None
        assert ENCODING_ERROR.parent == ERROR
        assert "NotFoundError" in TAXONOMY
        assert TAXONOMY.get("PermissionDeniedError") is PERMISSION_DENIED

    def test_declare_under_root_by_default(self):
        taxonomy = Taxonomy()
        kind = taxonomy.declare("ConfigError")
        assert kind.parent is taxonomy.root
        assert taxonomy.depth(kind) == 1
        assert len(taxonomy) == 2

    def test_ancestors_nearest_first(self):
        taxonomy = Taxonomy()
        storage = taxonomy.declare("StorageError")
        disk = taxonomy.declare("DiskError", storage)
        full = taxonomy.declare("DiskFullError", disk)

        assert taxonomy.ancestors(full) == [disk, storage, taxonomy.root]
        assert taxonomy.is_a(full, storage)
        assert not taxonomy.is_a(storage, full)
        assert full.is_a(full)

    def test_duplicate_declaration(self):
        taxonomy = Taxonomy()
        taxonomy.declare("ConfigError")
        with pytest.raises(ClassifiedError) as exc_info:
            taxonomy.declare("ConfigError")
        assert exc_info.value.kind == INVALID_ARGUMENT

    def test_parent_from_other_taxonomy(self):
        with pytest.raises(ClassifiedError) as exc_info:
            Taxonomy().declare("Child", IO_ERROR)
        assert exc_info.value.kind == INVALID_ARGUMENT

    def test_unknown_kind(self):
        with pytest.raises(ClassifiedError) as exc_info:
            TAXONOMY.get("NoSuchError")
        assert exc_info.value.kind == INVALID_ARGUMENT

    def test_kinds_compare_by_name(self):
        assert ErrorKind("NotFoundError") == NOT_FOUND
        assert str(NOT_FOUND) == "NotFoundError"


class TestClassifiedError:
    """Test ClassifiedError"""

    def test_message_defaults_to_kind(self):
        error = ClassifiedError(NOT_FOUND)
        assert error.message is None
        assert str(error) == "NotFoundError"

    def test_str_includes_path(self):
        error = ClassifiedError(NOT_FOUND, "missing", path="a.txt")
        assert str(error) == "NotFoundError: missing (path=a.txt)"

    def test_matches_ancestors(self):
        error = ClassifiedError(NOT_FOUND, "missing")
        assert error.matches(NOT_FOUND)
        assert error.matches(IO_ERROR)
        assert error.matches(ERROR)
        assert not error.matches(ENCODING_ERROR)

    def test_wrap_keeps_kind_and_chains(self):
        inner = ClassifiedError(NOT_FOUND, "config.toml missing", path="config.toml")
        outer = inner.wrap("could not load settings", stage="startup")

        assert outer.kind == NOT_FOUND
        assert outer.cause is inner
        assert outer.path == "config.toml"
        assert outer.details == {"stage": "startup"}
        assert outer.causal_chain() == [
            ("NotFoundError", "could not load settings"),
            ("NotFoundError", "config.toml missing"),
        ]

    def test_causal_chain_includes_foreign_causes(self):
        try:
            try:
                raise ValueError("bad digit")
            except ValueError as e:
                raise ClassifiedError(INVALID_ARGUMENT, "not a number") from e
        except ClassifiedError as error:
            chain = error.causal_chain()
        assert chain == [
            ("InvalidArgumentError", "not a number"),
            ("ValueError", "bad digit"),
        ]

    def test_to_dict(self):
        error = ClassifiedError(NOT_FOUND, "missing", path="x", details={"operation": "open"})
        error.frames.append("load")
        data = error.to_dict()
        assert data["kind"] == "NotFoundError"
        assert data["details"] == {"operation": "open"}
        assert data["frames"] == ["load"]
        assert data["chain"] == [["NotFoundError", "missing"]]


class TestTranslation:
    """Test OS and codec error translation"""

    @pytest.mark.parametrize(
        "exc,kind",
        [
            (FileNotFoundError(errno.ENOENT, "No such file or directory", "a"), NOT_FOUND),
            (PermissionError(errno.EACCES, "Permission denied", "a"), PERMISSION_DENIED),
            (OSError(errno.ESPIPE, "Illegal seek"), NOT_SEEKABLE),
            (OSError(errno.EIO, "Input/output error"), IO_ERROR),
        ],
    )
    def test_errno_mapping(self, exc, kind):
        error = translate_os_error(exc, operation="open")
        assert error.kind == kind
        assert error.cause is exc
        assert error.details["errno"] == exc.errno

    def test_path_falls_back_to_filename(self):
        error = translate_os_error(FileNotFoundError(errno.ENOENT, "gone", "notes.txt"))
        assert error.path == "notes.txt"
        assert error.message == "gone"

    def test_bad_descriptor_on_write(self):
        exc = OSError(errno.EBADF, "Bad file descriptor")
        assert translate_os_error(exc, operation="write").kind == NOT_WRITABLE
        assert translate_os_error(exc, operation="read").kind == IO_ERROR

    def test_unicode_error(self):
        exc = UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        error = translate_os_error(exc, path="f.txt", operation="read")
        assert error.kind == ENCODING_ERROR
        assert error.details["encoding"] == "utf-8"

    def test_classified_passes_through(self):
        error = ClassifiedError(NOT_FOUND)
        assert translate_os_error(error) is error

    def test_os_errors_context(self):
        with pytest.raises(ClassifiedError) as exc_info:
            with os_errors("somewhere", "mkdir"):
                raise FileExistsError(errno.EEXIST, "File exists")
        assert exc_info.value.path == "somewhere"
        assert exc_info.value.details["operation"] == "mkdir"
        assert isinstance(exc_info.value.cause, FileExistsError)
