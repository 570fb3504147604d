"""Directory operations management module."""
import errno
import os
from typing import List, Optional, Union

from handlekit.core.config import get_settings
from handlekit.core.errors import (
    DIRECTORY_NOT_EMPTY,
    NOT_A_DIRECTORY,
    NOT_FOUND,
    PARTIAL_REMOVAL,
    ClassifiedError,
)
from handlekit.infrastructure.exceptions import os_errors, translate_os_error
from handlekit.infrastructure.logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, os.PathLike]


class DirectoryManager:
    """Handles directory operations only.

    Holds no state of its own. The process working directory is global; this
    class is the only place handlekit changes it.
    """

    def current_directory(self) -> str:
        with os_errors(operation="getcwd"):
            return os.getcwd()

    def set_current_directory(self, path: PathLike) -> str:
        """Change the process working directory and return the new one."""
        path = os.fspath(path)
        with os_errors(path, "chdir"):
            os.chdir(path)
        cwd = os.getcwd()
        logger.info("working_directory_changed", path=cwd)
        return cwd

    def list_entries(
        self, path: Optional[PathLike] = None, sort: Optional[bool] = None
    ) -> List[str]:
        """Names of the immediate children of ``path`` (default: cwd)."""
        path = os.fspath(path) if path is not None else "."
        with os_errors(path, "list"):
            entries = os.listdir(path)
        if sort is None:
            sort = get_settings().sort_listings
        return sorted(entries) if sort else entries

    def make_directory(self, path: PathLike, permissions: int = 0o777) -> None:
        """Create one directory level; the parent must exist."""
        path = os.fspath(path)
        with os_errors(path, "mkdir"):
            os.mkdir(path, permissions)
        logger.info("directory_created", path=path)

    def make_directories(
        self, path: PathLike, permissions: int = 0o777, exist_ok: bool = False
    ) -> None:
        """Create a directory and any missing parents."""
        path = os.fspath(path)
        with os_errors(path, "makedirs"):
            os.makedirs(path, permissions, exist_ok=exist_ok)
        logger.info("directories_created", path=path)

    def rename(self, old_path: PathLike, new_path: PathLike) -> None:
        old_path, new_path = os.fspath(old_path), os.fspath(new_path)
        if not os.path.lexists(old_path):
            raise ClassifiedError(
                NOT_FOUND,
                f"No such file or directory: {old_path}",
                path=old_path,
                details={"operation": "rename", "target": new_path},
            )
        with os_errors(old_path, "rename"):
            os.rename(old_path, new_path)
        logger.info("entry_renamed", path=old_path, target=new_path)

    def remove_file(self, path: PathLike) -> None:
        path = os.fspath(path)
        with os_errors(path, "remove"):
            os.remove(path)
        logger.info("file_removed", path=path)

    def remove_empty_directory(self, path: PathLike) -> None:
        path = os.fspath(path)
        with os_errors(path, "rmdir"):
            if os.path.isdir(path) and not os.path.islink(path) and os.listdir(path):
                raise ClassifiedError(
                    DIRECTORY_NOT_EMPTY, f"Directory not empty: {path}", path=path
                )
            os.rmdir(path)
        logger.info("directory_removed", path=path)

    def remove_tree(self, path: PathLike) -> None:
        """Remove ``path`` and everything below it.

        Removal is best effort: every entry is attempted even after a
        failure. If anything is left, PartialRemovalError is raised with the
        first failure as its cause and the surviving entries in
        ``details["remaining"]``.
        """
        root = os.fspath(path)
        with os_errors(root, "rmtree"):
            if os.path.islink(root) or not os.path.isdir(root):
                if not os.path.lexists(root):
                    raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), root)
                raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), root)

        failures: List[ClassifiedError] = []

        def on_walk_error(exc: OSError) -> None:
            failures.append(translate_os_error(exc, operation="rmtree"))

        for dirpath, dirnames, filenames in os.walk(
            root, topdown=False, onerror=on_walk_error
        ):
            for name in filenames:
                self._try_remove(os.path.join(dirpath, name), os.remove, failures)
            for name in dirnames:
                entry = os.path.join(dirpath, name)
                # walk does not descend into symlinked directories; unlink them
                remover = os.remove if os.path.islink(entry) else os.rmdir
                self._try_remove(entry, remover, failures)
        self._try_remove(root, os.rmdir, failures)

        if not failures:
            logger.info("tree_removed", path=root)
            return

        remaining = self._remaining_entries(root)
        first = failures[0]
        logger.warning(
            "tree_removal_incomplete",
            path=root,
            failures=len(failures),
            remaining=remaining,
            first_error=str(first),
        )
        error = ClassifiedError(
            PARTIAL_REMOVAL,
            f"Could not remove {len(remaining)} entries under {root}",
            path=root,
            details={
                "remaining": remaining,
                "failures": [str(f) for f in failures],
            },
        )
        raise error from first

    def exists(self, path: PathLike) -> bool:
        return os.path.exists(path)

    def is_file(self, path: PathLike) -> bool:
        return os.path.isfile(path)

    def is_directory(self, path: PathLike) -> bool:
        return os.path.isdir(path)

    def directory_size(self, path: PathLike) -> int:
        """Calculate directory size in bytes."""
        path = os.fspath(path)
        if not os.path.isdir(path):
            raise ClassifiedError(
                NOT_A_DIRECTORY if os.path.exists(path) else NOT_FOUND,
                f"Not a directory: {path}",
                path=path,
            )

        total_size = 0
        for dirpath, _, filenames in os.walk(path):
            for filename in filenames:
                try:
                    total_size += os.lstat(os.path.join(dirpath, filename)).st_size
                except OSError as e:
                    logger.warning(
                        "directory_size_entry_skipped",
                        path=os.path.join(dirpath, filename),
                        error=str(e),
                    )
        return total_size

    def _try_remove(self, entry: str, remover, failures: List[ClassifiedError]) -> None:
        try:
            remover(entry)
        except OSError as e:
            failures.append(translate_os_error(e, entry, "rmtree"))

    def _remaining_entries(self, root: str) -> List[str]:
        if not os.path.lexists(root):
            return []
        remaining = [root]
        for dirpath, dirnames, filenames in os.walk(root):
            remaining.extend(os.path.join(dirpath, n) for n in dirnames + filenames)
        return sorted(remaining)
