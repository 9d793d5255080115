"""
Staging of directories that compute nodes cannot reach.

A staged directory is copied under the run's work directory as
``.staged-<name>``. Ordinary directories are copied without hidden entries
and without prior work output or VCS metadata. A Nextflow secrets store
(``.nextflow/secrets``) only has its ``.nf-*.secrets`` files copied, each
made owner read/write only.
"""

import logging
import os
import shutil
import stat
import threading
from pathlib import Path
from typing import Optional, Union

from ..errors import StagingError

logger = logging.getLogger(__name__)

EXCLUDED_TOP_LEVEL_DIRS = frozenset({"work", "results", "logs", ".git", ".nextflow"})

STAGED_DIR_PREFIX = ".staged-"
SECRETS_DIR_NAME = "secrets"
SECRETS_PARENT_NAME = ".nextflow"
SECRET_FILE_PREFIX = ".nf-"
SECRET_FILE_SUFFIX = ".secrets"
SECRET_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR


def is_secrets_directory(path: Union[str, Path]) -> bool:
    """Return True if ``path`` looks like a local secrets store (``.nextflow/secrets``)."""
    path = Path(path)
    return path.name == SECRETS_DIR_NAME and path.parent.name == SECRETS_PARENT_NAME


def is_secret_file(name: str) -> bool:
    """Return True for file names following the ``.nf-<NAME>.secrets`` convention."""
    return name.startswith(SECRET_FILE_PREFIX) and name.endswith(SECRET_FILE_SUFFIX)


def _raise_walk_error(error: OSError):
    raise error


def copy_directory_tree(source: Union[str, Path], target: Union[str, Path]) -> int:
    """
    Copy a directory tree, skipping hidden entries and excluded top-level dirs.

    Any path component starting with '.' is skipped. Top-level entries named
    in EXCLUDED_TOP_LEVEL_DIRS are skipped with everything below them.

    Args:
        source: Source directory
        target: Target directory (created if missing)

    Returns:
        Number of files copied
    """
    source = Path(source)
    target = Path(target)

    if not source.is_dir():
        raise NotADirectoryError(f"Not a directory: {source}")

    target.mkdir(parents=True, exist_ok=True)
    copied = 0

    for dirpath, dirnames, filenames in os.walk(
        source, onerror=_raise_walk_error, followlinks=True
    ):
        current = Path(dirpath)
        at_top = current == source

        # Prune in place so os.walk never descends into skipped directories
        dirnames[:] = sorted(
            d
            for d in dirnames
            if not d.startswith(".")
            and not (at_top and d in EXCLUDED_TOP_LEVEL_DIRS)
        )

        relative = current.relative_to(source)
        (target / relative).mkdir(parents=True, exist_ok=True)

        for name in sorted(filenames):
            if name.startswith("."):
                continue
            if at_top and name in EXCLUDED_TOP_LEVEL_DIRS:
                continue
            shutil.copy2(current / name, target / relative / name)
            copied += 1

    return copied


class DirectoryStager:
    """Copies inaccessible directories into the run's staging root."""

    def __init__(self, staging_root: Union[str, Path]):
        self.staging_root = Path(staging_root)

    def staging_path_for(self, source_dir: Union[str, Path]) -> Path:
        """Deterministic staging location for ``source_dir``."""
        return self.staging_root / f"{STAGED_DIR_PREFIX}{Path(source_dir).name}"

    def stage(self, source_dir: Union[str, Path]) -> Path:
        """
        Stage ``source_dir`` and return the staged location.

        Raises:
            StagingError: If any I/O step fails. The original error is chained.
        """
        source_dir = Path(source_dir)
        target_dir = self.staging_path_for(source_dir)

        try:
            if not source_dir.is_dir():
                raise FileNotFoundError(f"No such directory: {source_dir}")

            target_dir.mkdir(parents=True, exist_ok=True)

            if is_secrets_directory(source_dir):
                logger.debug("Staging secrets directory: %s -> %s", source_dir, target_dir)
                self._stage_secrets(source_dir, target_dir)
            else:
                logger.debug("Staging directory: %s -> %s", source_dir, target_dir)
                copy_directory_tree(source_dir, target_dir)
        except OSError as e:
            logger.error("Failed to stage directory %s: %s", source_dir, e)
            raise StagingError(source_dir, str(e)) from e

        logger.debug("Successfully staged directory to %s", target_dir)
        return target_dir

    @staticmethod
    def _stage_secrets(source_dir: Path, target_dir: Path) -> None:
        for entry in sorted(source_dir.iterdir()):
            if not entry.is_file() or not is_secret_file(entry.name):
                continue
            target = target_dir / entry.name
            shutil.copyfile(entry, target)
            os.chmod(target, SECRET_FILE_MODE)
            logger.debug("Staged secret file: %s", entry.name)


class BinDirStager:
    """
    Lazily mirrors the project bin directory into the work directory.

    The first caller performs the copy; concurrent callers block on the lock
    and then reuse the result.
    """

    def __init__(self, target_dir: Union[str, Path]):
        self.target_dir = Path(target_dir)
        self._staged: Optional[Path] = None
        self._lock = threading.Lock()

    @property
    def staged(self) -> Optional[Path]:
        return self._staged

    def stage(self, source_dir: Union[str, Path]) -> Path:
        if self._staged is not None:
            return self._staged

        with self._lock:
            if self._staged is not None:
                return self._staged

            source_dir = Path(source_dir)
            try:
                self.target_dir.mkdir(parents=True, exist_ok=True)
                for entry in sorted(source_dir.iterdir()):
                    target = self.target_dir / entry.name
                    if entry.is_dir():
                        shutil.copytree(entry, target, dirs_exist_ok=True)
                    else:
                        # copy2 keeps the executable bits scripts rely on
                        shutil.copy2(entry, target)
            except OSError as e:
                logger.error("Failed to stage bin directory %s: %s", source_dir, e)
                raise StagingError(source_dir, str(e)) from e

            logger.info("Staged bin directory: %s -> %s", source_dir, self.target_dir)
            self._staged = self.target_dir
            return self._staged
