"""
Path normalization for remote execution.

Two rewrite tables are consulted when turning a submit-host path into the
path a compute-node sandbox should use:

1. Auto-staged directories: directories copied at startup from an
   inaccessible location to an accessible one. Paths inside them are
   rewritten to point at the staged copy.
   Example: /home/user/project/script.sh -> /staging/work/.staged-project/script.sh

2. User path mappings: canonical filesystem paths mapped to the alias used on
   both ends, typically because the storage is reached through a symlink.
   Example: /mnt/htc-cephfs/fuse/root/staging/file.txt -> /staging/file.txt

Staged directories always win over user mappings, and within one table the
longest matching prefix wins.
"""

import logging
import os
from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional, Union

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagingRecord:
    """A directory that was copied to a compute-accessible location."""

    original: str
    staged: str


class StagingMap(Mapping):
    """
    Read-only lookup of original path -> staged path.

    Built once during executor initialization and then shared by reference
    with every component that rewrites paths. It has no mutating methods, so
    concurrent readers need no locking.
    """

    def __init__(self, records: Iterable[StagingRecord] = ()):
        entries = {}
        for record in records:
            if record.original in entries:
                raise ValueError(f"Directory staged twice: {record.original}")
            entries[record.original] = record.staged
        self._entries = MappingProxyType(entries)

    def __getitem__(self, key: str) -> str:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"StagingMap({dict(self._entries)!r})"

    @property
    def records(self) -> list:
        """Staging records in insertion order."""
        return [StagingRecord(k, v) for k, v in self._entries.items()]


def longest_prefix_rewrite(path: str, mappings: Mapping) -> Optional[str]:
    """
    Rewrite ``path`` with the longest key of ``mappings`` that prefixes it.

    Returns None when no key matches.
    """
    for prefix in sorted(mappings, key=len, reverse=True):
        if path.startswith(prefix):
            return str(mappings[prefix]) + path[len(prefix) :]
    return None


def normalize_path(
    path: Union[str, os.PathLike],
    staged: Optional[Mapping] = None,
    path_mappings: Optional[Mapping] = None,
) -> str:
    """
    Normalize a path for use inside the remote execution sandbox.

    Args:
        path: The path to normalize
        staged: Auto-staged directories (original -> staged location)
        path_mappings: User-configured canonical -> alias mappings

    Returns:
        The rewritten path, or ``path`` unchanged when nothing matches
    """
    path = str(path)

    if staged:
        rewritten = longest_prefix_rewrite(path, staged)
        if rewritten is not None:
            logger.debug("Auto-staged path rewrite: %s -> %s", path, rewritten)
            return rewritten

    if path_mappings:
        rewritten = longest_prefix_rewrite(path, path_mappings)
        if rewritten is not None:
            logger.debug("Path mapping applied: %s -> %s", path, rewritten)
            return rewritten

    return path
