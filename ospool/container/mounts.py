"""
Container bind mounts for sandboxed execution.

Outside a shared filesystem, input paths have to be rewritten to the form
the compute node sees, and every auto-staged directory is mounted back at
its original path so scripts that still refer to the original location keep
working inside the container.
"""

import logging
import shlex
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from ..paths.normalize import StagingMap, normalize_path
from .builder import SingularityBuilder

logger = logging.getLogger(__name__)


class ContainerMountPlanner:
    """Plans the bind mounts for a containerized task."""

    def __init__(
        self,
        staging_map: StagingMap,
        path_mappings: Optional[Mapping[str, str]] = None,
        shared_filesystem: bool = False,
    ):
        self.staging_map = staging_map
        self.path_mappings = dict(path_mappings or {})
        self.shared_filesystem = shared_filesystem

    def normalize_inputs(self, input_files: Mapping[str, Path]) -> Dict[str, Path]:
        """Rewrite every input source path; untouched on a shared filesystem."""
        if self.shared_filesystem:
            return dict(input_files)
        return {
            name: Path(normalize_path(str(Path(path).absolute()), self.staging_map, self.path_mappings))
            for name, path in input_files.items()
        }

    def staged_bind_options(self) -> List[str]:
        """One ``-B staged:original`` option per staged directory."""
        if self.shared_filesystem:
            return []
        options = []
        for record in self.staging_map.records:
            logger.debug("Adding auto-staged bind mount: %s -> %s", record.staged, record.original)
            bind = f"{record.staged}:{record.original}"
            options.append(f"-B {shlex.quote(bind)}")
        return options

    def configure(
        self,
        builder: SingularityBuilder,
        input_files: Mapping[str, Path],
        mount_inputs: bool = True,
    ) -> SingularityBuilder:
        """Add input and staged-directory mounts to ``builder``."""
        if mount_inputs:
            builder.add_mount_for_inputs(self.normalize_inputs(input_files))
        for option in self.staged_bind_options():
            builder.add_run_options(option)
        return builder
