"""
Singularity/Apptainer command builder.

Collects bind mounts, environment variables and extra run options for a
task and renders the ``singularity exec`` command line used by the task
wrapper.
"""

import shlex
from pathlib import Path
from typing import Dict, List, Optional, Union

PathLike = Union[str, Path]


class SingularityBuilder:
    """Builds a ``singularity exec`` invocation for one task."""

    def __init__(self, image: str, engine: str = "singularity"):
        self.image = image
        self.engine = engine
        self.mounts: List[str] = []
        self.run_options: List[str] = []
        self.env: List[str] = []
        self.work_dir: Optional[str] = None
        self.mount_work_dir = False
        self.run_command: Optional[str] = None

    def _add_bind(self, bind: str) -> None:
        if bind and bind not in self.mounts:
            self.mounts.append(bind)

    def add_mount(self, path: PathLike) -> "SingularityBuilder":
        self._add_bind(str(path))
        return self

    def add_mount_for_inputs(self, input_files: Dict[str, PathLike]) -> "SingularityBuilder":
        """Mount the parent directory of every input file."""
        for path in input_files.values():
            self._add_bind(str(Path(path).parent))
        return self

    def add_run_options(self, option: str) -> "SingularityBuilder":
        if option:
            self.run_options.append(option)
        return self

    def add_env(self, var: str) -> "SingularityBuilder":
        self.env.append(var)
        return self

    def set_work_dir(self, work_dir: PathLike) -> "SingularityBuilder":
        self.work_dir = str(work_dir)
        return self

    def add_mount_work_dir(self, enabled: bool = True) -> "SingularityBuilder":
        self.mount_work_dir = enabled
        return self

    def build(self) -> "SingularityBuilder":
        parts = [self.engine, "exec", "--no-home", "--pid"]
        binds = list(self.mounts)
        if self.mount_work_dir and self.work_dir and self.work_dir not in binds:
            binds.append(self.work_dir)
        for bind in binds:
            parts.extend(["-B", shlex.quote(bind)])
        for var in self.env:
            name, sep, value = var.partition("=")
            # Values may hold shell expressions such as $(id -u), keep them unquoted
            parts.append(f"--env {name}={value}" if sep else f'--env {name}="${name}"')
        if self.work_dir:
            parts.extend(["--pwd", shlex.quote(self.work_dir)])
        parts.extend(self.run_options)
        parts.append(shlex.quote(self.image))
        self.run_command = " ".join(parts)
        return self

    def get_run_command(self, launcher: str) -> str:
        if self.run_command is None:
            self.build()
        return f"{self.run_command} {launcher}"
