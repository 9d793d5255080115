"""
Workflow-engine facing data types.

These describe what the engine hands to the executor: the task with its
resource requests and inputs, the session it belongs to, and the local
secrets store. The executor only reads them.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Dict, Optional, Sequence, Tuple, Union

ClusterOptionsLike = Union[str, Sequence[str], None]

CMD_RUN = ".command.run"
CMD_SCRIPT = ".command.sh"
CMD_OUT = ".command.out"
CMD_ERR = ".command.err"
CMD_TRACE = ".command.trace"
CMD_EXIT = ".exitcode"


def normalize_cluster_options(options: ClusterOptionsLike) -> Tuple[str, ...]:
    """
    Resolve free-form cluster options into a flat sequence of directives.

    A string is split on ';' and newlines with each fragment trimmed; blank
    fragments are dropped. A list or tuple is used as-is.
    """
    if options is None:
        return ()
    if isinstance(options, str):
        fragments = options.replace("\n", ";").split(";")
        return tuple(f.strip() for f in fragments if f.strip())
    return tuple(str(o) for o in options)


@dataclass(frozen=True)
class TaskResources:
    """Resource requests for one task."""

    cpus: int = 1
    memory: Optional[str] = None
    disk: Optional[str] = None
    time: Union[int, str, timedelta, None] = None


@dataclass(frozen=True)
class TaskRun:
    """A task ready for submission."""

    name: str
    work_dir: Path
    script: str = ""
    resources: TaskResources = field(default_factory=TaskResources)
    cluster_options: Tuple[str, ...] = ()
    input_files: Dict[str, Path] = field(default_factory=dict)
    output_files: Tuple[str, ...] = ()
    container: Optional[str] = None
    stage_in_mode: str = "symlink"

    def __post_init__(self):
        object.__setattr__(self, "work_dir", Path(self.work_dir))
        object.__setattr__(
            self, "cluster_options", normalize_cluster_options(self.cluster_options)
        )
        object.__setattr__(
            self,
            "input_files",
            {str(k): Path(v) for k, v in (self.input_files or {}).items()},
        )
        object.__setattr__(self, "output_files", tuple(self.output_files or ()))


@dataclass(frozen=True)
class Session:
    """Run-wide directories owned by the workflow engine."""

    work_dir: Path
    base_dir: Optional[Path] = None
    bin_dir: Optional[Path] = None
    cleanup: bool = False

    def __post_init__(self):
        object.__setattr__(self, "work_dir", Path(self.work_dir))
        if self.base_dir is not None:
            object.__setattr__(self, "base_dir", Path(self.base_dir))
        if self.bin_dir is not None:
            object.__setattr__(self, "bin_dir", Path(self.bin_dir))


@dataclass(frozen=True)
class SecretsStore:
    """Local secrets provider state."""

    enabled: bool = False
    store_file: Optional[Path] = None

    @property
    def directory(self) -> Optional[Path]:
        if self.store_file is None:
            return None
        return Path(self.store_file).parent
