"""
HTCondor submit description generation.

The directive order is fixed and other tooling reads generated files in
this order:

    universe, executable, log, getenv, request_cpus + machine_count,
    request_memory, request_disk, periodic_remove, cluster options, queue
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..config.executor_config import ExecutorConfig
from ..execution.task import CMD_RUN, TaskRun
from ..resources import parse_duration_seconds

logger = logging.getLogger(__name__)

CMD_CONDOR = ".command.condor"
CMD_CONDOR_LOG = ".condor.log"


def resolve_bucket_path(
    work_dir: Union[str, Path], file_name: str, base_dir: Optional[Union[str, Path]] = None
) -> Path:
    """
    Place ``file_name`` for a task, mirroring the work directory bucket layout.

    With a base directory the result is ``<base>/<prefix>/<hash>/<file_name>``
    where ``<prefix>/<hash>`` are the last two components of ``work_dir``.
    Without one the file goes in ``work_dir`` itself.
    """
    work_dir = Path(work_dir)
    if base_dir:
        return Path(base_dir).expanduser() / work_dir.parent.name / work_dir.name / file_name
    return work_dir / file_name


def resolve_submit_file_path(work_dir, submit_file_dir=None) -> Path:
    """Where the submit description for a task is written."""
    return resolve_bucket_path(work_dir, CMD_CONDOR, submit_file_dir)


def resolve_log_file_path(work_dir, submit_file_dir=None) -> Path:
    """Where HTCondor writes the job event log for a task."""
    return resolve_bucket_path(work_dir, CMD_CONDOR_LOG, submit_file_dir)


def build_directives(task: TaskRun, config: ExecutorConfig) -> List[str]:
    """
    Build the ordered submit directives for a task.

    Args:
        task: The task to describe
        config: Executor settings (submit_file_dir, getenv, shared_filesystem)

    Returns:
        Directive lines, always starting with ``universe = vanilla`` and
        ending with ``queue``
    """
    resources = task.resources
    result = ["universe = vanilla"]
    result.append(f"executable = {task.work_dir / CMD_RUN}")
    result.append(f"log = {resolve_log_file_path(task.work_dir, config.submit_file_dir)}")

    if config.effective_getenv:
        result.append("getenv = true")

    if resources.cpus and resources.cpus > 1:
        result.append(f"request_cpus = {resources.cpus}")
        result.append("machine_count = 1")

    if resources.memory:
        result.append(f"request_memory = {resources.memory}")

    if resources.disk:
        result.append(f"request_disk = {resources.disk}")

    seconds = parse_duration_seconds(resources.time)
    if seconds:
        result.append(
            "periodic_remove = (RemoteWallClockTime - CumulativeSuspensionTime) > "
            f"{seconds}"
        )

    # e.g. HasCHTCStaging = true
    result.extend(task.cluster_options)

    result.append("queue")
    return result


def directives_text(directives: List[str]) -> str:
    """Format directives as submit file content, one per line."""
    return "\n".join(directives) + "\n"
