"""
Task wrapper script and submit file generation.

WrapperBuilder is generic: everything specific to sandboxed OSPool
execution is supplied through WrapperCapabilities (mount planning, the
output unstaging policy, secrets path rewriting) instead of subclassing.
"""

import logging
import os
import shlex
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from ..container.builder import SingularityBuilder
from ..container.mounts import ContainerMountPlanner
from .copy_strategy import FileCopyStrategy
from .task import CMD_ERR, CMD_EXIT, CMD_OUT, CMD_RUN, CMD_SCRIPT, CMD_TRACE, TaskRun

logger = logging.getLogger(__name__)

CONTROL_FILES = (CMD_OUT, CMD_ERR, CMD_TRACE, CMD_EXIT)


def _unchanged(text: str) -> str:
    return text


@dataclass
class WrapperCapabilities:
    """Pluggable behaviour injected into WrapperBuilder."""

    mount_planner: Optional[ContainerMountPlanner] = None
    unstage_outputs: bool = False
    rewrite_secrets: Callable[[str], str] = field(default=_unchanged)

    @property
    def unstage_controls(self) -> bool:
        # Control files follow the same policy as task outputs
        return self.unstage_outputs


class WrapperBuilder:
    """Writes ``.command.sh``, ``.command.run`` and the HTCondor submit file for a task."""

    def __init__(
        self,
        task: TaskRun,
        copy_strategy: FileCopyStrategy,
        capabilities: WrapperCapabilities,
        submit_file: Path,
        manifest: str,
        bin_dir: Optional[Path] = None,
        secrets_env: Optional[str] = None,
        container_engine: str = "singularity",
    ):
        self.task = task
        self.work_dir = task.work_dir
        self.copy_strategy = copy_strategy
        self.capabilities = capabilities
        self.submit_file = Path(submit_file)
        self.manifest = manifest
        self.bin_dir = bin_dir
        self.secrets_env = secrets_env
        self.container_engine = container_engine

    def get_secrets_env(self) -> str:
        if not self.secrets_env:
            return ""
        rewritten = self.capabilities.rewrite_secrets(self.secrets_env)
        if rewritten != self.secrets_env:
            logger.debug("Rewritten secrets command for task %s", self.task.name)
        return rewritten

    def create_container_builder(self) -> SingularityBuilder:
        builder = SingularityBuilder(self.task.container, engine=self.container_engine)
        planner = self.capabilities.mount_planner
        mount_inputs = self.task.stage_in_mode != "copy"

        if planner is not None:
            planner.configure(builder, self.task.input_files, mount_inputs=mount_inputs)
        elif mount_inputs:
            builder.add_mount_for_inputs(self.task.input_files)

        if self.bin_dir:
            builder.add_mount(self.bin_dir)

        builder.set_work_dir(self.work_dir)
        builder.add_mount_work_dir()
        builder.add_env("NXF_TASK_WORKDIR")
        return builder.build()

    def _launch_command(self) -> str:
        launcher = f"/bin/bash {shlex.quote(str(self.work_dir / CMD_SCRIPT))}"
        if self.task.container:
            return self.create_container_builder().get_run_command(launcher)
        return launcher

    def render_script(self) -> str:
        """Render the ``.command.run`` wrapper script."""
        work_dir = shlex.quote(str(self.work_dir))
        sandboxed = self.capabilities.unstage_outputs
        lines: List[str] = [
            "#!/bin/bash",
            f"# ospool task: {self.task.name}",
            "set -u",
            f"export NXF_TASK_WORKDIR={work_dir}",
        ]

        secrets = self.get_secrets_env()
        if secrets:
            lines.append(secrets)

        if self.bin_dir:
            lines.append(f'export PATH={shlex.quote(str(self.bin_dir))}:"$PATH"')

        if sandboxed:
            lines.append('cd "${_CONDOR_SCRATCH_DIR:-$PWD}"')
        else:
            lines.append(f"cd {work_dir}")

        stage_in = self.copy_strategy.stage_input_files_script(self.task.input_files)
        if stage_in:
            lines.append(stage_in)

        lines.append(f"{self._launch_command()} > {CMD_OUT} 2> {CMD_ERR}")
        lines.append(f"echo $? > {CMD_EXIT}")

        unstage_names = []
        if sandboxed:
            unstage_names.extend(self.task.output_files)
        if self.capabilities.unstage_controls:
            unstage_names.extend(CONTROL_FILES)
        if unstage_names:
            lines.append(self.copy_strategy.unstage_files_script(unstage_names, self.work_dir))

        lines.append(f'exit "$(cat {CMD_EXIT})"')
        return "\n".join(lines) + "\n"

    def build(self) -> Path:
        """Write the wrapper files and the submit description; return the wrapper path."""
        self.work_dir.mkdir(parents=True, exist_ok=True)

        (self.work_dir / CMD_SCRIPT).write_text(self.task.script, encoding="utf-8")

        wrapper = self.work_dir / CMD_RUN
        wrapper.write_text(self.render_script(), encoding="utf-8")
        mode = os.stat(wrapper).st_mode
        os.chmod(wrapper, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

        if self.submit_file.parent != self.work_dir:
            self.submit_file.parent.mkdir(parents=True, exist_ok=True)
        self.submit_file.write_text(self.manifest, encoding="utf-8")

        return wrapper
