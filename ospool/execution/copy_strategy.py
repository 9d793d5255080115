"""
Shell commands that stage task inputs into, and outputs out of, the sandbox.

Every input source path goes through the executor's path normalizer before
a command is generated, so staged directories and aliased mounts are
referenced the way the compute node sees them.
"""

import os
import re
import shlex
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Union

STAGE_IN_MODES = ("symlink", "rellink", "link", "copy")


def identity(path: str) -> str:
    return path


def escape_glob(pattern: str) -> str:
    """Shell-quote a path pattern while keeping its ``*`` and ``?`` wildcards active."""
    parts = re.split(r"([*?])", pattern)
    return "".join(p if p in ("*", "?") else (shlex.quote(p) if p else "") for p in parts)


class FileCopyStrategy:
    """Generates stage-in and unstage shell commands for one task."""

    def __init__(
        self,
        work_dir: Union[str, Path],
        normalizer: Optional[Callable[[str], str]] = None,
        stage_in_mode: str = "symlink",
    ):
        if stage_in_mode not in STAGE_IN_MODES:
            raise ValueError(
                f"Unknown stage-in mode: {stage_in_mode} "
                f"(expected one of: {', '.join(STAGE_IN_MODES)})"
            )
        self.work_dir = Path(work_dir)
        self.normalizer = normalizer or identity
        self.stage_in_mode = stage_in_mode

    def stage_in_command(self, source: str, target_name: str) -> str:
        target = shlex.quote(target_name)
        if self.stage_in_mode == "copy":
            return f"cp -fRL {shlex.quote(source)} {target}"
        if self.stage_in_mode == "link":
            return f"ln {shlex.quote(source)} {target}"
        if self.stage_in_mode == "rellink":
            link_dir = (self.work_dir / target_name).parent
            source = os.path.relpath(source, str(link_dir))
        return f"ln -s {shlex.quote(source)} {target}"

    def stage_input_file(self, path: Union[str, Path], target_name: str) -> str:
        """
        Command staging one input file under ``target_name`` in the work dir.

        Nested target names get their parent directory created first.
        """
        cmd = ""
        parent, sep, _ = target_name.rpartition("/")
        if sep and parent:
            cmd += f"mkdir -p {shlex.quote(parent)} && "

        source = self.normalizer(str(Path(path).absolute()))
        return cmd + self.stage_in_command(source, target_name)

    def stage_input_files_script(self, input_files: Mapping[str, Path]) -> str:
        lines = [self.stage_input_file(path, name) for name, path in input_files.items()]
        return "\n".join(lines)

    def unstage_files_script(self, names: Iterable[str], target_dir: Union[str, Path]) -> str:
        """Copy files or patterns from the sandbox back to ``target_dir``; missing ones are ignored."""
        target = shlex.quote(str(target_dir))
        lines = [
            f"cp -fRL {escape_glob(name)} {target} 2>/dev/null || true"
            for name in names
        ]
        return "\n".join(lines)
