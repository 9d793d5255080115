"""
Executor for the Open Science Pool (OSPool) HTCondor environment.

Implements HTCondor job submission with support for OSPool constraints:
- Submit file location restrictions (cannot submit from /staging)
- Non-shared filesystem execution with isolated sandboxes
- Path normalization for symlinked filesystems
- Automatic staging of inaccessible directories

Initialization (``register``) runs once, under a lock, before any task is
submitted. It stages the directories compute nodes cannot reach and freezes
the resulting StagingMap; afterwards every component only reads it.
"""

import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional, Union

from .condor.directives import (
    build_directives,
    directives_text,
    resolve_log_file_path,
    resolve_submit_file_path,
)
from .condor.queue import QueueState, parse_queue_status
from .condor.scheduler import kill_command, parse_job_id, queue_status_command, submit_command_line
from .config.executor_config import ExecutorConfig
from .container.mounts import ContainerMountPlanner
from .errors import ConfigurationError
from .execution.copy_strategy import FileCopyStrategy
from .execution.handler import TaskHandler
from .execution.task import SecretsStore, Session, TaskRun
from .execution.wrapper import WrapperBuilder, WrapperCapabilities
from .paths.access import AccessibilityOracle
from .paths.normalize import StagingMap, StagingRecord, normalize_path
from .staging.stager import BinDirStager, DirectoryStager

logger = logging.getLogger(__name__)

STAGED_BIN_DIR_NAME = ".nextflow-bin"
DIRECTORY_VARIABLES = ("${projectDir}", "${baseDir}")

SUBMIT_FILE_DIR_EXAMPLE = """\
OSPool executor configuration error:

When shared_filesystem = false, submit_file_dir must be specified.

Example configuration (~/.config/ospool/config.yaml):
ospool:
  submit_file_dir: ~/.nextflow/ospool-submit
  path_mappings:
    /mnt/htc-cephfs/fuse/root/staging: /staging
"""


class OspoolExecutor:
    """Composes staging, path normalization, descriptor generation and submission."""

    name = "ospool"

    def __init__(
        self,
        config: ExecutorConfig,
        session: Session,
        secrets: Optional[SecretsStore] = None,
    ):
        self.config = config
        self.session = session
        self.secrets = secrets or SecretsStore()
        self.oracle = AccessibilityOracle(config.accessible_prefixes)
        self.stager = DirectoryStager(session.work_dir)
        self._bin_stager = BinDirStager(session.work_dir / STAGED_BIN_DIR_NAME)
        self._staging_map = StagingMap()
        self._registered = False
        self._init_lock = threading.Lock()

    @property
    def shared_filesystem(self) -> bool:
        return self.config.shared_filesystem

    @property
    def staging_map(self) -> StagingMap:
        """Original path -> staged path for every auto-staged directory."""
        return self._staging_map

    @property
    def registered(self) -> bool:
        return self._registered

    #
    # Initialization
    #

    def register(self) -> StagingMap:
        """
        Validate configuration and run the staging pass.

        Safe to call from several threads: the first caller does the work,
        the others wait for it and return the same StagingMap.

        Raises:
            ConfigurationError: submit_file_dir missing in non-shared mode
            StagingError: a directory could not be staged
        """
        with self._init_lock:
            if self._registered:
                return self._staging_map

            if self.shared_filesystem:
                logger.debug("Running in shared filesystem mode")
            else:
                self.validate_config()
                logger.debug(
                    "Running in restricted filesystem mode - submit files: %s",
                    self.config.submit_file_dir,
                )
                if self.config.path_mappings:
                    logger.debug("Path mappings configured:")
                    for canonical, alias in self.config.path_mappings.items():
                        logger.debug("  %s -> %s", canonical, alias)
                else:
                    logger.debug("No path mappings configured - canonical paths will NOT be normalized")

                self._staging_map = self.process_auto_stage_directories()

            self._registered = True
            return self._staging_map

    def ensure_registered(self) -> StagingMap:
        if not self._registered:
            return self.register()
        return self._staging_map

    def validate_config(self) -> None:
        if not self.shared_filesystem and not self.config.submit_file_dir:
            raise ConfigurationError(SUBMIT_FILE_DIR_EXAMPLE)

    def resolve_directory_path(self, dir_spec: Union[str, Path, None]) -> Optional[Path]:
        """
        Resolve a directory specification to a path.

        ``${projectDir}`` and ``${baseDir}`` are replaced with the session
        project directory. Path objects are returned as-is. Returns None when
        the specification resolves to an empty string.
        """
        if isinstance(dir_spec, Path):
            return dir_spec
        if dir_spec is None:
            return None

        path_str = str(dir_spec)
        base_dir = str(self.session.base_dir) if self.session.base_dir else ""
        for variable in DIRECTORY_VARIABLES:
            path_str = path_str.replace(variable, base_dir)

        if not path_str:
            return None
        return Path(path_str)

    def auto_detect_directories(self) -> List[str]:
        """Directories to stage when none are configured explicitly."""
        candidates = []

        base_dir = self.session.base_dir
        if base_dir and not self.oracle.is_accessible(base_dir):
            logger.debug("Project directory not accessible, will stage: %s", base_dir)
            candidates.append(str(base_dir))

        if self.secrets.enabled:
            secrets_dir = self.secrets.directory
            if secrets_dir and not self.oracle.is_accessible(secrets_dir):
                logger.debug("Secrets directory not accessible, will stage: %s", secrets_dir)
                candidates.append(str(secrets_dir))

        return candidates

    def process_auto_stage_directories(self) -> StagingMap:
        """Stage every configured or auto-detected inaccessible directory."""
        if self.config.auto_stage_directories is None:
            auto_stage_list = self.auto_detect_directories()
        else:
            auto_stage_list = list(self.config.auto_stage_directories)

        if not auto_stage_list:
            logger.debug("No directories configured for auto-staging")
            return StagingMap()

        logger.debug("Processing auto_stage_directories: %s", auto_stage_list)

        records: Dict[str, StagingRecord] = {}
        for dir_spec in auto_stage_list:
            source_dir = self.resolve_directory_path(dir_spec)

            if source_dir is None:
                logger.warning("Could not resolve directory: %s", dir_spec)
                continue

            if self.oracle.is_accessible(source_dir):
                logger.debug("Directory already accessible, skipping: %s", source_dir)
                continue

            if not source_dir.exists():
                logger.warning("Directory to stage does not exist: %s", source_dir)
                continue

            original = os.path.abspath(str(source_dir))
            if original in records:
                continue

            staged_dir = self.stager.stage(source_dir)
            records[original] = StagingRecord(original, str(staged_dir))
            logger.debug("Staged directory: %s -> %s", source_dir, staged_dir)

        staging_map = StagingMap(records.values())
        if staging_map:
            logger.debug("Auto-staged directories summary:")
            for original, staged in staging_map.items():
                logger.debug("  %s -> %s", original, staged)
        return staging_map

    #
    # Path handling
    #

    def normalize_path(self, path: Union[str, Path]) -> str:
        """Apply auto-staged directories, then user path mappings, to ``path``."""
        return normalize_path(str(path), self._staging_map, self.config.path_mappings)

    def rewrite_secrets_env(self, command: str) -> str:
        """Point every staged original path in a secrets snippet at its staged copy."""
        if self.shared_filesystem or not command:
            return command
        for original, staged in self._staging_map.items():
            command = command.replace(original, staged)
        return command

    def get_bin_dir(self) -> Optional[Path]:
        """
        Bin directory visible to tasks.

        When bin staging is enabled (by default whenever the filesystem is not
        shared) the project bin directory is copied once into the work
        directory and that copy is returned.
        """
        project_bin_dir = self.session.bin_dir
        if not self.config.effective_stage_bin_dir:
            return project_bin_dir
        if not project_bin_dir:
            return None
        return self._bin_stager.stage(project_bin_dir)

    def should_unstage_outputs(self) -> bool:
        return self.config.effective_unstage_outputs

    #
    # Submit description
    #

    def resolve_submit_file_path(self, task: TaskRun) -> Path:
        return resolve_submit_file_path(task.work_dir, self.config.submit_file_dir)

    def resolve_log_file_path(self, task: TaskRun) -> Path:
        return resolve_log_file_path(task.work_dir, self.config.submit_file_dir)

    def get_directives(self, task: TaskRun) -> List[str]:
        return build_directives(task, self.config)

    def get_directives_text(self, task: TaskRun) -> str:
        return directives_text(self.get_directives(task))

    #
    # Per-task wiring
    #

    def create_copy_strategy(self, task: TaskRun) -> FileCopyStrategy:
        normalizer = None if self.shared_filesystem else self.normalize_path
        return FileCopyStrategy(task.work_dir, normalizer, task.stage_in_mode)

    def create_mount_planner(self) -> ContainerMountPlanner:
        return ContainerMountPlanner(
            self._staging_map, self.config.path_mappings, self.shared_filesystem
        )

    def create_wrapper_builder(self, task: TaskRun, secrets_env: Optional[str] = None) -> WrapperBuilder:
        self.ensure_registered()
        capabilities = WrapperCapabilities(
            mount_planner=self.create_mount_planner(),
            unstage_outputs=self.should_unstage_outputs(),
            rewrite_secrets=self.rewrite_secrets_env,
        )
        return WrapperBuilder(
            task,
            self.create_copy_strategy(task),
            capabilities,
            submit_file=self.resolve_submit_file_path(task),
            manifest=self.get_directives_text(task),
            bin_dir=self.get_bin_dir(),
            secrets_env=secrets_env,
        )

    def create_task_handler(self, task: TaskRun, secrets_env: Optional[str] = None) -> TaskHandler:
        self.ensure_registered()
        return TaskHandler(task, self, secrets_env=secrets_env)

    #
    # Batch system commands
    #

    def submit_command_line(self, task: TaskRun) -> List[str]:
        return submit_command_line(self.resolve_submit_file_path(task))

    @staticmethod
    def kill_command() -> List[str]:
        return kill_command()

    @staticmethod
    def queue_status_command(queue: Optional[str] = None) -> List[str]:
        return queue_status_command(queue)

    @staticmethod
    def parse_job_id(text: str) -> Optional[str]:
        return parse_job_id(text)

    @staticmethod
    def parse_queue_status(text: Optional[str]) -> Dict[str, QueueState]:
        return parse_queue_status(text)

    #
    # Shutdown
    #

    def shutdown(self) -> None:
        """Remove accumulated submit files when the session asks for cleanup."""
        if self.session.cleanup:
            self.cleanup_submit_files()

    def cleanup_submit_files(self) -> None:
        submit_dir = self.config.submit_file_dir
        if not submit_dir:
            return
        submit_base_dir = Path(submit_dir).expanduser()
        if submit_base_dir.exists():
            logger.debug("Cleaning up submit files in: %s", submit_base_dir)
            try:
                shutil.rmtree(submit_base_dir)
            except OSError as e:
                logger.warning("Failed to cleanup submit files: %s", e)
