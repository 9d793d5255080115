"""
Per-task submission handling.

A TaskHandler builds the task's wrapper and submit file, submits it, and
tracks the job id. condor_submit runs from the launch directory rather
than the task work directory (see ospool.condor.scheduler).
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

from ..condor.queue import QueueState
from ..condor.scheduler import condor_rm, condor_submit

logger = logging.getLogger(__name__)


class TaskHandler:
    """Submits one task and follows its queue state."""

    def __init__(self, task, executor, secrets_env: Optional[str] = None):
        self.task = task
        self.executor = executor
        self.secrets_env = secrets_env
        self.job_id: Optional[str] = None
        self.wrapper_file: Optional[Path] = None
        self.state: QueueState = QueueState.UNKNOWN

    def submit(self) -> str:
        """Write the task files and submit the job; returns the job id."""
        builder = self.executor.create_wrapper_builder(self.task, secrets_env=self.secrets_env)
        self.wrapper_file = builder.build()
        logger.debug("Launching process > %s -- work folder: %s", self.task.name, self.task.work_dir)

        self.job_id = condor_submit(builder.submit_file)
        self.state = QueueState.PENDING
        logger.info("Task %s submitted as job %s", self.task.name, self.job_id)
        return self.job_id

    def update_state(self, snapshot: Optional[Mapping[str, QueueState]]) -> QueueState:
        """
        Update from a queue snapshot.

        A submitted job missing from the snapshot has left the queue and is
        reported as DONE; the exit status file decides success. A None
        snapshot (failed poll) leaves the state unchanged.
        """
        if self.job_id is None or snapshot is None:
            return self.state
        self.state = snapshot.get(self.job_id, QueueState.DONE)
        return self.state

    def kill(self) -> bool:
        if self.job_id is None:
            return False
        return condor_rm(self.job_id)
