"""
HTCondor command-line wrappers.

Builds the condor_submit / condor_rm / condor_q command lines and runs them.
condor_submit is deliberately run without a working directory override:
some pools refuse submission from inside restricted storage such as
/staging, and the submit description uses absolute paths anyway.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..errors import SubmissionError
from .queue import QueueState, parse_queue_status

logger = logging.getLogger(__name__)


def submit_command_line(submit_file: Union[str, Path]) -> List[str]:
    return ["condor_submit", "--terse", str(submit_file)]


def kill_command() -> List[str]:
    return ["condor_rm"]


def queue_status_command(queue: Optional[str] = None) -> List[str]:
    # HTCondor has no queue selection for condor_q; the argument is ignored
    return ["condor_q", "-nobatch"]


def parse_job_id(text: str) -> Optional[str]:
    """
    Extract the job id from ``condor_submit --terse`` output.

    The terse form is ``<first id> - <last id>``, e.g. "12345.0 - 12345.0".
    """
    tokens = [t for t in re.split(r"[ \-]", (text or "").strip()) if t]
    return tokens[0] if tokens else None


def condor_submit(submit_file: Union[str, Path]) -> str:
    """
    Submit a job description with condor_submit.

    Args:
        submit_file: Path to the .command.condor file

    Returns:
        The job id of the submitted job

    Raises:
        SubmissionError: If condor_submit fails or prints no job id
    """
    cmd = submit_command_line(submit_file)
    logger.debug("Submitting job: %s", cmd)

    result = subprocess.run(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        logger.debug("Job submission failed")
        raise SubmissionError(cmd, result.returncode, result.stdout or "")

    job_id = parse_job_id(result.stdout)
    if not job_id:
        raise SubmissionError(cmd, result.returncode, result.stdout or "")

    logger.debug("Job submitted successfully: %s", job_id)
    return job_id


def condor_rm(job_id: str) -> bool:
    """
    Remove a job with condor_rm.

    Returns:
        bool: True if removal was successful, False otherwise
    """
    logger.debug("Removing job %s", job_id)

    try:
        result = subprocess.run(
            kill_command() + [job_id],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.error("Error removing job %s: %s", job_id, e)
        return False

    if result.returncode == 0:
        logger.info("Job %s removed successfully", job_id)
        return True

    logger.warning("Failed to remove job %s: %s", job_id, result.stderr.strip())
    return False


def condor_q() -> Optional[Dict[str, QueueState]]:
    """
    Poll the queue once.

    Returns None when condor_q cannot be run or fails, so callers can tell a
    failed poll from an empty queue. The failure is logged and scoped to this
    poll.
    """
    cmd = queue_status_command()
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            check=False,
        )
    except OSError as e:
        logger.error("Error running %s: %s", " ".join(cmd), e)
        return None

    if result.returncode != 0:
        logger.warning("condor_q failed (exit status %d): %s", result.returncode, result.stderr.strip())
        return None

    return parse_queue_status(result.stdout)
