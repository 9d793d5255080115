"""
Parsing of ``condor_q -nobatch`` output into normalized queue states.
"""

import logging
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class QueueState(Enum):
    """Normalized state of a job in the batch queue."""

    PENDING = "pending"
    RUNNING = "running"
    HOLD = "hold"
    DONE = "done"
    ERROR = "error"
    UNKNOWN = "unknown"


DECODE_STATUS: Dict[str, QueueState] = {
    "U": QueueState.PENDING,  # Unexpanded
    "I": QueueState.PENDING,  # Idle
    "R": QueueState.RUNNING,  # Running
    "X": QueueState.ERROR,  # Removed
    "C": QueueState.DONE,  # Completed
    "H": QueueState.HOLD,  # Held
    "E": QueueState.ERROR,  # Error
}

HEADER_PREFIX = "ID "
STATUS_COLUMN = 5


def decode_status(code: Optional[str]) -> QueueState:
    """Map a one-letter HTCondor status code, UNKNOWN for anything unrecognised."""
    return DECODE_STATUS.get(code or "", QueueState.UNKNOWN)


def parse_queue_status(text: Optional[str]) -> Dict[str, QueueState]:
    """
    Parse a ``condor_q -nobatch`` snapshot.

    Lines before the column header are skipped. After the header each line
    is one job until the first blank line; the trailing summary is ignored.

    Example input:
        -- Schedd: submit.chtc.wisc.edu : <128.104.100.43:9618?...>
         ID      OWNER   SUBMITTED     RUN_TIME ST PRI SIZE  CMD
        1234.0   user   1/2  10:30   0+00:01:23 R  0   0.0  script.sh

        1 jobs; 0 completed, 0 removed, 0 idle, 1 running, 0 held, 0 suspended

    Returns:
        dict: job id -> QueueState, in the order jobs were listed
    """
    result: Dict[str, QueueState] = {}
    if not text:
        return result

    started = False
    for line in text.splitlines():
        if not started:
            started = line.lstrip().startswith(HEADER_PREFIX)
            continue

        if not line.strip():
            break

        cols = line.split()
        code = cols[STATUS_COLUMN] if len(cols) > STATUS_COLUMN else None
        state = decode_status(code)
        if state is QueueState.UNKNOWN:
            logger.debug("Unknown status code %r for job %s", code, cols[0])
        result[cols[0]] = state

    return result
