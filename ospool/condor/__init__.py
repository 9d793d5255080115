# HTCondor submit description, queue parsing and command wrappers

from .directives import (
    CMD_CONDOR,
    CMD_CONDOR_LOG,
    build_directives,
    directives_text,
    resolve_bucket_path,
    resolve_log_file_path,
    resolve_submit_file_path,
)
from .queue import DECODE_STATUS, QueueState, decode_status, parse_queue_status
from .scheduler import (
    condor_q,
    condor_rm,
    condor_submit,
    kill_command,
    parse_job_id,
    queue_status_command,
    submit_command_line,
)

__all__ = [
    "CMD_CONDOR",
    "CMD_CONDOR_LOG",
    "DECODE_STATUS",
    "QueueState",
    "build_directives",
    "condor_q",
    "condor_rm",
    "condor_submit",
    "decode_status",
    "directives_text",
    "kill_command",
    "parse_job_id",
    "parse_queue_status",
    "queue_status_command",
    "resolve_bucket_path",
    "resolve_log_file_path",
    "resolve_submit_file_path",
    "submit_command_line",
]
