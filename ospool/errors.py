"""
Exception hierarchy for ospool.

Initialization-time errors (configuration, staging) are fatal for a run.
Per-task errors (submission) are scoped to the task that raised them.
"""


class OspoolError(Exception):
    """Base exception for ospool errors."""

    pass


class ConfigurationError(OspoolError):
    """Raised when the executor configuration is invalid or incomplete."""

    pass


class StagingError(OspoolError):
    """Raised when a directory cannot be staged to an accessible location."""

    def __init__(self, source_dir, reason: str = ""):
        self.source_dir = source_dir
        message = (
            "Failed to stage directory for OSPool execution. "
            f"Directory ({source_dir}) is not accessible from compute nodes. "
            "Either move it to /staging or ensure it's in an accessible location."
        )
        if reason:
            message = f"{message} Cause: {reason}"
        super().__init__(message)


class SubmissionError(OspoolError):
    """Raised when condor_submit fails or reports no job id."""

    def __init__(self, cmd, returncode: int, output: str = ""):
        self.cmd = cmd
        self.returncode = returncode
        self.output = output
        super().__init__(
            f"Job submission failed (exit status {returncode}): "
            f"{' '.join(str(c) for c in cmd)}\n{output.strip()}"
        )
