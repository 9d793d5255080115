"""
HTCondor job submission for the Open Science Pool (OSPool).

Runs workflow tasks on pools where compute nodes do not share the submit
host's filesystem: inaccessible directories are staged to reachable storage,
paths are rewritten for the execution sandbox, and submit descriptions are
written outside restricted storage.
"""

# __init__.py

__version__ = "0.1.0"

from .errors import ConfigurationError, OspoolError, StagingError, SubmissionError
from .executor import OspoolExecutor

# Import main CLI
from . import cli as cli_module

ospool = cli_module.ospool

__all__ = [
    "ConfigurationError",
    "OspoolError",
    "OspoolExecutor",
    "StagingError",
    "SubmissionError",
    "ospool",
]
