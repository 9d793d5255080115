"""
Compute-node accessibility policy.

Only some submit-host paths are visible from an OSPool execution sandbox.
This is a policy check on the path string; nothing on the remote side is
probed.
"""

import logging
import os
from pathlib import Path
from typing import Iterable, Tuple, Union

logger = logging.getLogger(__name__)

# /staging: CHTC shared storage, /cvmfs: CVMFS, /mnt/gluster: Gluster storage
DEFAULT_ACCESSIBLE_PREFIXES: Tuple[str, ...] = ("/staging", "/cvmfs", "/mnt/gluster")


class AccessibilityOracle:
    """Classifies paths as reachable or unreachable from compute nodes."""

    def __init__(self, extra_prefixes: Iterable[str] = ()):
        prefixes = list(DEFAULT_ACCESSIBLE_PREFIXES)
        for prefix in extra_prefixes or ():
            prefix = str(prefix)
            if prefix and prefix not in prefixes:
                prefixes.append(prefix)
        self.prefixes: Tuple[str, ...] = tuple(prefixes)

    def is_accessible(self, path: Union[str, Path]) -> bool:
        """Return True if the absolute form of ``path`` starts with an accessible prefix."""
        path_str = os.path.abspath(str(path))
        return any(path_str.startswith(prefix) for prefix in self.prefixes)

    def __repr__(self) -> str:
        return f"AccessibilityOracle(prefixes={self.prefixes!r})"
