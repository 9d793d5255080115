"""Path normalization and compute-node accessibility checks."""

from .access import DEFAULT_ACCESSIBLE_PREFIXES, AccessibilityOracle
from .normalize import StagingMap, StagingRecord, longest_prefix_rewrite, normalize_path

__all__ = [
    "AccessibilityOracle",
    "DEFAULT_ACCESSIBLE_PREFIXES",
    "StagingMap",
    "StagingRecord",
    "longest_prefix_rewrite",
    "normalize_path",
]
