"""Directory staging from submit-host locations to compute-accessible ones."""

from .stager import (
    EXCLUDED_TOP_LEVEL_DIRS,
    BinDirStager,
    DirectoryStager,
    copy_directory_tree,
    is_secret_file,
    is_secrets_directory,
)

__all__ = [
    "BinDirStager",
    "DirectoryStager",
    "EXCLUDED_TOP_LEVEL_DIRS",
    "copy_directory_tree",
    "is_secret_file",
    "is_secrets_directory",
]
