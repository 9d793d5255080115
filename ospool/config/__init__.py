"""
ospool.config - Configuration Management Package

Package Structure:
    manager.py          - Configuration loading and merging, logging setup
    executor_config.py  - Validated executor settings

Example Usage:
    from ospool.config import get_config_manager

    config = get_config_manager().get_executor_config()
    if not config.shared_filesystem:
        print(config.submit_file_dir)
"""

from .executor_config import AUTO, ExecutorConfig, parse_tristate, resolve_tristate
from .manager import ConfigManager, get_config_manager, setup_logging

__all__ = [
    "AUTO",
    "ConfigManager",
    "ExecutorConfig",
    "get_config_manager",
    "parse_tristate",
    "resolve_tristate",
    "setup_logging",
]
