"""
Configuration manager for ospool with XDG-compliant paths.

Handles loading and merging configuration from system, user, project and
explicit sources with hierarchical precedence.
"""

# pylint: disable=broad-exception-caught

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import click
from omegaconf import DictConfig, OmegaConf

from ..errors import ConfigurationError
from .executor_config import ExecutorConfig

SECTION = "ospool"
PROJECT_DIR_NAME = ".ospool"
PROJECT_MARKERS = [".git", ".nextflow"]


class ConfigManager:
    """Manages ospool configuration loading and merging."""

    def __init__(self, extra_config: Optional[Union[str, Path]] = None):
        self.extra_config_file = Path(extra_config) if extra_config else None
        self.system_config: Optional[DictConfig] = None
        self.user_config: Optional[DictConfig] = None
        self.project_config: Optional[DictConfig] = None
        self.extra_config: Optional[DictConfig] = None
        self.merged_config: Optional[DictConfig] = None
        self._load_configs()

    def _get_xdg_config_dirs(self) -> List[Path]:
        """Get XDG config directories in precedence order."""
        xdg_config_dirs = os.environ.get("XDG_CONFIG_DIRS", "/etc/xdg")
        return [Path(d) / "ospool" for d in xdg_config_dirs.split(":") if d]

    def _get_user_config_dir(self) -> Path:
        """Get user config directory following XDG base directory conventions."""
        xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config_home:
            return Path(xdg_config_home) / "ospool"
        return Path.home() / ".config" / "ospool"

    def _find_project_root(self, start_path: Optional[Path] = None) -> Optional[Path]:
        """Find project root by searching for a .ospool directory or project markers."""
        current = (start_path or Path.cwd()).resolve()

        while current != current.parent:
            if (current / PROJECT_DIR_NAME).is_dir():
                return current
            if any((current / marker).exists() for marker in PROJECT_MARKERS):
                return current
            current = current.parent

        return None

    def _load_file(self, config_file: Path, label: str) -> Optional[DictConfig]:
        if not config_file.exists():
            return None
        try:
            return OmegaConf.load(config_file)
        except Exception as e:
            click.echo(f"Warning: Failed to load {label} config {config_file}: {e}", err=True)
            return None

    def _load_system_config(self) -> Optional[DictConfig]:
        """Load system-wide configuration."""
        for config_dir in self._get_xdg_config_dirs():
            config = self._load_file(config_dir / "config.yaml", "system")
            if config is not None:
                return config
        return None

    def _load_project_config(self) -> Optional[DictConfig]:
        project_root = self._find_project_root()
        if project_root is None:
            return None
        return self._load_file(project_root / PROJECT_DIR_NAME / "config.yaml", "project")

    def _load_configs(self):
        """Load and merge all configuration files."""
        self.system_config = self._load_system_config()
        self.user_config = self._load_file(self._get_user_config_dir() / "config.yaml", "user")
        self.project_config = self._load_project_config()

        if self.extra_config_file is not None:
            if not self.extra_config_file.exists():
                raise ConfigurationError(f"Config file not found: {self.extra_config_file}")
            # An explicitly requested file must parse; don't fall back silently
            self.extra_config = OmegaConf.load(self.extra_config_file)

        # Precedence: system < user < project < explicit file
        configs = [
            c
            for c in (self.system_config, self.user_config, self.project_config, self.extra_config)
            if c is not None
        ]
        self.merged_config = OmegaConf.merge(*configs) if configs else OmegaConf.create({})

    def get_config_files(self) -> Dict[str, Path]:
        """Get paths to all relevant config files."""
        files = {}
        for i, config_dir in enumerate(self._get_xdg_config_dirs()):
            files[f"system_{i}"] = config_dir / "config.yaml"
        files["user"] = self._get_user_config_dir() / "config.yaml"
        project_root = self._find_project_root()
        if project_root:
            files["project"] = project_root / PROJECT_DIR_NAME / "config.yaml"
        if self.extra_config_file:
            files["explicit"] = self.extra_config_file
        return files

    def get_config_value(self, key_path: str) -> Any:
        """Get configuration value by dot-separated path (e.g., 'ospool.submit_file_dir')."""
        if not self.merged_config:
            return None
        try:
            return OmegaConf.select(self.merged_config, key_path)
        except Exception:
            return None

    def get_executor_config(self) -> ExecutorConfig:
        """Validated settings of the ``ospool:`` section."""
        return ExecutorConfig.from_mapping(self.get_config_value(SECTION))


def setup_logging(verbosity: int = None):
    """
    Configures the logging level based on the verbosity provided by the user.

    Args:
        verbosity (int): The number of '-v' flags used, or from config.
                       - 0: ERROR level (default)
                       - 1: WARNING level
                       - 2: INFO level
                       - 3 or more: DEBUG level
    """
    if verbosity is None:
        verbosity = get_config_manager().get_config_value(f"{SECTION}.verbosity") or 0

    root_logger = logging.getLogger()

    # Remove existing handlers to avoid duplicate output
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if verbosity == 1:
        level = logging.WARNING
        format_str = "%(levelname)s: %(message)s"
    elif verbosity == 2:
        level = logging.INFO
        format_str = "%(levelname)s: %(message)s"
    elif verbosity >= 3:
        level = logging.DEBUG
        format_str = "%(levelname)s:%(name)s: %(message)s"
    else:
        level = logging.ERROR
        format_str = "%(levelname)s: %(message)s"

    root_logger.setLevel(level)
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(format_str))
    root_logger.addHandler(handler)


# Global config manager instance, created on first use
_config_manager = None


def get_config_manager(extra_config: Optional[Union[str, Path]] = None) -> ConfigManager:
    """Get the global config manager, loading it on first use or when a file is given."""
    global _config_manager
    if _config_manager is None or extra_config is not None:
        _config_manager = ConfigManager(extra_config)
    return _config_manager
