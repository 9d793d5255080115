"""
Validated executor settings.

The raw ``ospool:`` configuration section is turned into an immutable
ExecutorConfig once, so every later lookup is a plain attribute read.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from omegaconf import DictConfig, ListConfig, OmegaConf

from ..errors import ConfigurationError

AUTO = "auto"
TriState = Union[str, bool]

_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def parse_tristate(value: Any, key: str) -> TriState:
    """Parse an ``auto``/boolean setting; None means ``auto``."""
    if value is None:
        return AUTO
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == AUTO:
        return AUTO
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise ConfigurationError(f"Invalid value for '{key}': {value!r} (expected auto, true or false)")


def parse_bool(value: Any, key: str, default: Optional[bool] = None) -> Optional[bool]:
    if value is None:
        return default
    parsed = parse_tristate(value, key)
    if parsed == AUTO:
        raise ConfigurationError(f"'{key}' must be true or false, not auto")
    return parsed


def resolve_tristate(value: TriState, auto_value: bool) -> bool:
    return auto_value if value == AUTO else bool(value)


@dataclass(frozen=True)
class ExecutorConfig:
    """Settings of the ``ospool:`` configuration section."""

    shared_filesystem: bool = False
    submit_file_dir: Optional[str] = None
    path_mappings: Dict[str, str] = field(default_factory=dict)
    auto_stage_directories: Optional[Tuple[str, ...]] = None
    stage_bin_dir: TriState = AUTO
    unstage_outputs: TriState = AUTO
    getenv: Optional[bool] = None
    accessible_prefixes: Tuple[str, ...] = ()

    @property
    def effective_getenv(self) -> bool:
        """Environment inheritance: explicit setting, else on only for shared filesystems."""
        if self.getenv is None:
            return self.shared_filesystem
        return self.getenv

    @property
    def effective_stage_bin_dir(self) -> bool:
        return resolve_tristate(self.stage_bin_dir, not self.shared_filesystem)

    @property
    def effective_unstage_outputs(self) -> bool:
        return resolve_tristate(self.unstage_outputs, not self.shared_filesystem)

    @classmethod
    def from_mapping(cls, section: Union[Mapping, DictConfig, None]) -> "ExecutorConfig":
        """Build a validated config from the raw ``ospool:`` section."""
        if section is None:
            return cls()
        if OmegaConf.is_config(section):
            section = OmegaConf.to_container(section, resolve=True)
        if not isinstance(section, Mapping):
            raise ConfigurationError("The 'ospool' configuration section must be a mapping")

        mappings = section.get("path_mappings") or {}
        if not isinstance(mappings, Mapping):
            raise ConfigurationError("'path_mappings' must be a mapping of canonical path -> alias")

        auto_stage = section.get("auto_stage_directories")
        if auto_stage is not None:
            if isinstance(auto_stage, str) or not isinstance(auto_stage, (list, tuple, ListConfig)):
                raise ConfigurationError("'auto_stage_directories' must be a list of directories")
            auto_stage = tuple(str(d) for d in auto_stage)

        prefixes = section.get("accessible_prefixes") or ()
        if isinstance(prefixes, str):
            prefixes = [prefixes]

        submit_dir = section.get("submit_file_dir")

        return cls(
            shared_filesystem=bool(parse_bool(section.get("shared_filesystem"), "shared_filesystem", False)),
            submit_file_dir=str(submit_dir) if submit_dir else None,
            path_mappings={str(k): str(v) for k, v in mappings.items()},
            auto_stage_directories=auto_stage,
            stage_bin_dir=parse_tristate(section.get("stage_bin_dir"), "stage_bin_dir"),
            unstage_outputs=parse_tristate(section.get("unstage_outputs"), "unstage_outputs"),
            getenv=parse_bool(section.get("getenv"), "getenv"),
            accessible_prefixes=tuple(str(p) for p in prefixes),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shared_filesystem": self.shared_filesystem,
            "submit_file_dir": self.submit_file_dir,
            "path_mappings": dict(self.path_mappings),
            "auto_stage_directories": (
                list(self.auto_stage_directories)
                if self.auto_stage_directories is not None
                else None
            ),
            "stage_bin_dir": self.stage_bin_dir,
            "unstage_outputs": self.unstage_outputs,
            "getenv": self.getenv,
            "accessible_prefixes": list(self.accessible_prefixes),
        }
