"""Persistent configuration.

Two JSON files back the CLI:
- ~/.vss.json holds values shared by every project: arg values, the
  registered script directories and the last update check.
- ./.vss-app.json holds per-project state: the last selection and opt values.

Copyright 2025 Ben Mensi
Licensed under the Apache License, Version 2.0
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Type, TypeVar

from vss.errors import ConfigError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GlobalConfig:
    """Contents of ~/.vss.json."""

    args: Dict[str, Any] = field(default_factory=dict)
    script_dirs: List[str] = field(default_factory=list)
    last_checked: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GlobalConfig":
        return cls(
            args=dict(data.get("args") or {}),
            script_dirs=list(data.get("scriptDirs") or []),
            last_checked=data.get("lastChecked"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"args": self.args, "scriptDirs": self.script_dirs}
        if self.last_checked is not None:
            data["lastChecked"] = self.last_checked
        return data


@dataclass
class AppConfig:
    """Contents of ./.vss-app.json."""

    selected: List[str] = field(default_factory=list)
    opts: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AppConfig":
        return cls(
            selected=list(data.get("selected") or []),
            opts=dict(data.get("opts") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"selected": self.selected, "opts": self.opts}


def _global_config_path() -> Path:
    """Get the global config file path."""
    return Path("~/.vss.json").expanduser()


def _app_config_path() -> Path:
    """Get the per-project config file path."""
    return Path.cwd() / ".vss-app.json"


class FileConfig(Generic[T]):
    """A JSON file mapped onto a config dataclass.

    The file is read on first access and cached. A missing file yields the
    dataclass defaults.
    """

    def __init__(self, path: Path, config_type: Type[T]):
        self.path = Path(path)
        self.config_type = config_type
        self._cached: Optional[T] = None

    def _load(self) -> T:
        if not self.path.exists():
            logger.debug(f"Config file {self.path} not found, using defaults")
            return self.config_type()

        try:
            with open(self.path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {self.path}: {e}")
        except OSError as e:
            raise ConfigError(f"Could not read {self.path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Expected a JSON object in {self.path}")
        return self.config_type.from_dict(data)

    def get(self) -> T:
        """Return a copy of the current config."""
        if self._cached is None:
            self._cached = self._load()
        return copy.deepcopy(self._cached)

    def update(self, fn: Callable[[T], None]) -> T:
        """Apply `fn` to a copy of the config and save the result.

        Returns:
            The saved config.
        """
        config = self.get()
        fn(config)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(config.to_dict(), f, indent=2)
        self._cached = copy.deepcopy(config)
        logger.debug(f"Saved config to {self.path}")
        return config


class ConfigStore:
    """Both config files, passed explicitly to whatever needs them."""

    def __init__(self, global_path: Optional[Path] = None, app_path: Optional[Path] = None):
        self.global_config: FileConfig[GlobalConfig] = FileConfig(
            global_path or _global_config_path(), GlobalConfig
        )
        self.app_config: FileConfig[AppConfig] = FileConfig(
            app_path or _app_config_path(), AppConfig
        )
