"""
Interpreter configuration.

Settings are read from a YAML file:

    modules: [os, signal]   # standard native modules to install
    max_depth: 256          # evaluation nesting limit
    log_level: WARNING      # level used by the command line tool

Every key is optional. The APEXLANG_CONFIG environment variable names a
file to load when no path is given explicitly.
"""

import logging
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .runtime.natives import NativeRegistry
from .stdlib import STANDARD_MODULES

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "APEXLANG_CONFIG"
DEFAULT_MAX_DEPTH = 256
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    """Raised when a configuration file cannot be used."""
    pass


@dataclass
class ApexConfig:
    """Settings shared by the interpreter and the command line tool."""
    modules: List[str] = field(default_factory=lambda: list(STANDARD_MODULES))
    max_depth: int = DEFAULT_MAX_DEPTH
    log_level: str = "WARNING"

    def __post_init__(self):
        unknown = [name for name in self.modules if name not in STANDARD_MODULES]
        if unknown:
            raise ConfigError(
                f"unknown module(s) {', '.join(unknown)}; "
                f"available: {', '.join(STANDARD_MODULES)}"
            )
        if self.max_depth < 1:
            raise ConfigError(f"max_depth must be positive, got {self.max_depth}")
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}"
            )

    def build_registry(self, signals=None) -> NativeRegistry:
        """Registry holding only the configured standard modules."""
        return NativeRegistry.with_standard_library(signals=signals, modules=self.modules)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ApexConfig":
        """Build a config from parsed YAML, validating keys and types."""
        if not isinstance(data, dict):
            raise ConfigError(f"expected mapping at root, got {type(data).__name__}")

        allowed = {"modules", "max_depth", "log_level"}
        extra = sorted(set(data) - allowed)
        if extra:
            raise ConfigError(f"unknown config key(s): {', '.join(map(str, extra))}")

        kwargs: Dict[str, Any] = {}
        if "modules" in data:
            modules = data["modules"]
            if not isinstance(modules, list) or not all(isinstance(m, str) for m in modules):
                raise ConfigError("modules must be a list of module names")
            kwargs["modules"] = modules
        if "max_depth" in data:
            max_depth = data["max_depth"]
            if isinstance(max_depth, bool) or not isinstance(max_depth, int):
                raise ConfigError(f"max_depth must be an integer, got {max_depth!r}")
            kwargs["max_depth"] = max_depth
        if "log_level" in data:
            log_level = data["log_level"]
            if not isinstance(log_level, str):
                raise ConfigError(f"log_level must be a string, got {log_level!r}")
            kwargs["log_level"] = log_level
        return cls(**kwargs)


def load_config(path: Union[str, Path]) -> ApexConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        The parsed configuration; an empty file yields the defaults

    Raises:
        ConfigError: If the file is missing, malformed or invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fp:
            data = yaml.safe_load(fp)
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML parse error in {config_path}: {e}") from e

    if data is None:
        data = {}
    config = ApexConfig.from_dict(data)
    logger.debug("loaded config from %s: %s", config_path, config)
    return config


def save_config(config: ApexConfig, path: Union[str, Path]) -> None:
    """Write configuration to a YAML file."""
    config_path = Path(path)
    with config_path.open("w", encoding="utf-8") as fp:
        yaml.safe_dump(config.to_dict(), fp, sort_keys=False)


def config_from_env(environ: Optional[Dict[str, str]] = None) -> ApexConfig:
    """Load the file named by APEXLANG_CONFIG, or return the defaults."""
    env = os.environ if environ is None else environ
    path = env.get(CONFIG_ENV_VAR)
    if path:
        return load_config(path)
    return ApexConfig()
