"""Configuration management for the CLI"""

import yaml
from pathlib import Path
from typing import Dict, Optional, Any
from dataclasses import dataclass, asdict, replace

from .exceptions import ConfigError
from .log import logger


DEFAULT_CONFIG_PATH = Path.home() / '.kube-multitail' / 'config.yaml'
DEFAULT_OUTPUT_FILE = "tail_multiple_logs_data.log"


@dataclass
class Config:
    """Defaults for a tail run; command-line options take precedence"""
    namespace: Optional[str] = None
    context: Optional[str] = None
    kubectl: str = "kubectl"
    output_file: str = DEFAULT_OUTPUT_FILE
    concurrency_limit: int = 10
    grace_period: float = 5.0
    spinner_interval: float = 0.1
    color: bool = True

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for YAML serialization"""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Config':
        """Create config from dictionary, ignoring unknown keys"""
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        unknown = sorted(set(data) - set(known))
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")
        config = cls(**known)
        config.validate()
        return config

    def validate(self):
        if not isinstance(self.concurrency_limit, int) or self.concurrency_limit < 1:
            raise ConfigError(
                f"concurrency_limit must be a positive integer, got {self.concurrency_limit!r}",
                {"field": "concurrency_limit"}
            )
        for name in ('grace_period', 'spinner_interval'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value <= 0:
                raise ConfigError(f"{name} must be a positive number, got {value!r}", {"field": name})
        if not self.kubectl:
            raise ConfigError("kubectl must not be empty", {"field": "kubectl"})

    def merged(self, **overrides) -> 'Config':
        """Copy with every non-None override applied"""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


class ConfigManager:
    """Manages configuration file operations"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)

    def load(self) -> Config:
        """Load configuration from file"""
        if not self.config_path.exists():
            # Return default config
            return Config()

        try:
            with open(self.config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config {self.config_path}: {e}")
            return Config()

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {self.config_path}: expected a mapping")
            return Config()
        return Config.from_dict(data)

