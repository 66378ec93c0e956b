"""
Executor configuration.

An `ExecutorConfig` is an immutable value handed to the executor and the
scratch evaluator; changing a setting means building a new config with
`replace()`. Configs can be loaded from YAML:

    # cadlang.yaml
    max_steps: 20000
    max_call_depth: 32
    collapse_double_negation: true
    fold_negative_literals: true
"""

import dataclasses
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutorConfig:
    """Limits and normalisation defaults for one execution pass."""
    max_steps: int = 100000
    max_call_depth: int = 64
    collapse_double_negation: bool = True
    fold_negative_literals: bool = True

    def __post_init__(self):
        for name in ("max_steps", "max_call_depth"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        for name in ("collapse_double_negation", "fold_negative_literals"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise ValueError(f"{name} must be true or false, got {value!r}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ExecutorConfig":
        """Build a config from a mapping, ignoring (and logging) unknown keys."""
        known = {f.name for f in dataclasses.fields(cls)}
        values = {}
        for key, value in data.items():
            if key in known:
                values[key] = value
            else:
                logger.warning("ignoring unknown configuration key %r", key)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    def replace(self, **changes: Any) -> "ExecutorConfig":
        return dataclasses.replace(self, **changes)


DEFAULT_CONFIG = ExecutorConfig()


def load_config(path: Union[str, Path]) -> ExecutorConfig:
    """
    Load an ExecutorConfig from a YAML file.

    An empty file yields the defaults.

    Raises:
        ValueError: If the document is not a mapping or holds invalid values
    """
    path = Path(path)
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: configuration must be a mapping, got {type(data).__name__}")
    config = ExecutorConfig.from_dict(data)
    logger.debug("loaded configuration from %s: %s", path, config)
    return config
