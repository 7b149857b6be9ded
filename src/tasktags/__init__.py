"""tasktags - mutation and consistency engine for tag-partitioned task stores."""

from tasktags.config import EngineConfig, get_config, set_config
from tasktags.core.engine import EngineContext

__all__ = [
    "EngineConfig",
    "EngineContext",
    "get_config",
    "set_config",
]
