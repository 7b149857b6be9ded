"""Configuration package for tasktags.

Sub-modules:
    parsing    – Boolean/number/log-level parsing helpers
    domains    – LockSettings, RetrySettings, BreakerSettings, RecoverySettings
    settings   – EngineConfig dataclass, get_config/set_config globals
    loader     – EngineConfig loading/validation mixin (_EngineConfigLoader)
"""

from tasktags.config.domains import (  # noqa: F401
    BreakerSettings,
    LockSettings,
    RecoverySettings,
    ResilienceSettings,
    RetrySettings,
)
from tasktags.config.parsing import (  # noqa: F401
    _parse_bool,
    _try_parse_bool,
)
from tasktags.config.settings import (  # noqa: F401
    _PACKAGE_VERSION,
    DEFAULT_TAG,
    DEFAULT_TASKS_FILE,
    EngineConfig,
    get_config,
    set_config,
)
