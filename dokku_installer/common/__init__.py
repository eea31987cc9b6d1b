# Dokku Installer Common Utilities
from .config import InstallerConfig
from .detection import LifecycleState, RunMode, detect_lifecycle_state
from .errors import (
    BootRegistrationError,
    ConfigWriteError,
    InstallerError,
    ProbeError,
    TeardownError,
)

__all__ = [
    'InstallerConfig',
    'LifecycleState',
    'RunMode',
    'detect_lifecycle_state',
    'InstallerError',
    'ProbeError',
    'ConfigWriteError',
    'BootRegistrationError',
    'TeardownError',
]
