"""
Lifecycle detection for the Dokku installer.

Nothing about the installer's progress is kept in memory between runs. The
process may have been started fresh after a reboot, so the current state is
always rebuilt from the artifacts on disk:
- boot service unit and its enablement link
- nginx proxy rule
- hostname record written by a completed setup
"""

from enum import Enum
from typing import Optional

from .config import InstallerConfig


class RunMode(Enum):
    """How the program was invoked (first positional argument)."""
    SERVE = "serve"
    ONBOOT = "onboot"
    SELFDESTRUCT = "selfdestruct"

    @classmethod
    def from_arg(cls, arg: Optional[str]) -> 'RunMode':
        """Map the positional argument to a mode; anything unknown serves."""
        if arg == cls.ONBOOT.value:
            return cls.ONBOOT
        if arg == cls.SELFDESTRUCT.value:
            return cls.SELFDESTRUCT
        return cls.SERVE


class LifecycleState(Enum):
    """Installer lifecycle state."""
    IDLE = "idle"                # nothing installed
    REGISTERED = "registered"    # boot service + proxy rule in place
    CONFIGURING = "configuring"  # operator is on the form
    DESTROYED = "destroyed"      # setup committed, artifacts removed


def _check_boot_artifacts(config: InstallerConfig) -> dict:
    """Check which boot-time artifacts are present."""
    return {
        'service_file': config.service_file.exists(),
        'service_link': config.service_link.is_symlink() or config.service_link.exists(),
        'proxy_rule': config.nginx_conf.exists(),
    }


def _check_setup_state(config: InstallerConfig) -> dict:
    """Check the files written by a completed setup."""
    result = {'hostname': None}

    try:
        result['hostname'] = config.hostname_file.read_text().strip() or None
    except (OSError, UnicodeDecodeError):
        pass

    return result


def detect_lifecycle_state(config: InstallerConfig) -> tuple[LifecycleState, dict]:
    """
    Detect where the installer is in its lifecycle.

    Returns:
        Tuple of (LifecycleState enum, dict of detection details)
    """
    details = {
        'artifacts': _check_boot_artifacts(config),
        'setup': _check_setup_state(config),
    }

    # 1. Any artifact left means the wizard may still come up on boot,
    #    including a teardown that only partly succeeded
    if any(details['artifacts'].values()):
        return LifecycleState.REGISTERED, details

    # 2. Artifacts gone after a committed setup
    if details['setup']['hostname']:
        return LifecycleState.DESTROYED, details

    return LifecycleState.IDLE, details
