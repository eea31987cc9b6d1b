"""
Installer lifecycle.

    IDLE --onboot--> REGISTERED --GET /--> CONFIGURING --POST /setup--> DESTROYED

The controller never remembers which state it is in. The boot path and the
serving path are separate invocations, and the serving process may be fresh
after a reboot, so the state is read back from disk whenever it is needed.
Only the run mode of the current invocation decides whether a successful
setup also tears the installer down.
"""

import logging
from typing import Optional

from dokku_installer import __version__
from dokku_installer.common.boot import is_registered, register_for_boot
from dokku_installer.common.config import InstallerConfig
from dokku_installer.common.detection import LifecycleState, RunMode, detect_lifecycle_state
from dokku_installer.common.errors import BootRegistrationError, ProbeError
from dokku_installer.common.network import resolve_admin_key, resolve_hostname
from dokku_installer.web.finalize import SetupRequest, TeardownResult, commit_setup, run_teardown

log = logging.getLogger(__name__)


class InstallerLifecycle:
    """Drives the installer from boot registration to self-destruction."""

    def __init__(self, config: InstallerConfig, mode: RunMode = RunMode.SERVE):
        self.config = config
        self.mode = mode

    @property
    def state(self) -> LifecycleState:
        state, _ = detect_lifecycle_state(self.config)
        return state

    @property
    def self_destructs(self) -> bool:
        return self.mode is RunMode.SELFDESTRUCT

    def on_boot(self, argv0: Optional[str] = None) -> int:
        """
        Install the boot service and nginx rule.

        Returns:
            Exit code (0 = success)
        """
        try:
            register_for_boot(self.config, argv0)
        except BootRegistrationError as e:
            log.error("Boot registration failed: %s", e)
            return 1
        return 0

    def form_defaults(self) -> dict:
        """Best-effort values for the setup form; a failed probe leaves a blank."""
        try:
            admin_key = resolve_admin_key(self.config)
        except ProbeError as e:
            log.warning("No default admin key: %s", e)
            admin_key = ''

        try:
            hostname = resolve_hostname(self.config)
        except ProbeError as e:
            log.warning("No default hostname: %s", e)
            hostname = ''

        return {
            'version': __version__,
            'admin_key': admin_key,
            'hostname': hostname,
        }

    def submit(self, request: SetupRequest) -> list[TeardownResult]:
        """
        Commit a setup submission and, in selfdestruct mode, tear down.

        Returns:
            Teardown results; empty when this invocation does not self-destruct

        Raises:
            ConfigWriteError: the setup was not (fully) committed
        """
        commit_setup(self.config, request)

        if not self.self_destructs:
            return []

        log.info("Setup complete, removing installer")
        return run_teardown(self.config)

    def serving_state(self) -> LifecycleState:
        """State as seen by a request: the form is up unless setup already tore us down."""
        state = self.state
        if state is LifecycleState.DESTROYED:
            return state
        return LifecycleState.CONFIGURING

    def status(self) -> dict:
        return {
            'state': self.serving_state().value,
            'registered': is_registered(self.config),
            'mode': self.mode.value,
            'version': __version__,
        }
