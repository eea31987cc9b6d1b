"""
Dokku Installer - Finalization Pipeline

Two ordered step lists:
- setup steps commit the operator's form (hostname, vhost marker, SSH key).
  The first failure aborts the rest; nothing already written is rolled back.
- teardown steps remove the installer's own boot service and nginx rule
  after a successful setup in selfdestruct mode. Every step runs, failures
  are logged and recorded.

The public API is:
- SetupRequest: the validated form values
- get_setup_steps() / commit_setup(config, request)
- get_teardown_steps() / run_teardown(config)
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from dokku_installer.common.config import InstallerConfig
from dokku_installer.common.errors import ConfigWriteError, TeardownError
from dokku_installer.common.utils import describe_failure, run_command, write_file

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupRequest:
    """Values submitted through the setup form."""
    hostname: str
    use_vhost: bool
    ssh_key: str

    @classmethod
    def from_form(cls, form: Mapping[str, str]) -> 'SetupRequest':
        return cls(
            hostname=form.get('hostname', '').strip(),
            use_vhost=form.get('vhost') == 'true',
            ssh_key=form.get('key', '').strip(),
        )

    def validate(self) -> None:
        """Reject a blank hostname or key."""
        if not self.ssh_key:
            raise ConfigWriteError("Your admin public key cannot be blank.")
        if not self.hostname:
            raise ConfigWriteError("Your hostname cannot be blank.")


@dataclass
class TeardownResult:
    """Outcome of a single teardown step."""
    step_id: str
    name: str
    ok: bool
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Setup steps
# ---------------------------------------------------------------------------

def _setup_hostname(config: InstallerConfig, request: SetupRequest) -> None:
    """Write DOKKU_ROOT/HOSTNAME."""
    try:
        write_file(config.hostname_file, request.hostname)
    except OSError as e:
        raise ConfigWriteError(str(e)) from e


def _setup_vhost(config: InstallerConfig, request: SetupRequest) -> None:
    """Write or remove DOKKU_ROOT/VHOST.

    Removing a marker that was never written fails the setup, like any
    other filesystem error.
    """
    try:
        if request.use_vhost:
            write_file(config.vhost_file, request.hostname)
        else:
            config.vhost_file.unlink()
    except OSError as e:
        raise ConfigWriteError(str(e)) from e


def _setup_ssh_key(config: InstallerConfig, request: SetupRequest) -> None:
    """Grant the key admin access by piping it into the ACL tool."""
    cmd = list(config.acl_add_command)
    try:
        proc = subprocess.Popen(
            cmd,
            bufsize=0,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
        )
    except OSError as e:
        raise ConfigWriteError(f"Cannot run {cmd[0]}: {e}") from e

    # Exiting the with-block closes the pipes and waits for the process,
    # also when the write or close below fails
    with proc:
        try:
            proc.stdin.write(request.ssh_key.encode('utf-8'))
            proc.stdin.close()
        except OSError as e:
            proc.kill()
            raise ConfigWriteError(f"Cannot send key to {cmd[0]}: {e}") from e

        output = proc.stdout.read().decode('utf-8', errors='replace').strip()
        returncode = proc.wait()

    if returncode != 0:
        raise ConfigWriteError(
            f"{' '.join(cmd)} exited with status {returncode}: {output or 'no output'}"
        )


def get_setup_steps() -> list[tuple[str, str, Callable[[InstallerConfig, SetupRequest], None]]]:
    """Return the setup steps in the order they must run."""
    return [
        ('hostname', 'Writing hostname', _setup_hostname),
        ('vhost', 'Configuring virtualhost naming', _setup_vhost),
        ('ssh_key', 'Granting admin SSH access', _setup_ssh_key),
    ]


def commit_setup(config: InstallerConfig, request: SetupRequest) -> None:
    """
    Commit a setup submission.

    Args:
        config: Installer configuration
        request: Submitted form values

    Raises:
        ConfigWriteError: the request was blank or a step failed; later steps were not run
    """
    request.validate()
    for step_id, step_name, step_func in get_setup_steps():
        log.debug("%s", step_name)
        try:
            step_func(config, request)
        except ConfigWriteError as e:
            log.error("Setup step %s failed: %s", step_id, e)
            raise
    log.info("Setup committed for %s (vhost=%s)", request.hostname, request.use_vhost)


# ---------------------------------------------------------------------------
# Teardown steps
# ---------------------------------------------------------------------------

def _run_or_raise(cmd) -> None:
    ok, out, err = run_command(cmd)
    if not ok:
        raise TeardownError(describe_failure(cmd, out, err))


def _teardown_proxy_rule(config: InstallerConfig) -> None:
    try:
        config.nginx_conf.unlink()
    except OSError as e:
        raise TeardownError(str(e)) from e


def _teardown_proxy_restart(config: InstallerConfig) -> None:
    _run_or_raise(config.proxy_restart_command)


def _teardown_boot_service(config: InstallerConfig) -> None:
    """Remove the unit file and the link that enables it."""
    try:
        config.service_link.unlink(missing_ok=True)
        config.service_file.unlink()
    except OSError as e:
        raise TeardownError(str(e)) from e


def _teardown_service_stop(config: InstallerConfig) -> None:
    _run_or_raise(config.service_stop_command)


def get_teardown_steps() -> list[tuple[str, str, Callable[[InstallerConfig], None]]]:
    """Return the self-destruct steps in the order they run."""
    return [
        ('proxy_rule', 'Removing nginx installer rule', _teardown_proxy_rule),
        ('proxy_restart', 'Restarting nginx', _teardown_proxy_restart),
        ('boot_service', 'Removing boot service', _teardown_boot_service),
        ('service_stop', 'Stopping boot service', _teardown_service_stop),
    ]


def run_teardown(config: InstallerConfig) -> list[TeardownResult]:
    """Run every teardown step; a failing step never stops the next one."""
    results = []
    for step_id, step_name, step_func in get_teardown_steps():
        try:
            step_func(config)
            results.append(TeardownResult(step_id, step_name, ok=True))
        except TeardownError as e:
            log.warning("%s failed: %s", step_name, e)
            results.append(TeardownResult(step_id, step_name, ok=False, error=str(e)))
    return results
