"""
Boot registration for the Dokku installer.

Run once in "onboot" mode. Installs the two artifacts that keep the wizard
alive and reachable across a reboot:
- a systemd unit that re-runs this program in "selfdestruct" mode
- an nginx rule sending port 80 to the wizard's own port

Every other enabled nginx site is removed so nothing competes for port 80.
"""

import logging
import os
import shlex
import shutil
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import InstallerConfig
from .detection import RunMode
from .errors import BootRegistrationError
from .utils import write_file

log = logging.getLogger(__name__)

SERVICE_UNIT_TEMPLATE = """[Unit]
Description=Dokku web installer
After=network.target nginx.service

[Service]
ExecStart={exec_start}
Restart=on-failure

[Install]
WantedBy=multi-user.target
"""

PROXY_CONFIG_TEMPLATE = """upstream dokku-installer {{ server 127.0.0.1:{port}; }}
server {{
    listen 80;
    location / {{
        proxy_pass http://dokku-installer;
    }}
}}
"""


def resolve_exec_command(argv0: Optional[str] = None) -> list[str]:
    """Return the command that starts the program currently running.

    When started through the installed console script that script's absolute
    path is used; otherwise (``python -m``, a checkout) the interpreter is
    asked to run the package as a module.

    Raises:
        BootRegistrationError: no usable executable could be determined
    """
    if argv0 is None:
        argv0 = sys.argv[0] if sys.argv else ''

    if argv0 and not argv0.endswith('.py'):
        found = shutil.which(argv0)
        if found:
            return [os.path.realpath(found)]

    if not sys.executable:
        raise BootRegistrationError('Cannot determine the running executable')
    return [os.path.realpath(sys.executable), '-m', 'dokku_installer']


def render_service_unit(command: Sequence[str]) -> str:
    """Render the systemd unit that relaunches command in selfdestruct mode."""
    exec_start = shlex.join([*command, RunMode.SELFDESTRUCT.value])
    return SERVICE_UNIT_TEMPLATE.format(exec_start=exec_start)


def render_proxy_config(port: int) -> str:
    """Render the nginx rule forwarding port 80 to the wizard."""
    return PROXY_CONFIG_TEMPLATE.format(port=port)


def is_registered(config: InstallerConfig) -> bool:
    """Check that both the boot service and the proxy rule are installed."""
    return config.service_file.exists() and config.nginx_conf.exists()


def _write_service(config: InstallerConfig, command: Sequence[str]) -> None:
    """Write the unit and link it into multi-user.target.wants."""
    try:
        config.service_file.parent.mkdir(parents=True, exist_ok=True)
        write_file(config.service_file, render_service_unit(command))

        link = config.service_link
        link.parent.mkdir(parents=True, exist_ok=True)
        if link.is_symlink() or link.exists():
            link.unlink()
        link.symlink_to(config.service_file)
    except OSError as e:
        raise BootRegistrationError(f'Cannot install boot service: {e}') from e


def _write_proxy_rule(config: InstallerConfig) -> None:
    try:
        config.nginx_conf.parent.mkdir(parents=True, exist_ok=True)
        write_file(config.nginx_conf, render_proxy_config(config.listen_port))
    except OSError as e:
        raise BootRegistrationError(f'Cannot write nginx config: {e}') from e


def _disable_enabled_sites(sites_dir: Path) -> list[str]:
    """Remove every enabled nginx site; return the names removed.

    A site that cannot be removed is logged and skipped.
    """
    try:
        entries = sorted(sites_dir.iterdir())
    except OSError as e:
        raise BootRegistrationError(f'Cannot list {sites_dir}: {e}') from e

    removed = []
    for entry in entries:
        try:
            entry.unlink()
            removed.append(entry.name)
        except OSError as e:
            log.warning("Could not disable nginx site %s: %s", entry, e)
    return removed


def register_for_boot(config: InstallerConfig, argv0: Optional[str] = None) -> None:
    """
    Install the boot service and the nginx rule for the installer.

    Args:
        config: Installer configuration
        argv0: Program name to resolve (defaults to sys.argv[0])

    Raises:
        BootRegistrationError: any of the artifacts could not be installed
    """
    command = resolve_exec_command(argv0)
    _write_service(config, command)
    _write_proxy_rule(config)

    removed = _disable_enabled_sites(config.nginx_sites_enabled)
    if removed:
        log.info("Disabled nginx sites: %s", ', '.join(removed))

    log.info("Installed systemd service and default nginx virtualhost "
             "for installer to run on boot.")
