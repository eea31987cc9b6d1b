"""
Installer configuration.

All paths the installer touches are fixed. Only the Dokku root directory can
be moved, through the DOKKU_ROOT environment variable. The values are
gathered once at startup into an InstallerConfig and handed to every
component.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DOKKU_ROOT_ENV = 'DOKKU_ROOT'
DEFAULT_DOKKU_ROOT = Path('/home/dokku')

ROOT_KEYS_PATH = Path('/root/.ssh/authorized_keys')

SERVICE_NAME = 'dokku-installer'
SERVICE_FILE_PATH = Path('/etc/systemd/system/dokku-installer.service')
SERVICE_WANTS_DIR = Path('/etc/systemd/system/multi-user.target.wants')

NGINX_CONF_PATH = Path('/etc/nginx/conf.d/dokku-installer.conf')
NGINX_SITES_ENABLED = Path('/etc/nginx/sites-enabled')

# The wizard itself; port 80 only reaches it through the nginx rule
LISTEN_PORT = 2000

EXTERNAL_IP_URL = 'http://icanhazip.com'
REQUEST_TIMEOUT = 10  # seconds

DNS_LOOKUP_COMMAND = ('dig', '+short')
ACL_ADD_COMMAND = ('sshcommand', 'acl-add', 'dokku', 'admin')
PROXY_RESTART_COMMAND = ('systemctl', 'restart', 'nginx')
# --no-block: the unit being stopped may be the process issuing the command
SERVICE_STOP_COMMAND = ('systemctl', 'stop', '--no-block', SERVICE_NAME)


@dataclass(frozen=True)
class InstallerConfig:
    """Paths, commands and ports used by the installer."""
    dokku_root: Path = DEFAULT_DOKKU_ROOT
    authorized_keys: Path = ROOT_KEYS_PATH
    service_name: str = SERVICE_NAME
    service_file: Path = SERVICE_FILE_PATH
    service_wants_dir: Path = SERVICE_WANTS_DIR
    nginx_conf: Path = NGINX_CONF_PATH
    nginx_sites_enabled: Path = NGINX_SITES_ENABLED
    listen_port: int = LISTEN_PORT
    external_ip_url: str = EXTERNAL_IP_URL
    request_timeout: float = REQUEST_TIMEOUT
    dns_lookup_command: tuple[str, ...] = DNS_LOOKUP_COMMAND
    acl_add_command: tuple[str, ...] = ACL_ADD_COMMAND
    proxy_restart_command: tuple[str, ...] = PROXY_RESTART_COMMAND
    service_stop_command: tuple[str, ...] = SERVICE_STOP_COMMAND

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'InstallerConfig':
        """Build the configuration, honouring DOKKU_ROOT when it is set."""
        if environ is None:
            environ = os.environ
        root = environ.get(DOKKU_ROOT_ENV, '')
        return cls(dokku_root=Path(root) if root else DEFAULT_DOKKU_ROOT)

    @property
    def hostname_file(self) -> Path:
        return self.dokku_root / 'HOSTNAME'

    @property
    def vhost_file(self) -> Path:
        return self.dokku_root / 'VHOST'

    @property
    def service_link(self) -> Path:
        """Enablement link that makes systemd start the unit at boot."""
        return self.service_wants_dir / self.service_file.name
