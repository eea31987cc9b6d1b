"""
Environment probes for the Dokku installer.

Handles:
- Externally reachable hostname (local hostname, else public IP)
- Admin SSH key lookup

Every probe is read-only. Failures raise ProbeError; the web form treats
that as "leave the field blank".
"""

import ipaddress
import logging
import socket
import urllib.error
import urllib.request

from .config import InstallerConfig
from .errors import ProbeError
from .utils import run_command

log = logging.getLogger(__name__)


def resolve_admin_key(config: InstallerConfig) -> str:
    """Return the first authorized key of the admin account.

    Raises:
        ProbeError: the authorized keys file cannot be read
    """
    try:
        keys = config.authorized_keys.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ProbeError(f'Cannot read {config.authorized_keys}: {e}') from e

    lines = keys.splitlines()
    return lines[0].strip() if lines else ''


def hostname_resolves(config: InstallerConfig, hostname: str) -> bool:
    """Check that hostname resolves through a DNS lookup."""
    ok, out, err = run_command(
        [*config.dns_lookup_command, hostname],
        timeout=config.request_timeout,
    )
    if not ok:
        log.debug("DNS lookup for %s failed: %s", hostname, err)
        return False
    # dig +short exits 0 on NXDOMAIN, an empty answer means no record
    return bool(out)


def get_external_ip(config: InstallerConfig) -> str:
    """Ask a public "what is my IP" service for our address.

    Raises:
        ProbeError: the service could not be reached or answered nothing
    """
    req = urllib.request.Request(
        config.external_ip_url, headers={'User-Agent': 'Dokku-Installer'}
    )
    try:
        with urllib.request.urlopen(req, timeout=config.request_timeout) as response:
            body = response.read().decode('utf-8', errors='replace')
    except (urllib.error.URLError, OSError, ValueError) as e:
        raise ProbeError(f'Cannot reach {config.external_ip_url}: {e}') from e

    address = body.strip()
    if not address:
        raise ProbeError(f'Empty answer from {config.external_ip_url}')
    return address


def resolve_hostname(config: InstallerConfig) -> str:
    """
    Return the name this host is reachable under.

    The local hostname wins when it is set and resolves; otherwise the
    public IP reported by the external service is used.

    Raises:
        ProbeError: neither source produced a value
    """
    try:
        hostname = socket.gethostname()
    except OSError as e:
        log.debug("gethostname failed: %s", e)
        hostname = ''

    if hostname and hostname_resolves(config, hostname):
        return hostname

    return get_external_ip(config)


def is_ip_address(value: str) -> bool:
    """Check if value is a literal IPv4/IPv6 address rather than a name."""
    try:
        ipaddress.ip_address(value.strip())
        return True
    except ValueError:
        return False
