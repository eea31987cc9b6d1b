"""Shared test fixtures: an installer configuration rooted in tmp_path."""

from __future__ import annotations

import shlex
from pathlib import Path

import pytest

from dokku_installer.common.boot import register_for_boot
from dokku_installer.common.config import InstallerConfig

ADMIN_KEY = "ssh-rsa AAAAB3NzaC1yc2EAAAADAQABAAABAQC7 admin@example.com"


@pytest.fixture
def acl_input(tmp_path: Path) -> Path:
    """File receiving whatever the fake ACL tool reads on stdin."""
    return tmp_path / "acl-input"


@pytest.fixture
def installer_config(tmp_path: Path, acl_input: Path) -> InstallerConfig:
    """Return a configuration whose paths and commands are all harmless."""
    dokku_root = tmp_path / "home" / "dokku"
    dokku_root.mkdir(parents=True)
    sites_enabled = tmp_path / "nginx" / "sites-enabled"
    sites_enabled.mkdir(parents=True)
    ssh_dir = tmp_path / "root" / ".ssh"
    ssh_dir.mkdir(parents=True)

    return InstallerConfig(
        dokku_root=dokku_root,
        authorized_keys=ssh_dir / "authorized_keys",
        service_file=tmp_path / "systemd" / "dokku-installer.service",
        service_wants_dir=tmp_path / "systemd" / "multi-user.target.wants",
        nginx_conf=tmp_path / "nginx" / "conf.d" / "dokku-installer.conf",
        nginx_sites_enabled=sites_enabled,
        # Unroutable; tests that need the public IP patch the probe
        external_ip_url="http://192.0.2.1/",
        request_timeout=1,
        dns_lookup_command=("echo",),
        acl_add_command=("sh", "-c", f"cat > {shlex.quote(str(acl_input))}"),
        proxy_restart_command=("true",),
        service_stop_command=("true",),
    )


@pytest.fixture
def registered(installer_config: InstallerConfig) -> InstallerConfig:
    """Configuration after the onboot step installed its artifacts."""
    register_for_boot(installer_config, argv0="dokku-installer.py")
    return installer_config
