"""Tests for the Flask front end and the command line entry point."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from types import SimpleNamespace

import pytest

from dokku_installer import lifecycle as lifecycle_module
from dokku_installer.common.config import InstallerConfig
from dokku_installer.common.detection import RunMode
from dokku_installer.common.errors import ProbeError
from dokku_installer.web import app as app_module
from dokku_installer.web.app import create_app

from .conftest import ADMIN_KEY

EXAMPLE_FORM = {"hostname": "example.com", "vhost": "true", "key": ADMIN_KEY}


@pytest.fixture(autouse=True)
def offline_hostname(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never reach out to the network while rendering the form."""
    monkeypatch.setattr(lifecycle_module, "resolve_hostname", lambda config: "dokku.example.com")


def _client(config: InstallerConfig, mode: RunMode = RunMode.SERVE):
    return create_app(config, mode, {"TESTING": True}).test_client()


class TestIndex:
    def test_form_is_prefilled(self, installer_config: InstallerConfig) -> None:
        installer_config.authorized_keys.write_text(ADMIN_KEY + "\n")

        response = _client(installer_config).get("/")

        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert f'id="key">{ADMIN_KEY}</textarea>' in body
        assert 'value="dokku.example.com"' in body
        assert "Dokku Setup" in body

    def test_probe_failures_render_blank_fields(
        self, monkeypatch: pytest.MonkeyPatch, installer_config: InstallerConfig
    ) -> None:
        def offline(config):
            raise ProbeError("offline")

        monkeypatch.setattr(lifecycle_module, "resolve_hostname", offline)

        response = _client(installer_config).get("/")

        assert response.status_code == 200
        body = response.get_data(as_text=True)
        assert 'id="key"></textarea>' in body
        assert 'name="hostname" value=""' in body

    def test_ip_hostname_shows_hint(
        self, monkeypatch: pytest.MonkeyPatch, installer_config: InstallerConfig
    ) -> None:
        monkeypatch.setattr(lifecycle_module, "resolve_hostname", lambda config: "203.0.113.7")

        body = _client(installer_config).get("/").get_data(as_text=True)

        assert "public IP was filled in" in body


class TestSetup:
    @pytest.mark.parametrize("method", ["get", "put", "patch", "delete", "options"])
    def test_non_post_is_rejected(
        self, method: str, registered: InstallerConfig, acl_input: Path
    ) -> None:
        client = _client(registered, RunMode.SELFDESTRUCT)

        response = getattr(client, method)("/setup", data=EXAMPLE_FORM)

        assert response.status_code == 405
        assert "POST" in response.headers["Allow"]
        assert not registered.hostname_file.exists()
        assert not registered.vhost_file.exists()
        assert not acl_input.exists()
        assert registered.service_file.exists()
        assert registered.nginx_conf.exists()

    def test_selfdestruct_submission(self, registered: InstallerConfig, acl_input: Path) -> None:
        response = _client(registered, RunMode.SELFDESTRUCT).post("/setup", data=EXAMPLE_FORM)

        assert response.status_code == 200
        assert registered.hostname_file.read_text() == "example.com"
        assert registered.vhost_file.read_text() == "example.com"
        assert acl_input.read_text() == ADMIN_KEY
        assert not registered.service_file.exists()
        assert not registered.nginx_conf.exists()

    def test_selfdestruct_survives_failed_proxy_restart(self, registered: InstallerConfig) -> None:
        config = dataclasses.replace(registered, proxy_restart_command=("false",))

        response = _client(config, RunMode.SELFDESTRUCT).post("/setup", data=EXAMPLE_FORM)

        assert response.status_code == 200
        assert not config.service_file.exists()
        assert not config.nginx_conf.exists()

    def test_serve_mode_submission_keeps_installer(self, registered: InstallerConfig) -> None:
        registered.vhost_file.write_text("old.example.com")
        form = {"hostname": " example.com ", "key": ADMIN_KEY}

        response = _client(registered).post("/setup", data=form)

        assert response.status_code == 200
        assert registered.hostname_file.read_text() == "example.com"
        assert not registered.vhost_file.exists()
        assert registered.service_file.exists()
        assert registered.nginx_conf.exists()

    def test_first_submission_without_vhost_fails(
        self, registered: InstallerConfig, acl_input: Path
    ) -> None:
        form = {"hostname": "example.com", "key": ADMIN_KEY}

        response = _client(registered, RunMode.SELFDESTRUCT).post("/setup", data=form)

        assert response.status_code == 500
        assert response.mimetype == "text/plain"
        assert "VHOST" in response.get_data(as_text=True)
        assert not acl_input.exists()
        # No teardown on failure, the operator can retry
        assert registered.service_file.exists()
        assert registered.nginx_conf.exists()

    def test_blank_submission_keeps_installer(
        self, registered: InstallerConfig, acl_input: Path
    ) -> None:
        form = {"hostname": "   ", "vhost": "true", "key": ""}

        response = _client(registered, RunMode.SELFDESTRUCT).post("/setup", data=form)

        assert response.status_code == 500
        assert "cannot be blank" in response.get_data(as_text=True)
        assert not registered.hostname_file.exists()
        assert not acl_input.exists()
        assert registered.service_file.exists()
        assert registered.nginx_conf.exists()


def test_api_status(registered: InstallerConfig) -> None:
    response = _client(registered, RunMode.SELFDESTRUCT).get("/api/status")

    assert response.status_code == 200
    assert response.get_json()["state"] == "configuring"
    assert response.get_json()["mode"] == "selfdestruct"


class TestMain:
    @pytest.fixture
    def env_config(self, monkeypatch: pytest.MonkeyPatch, installer_config: InstallerConfig):
        monkeypatch.setattr(
            app_module, "InstallerConfig", SimpleNamespace(from_env=lambda: installer_config)
        )
        return installer_config

    def test_onboot_registers_and_exits(
        self, monkeypatch: pytest.MonkeyPatch, env_config: InstallerConfig
    ) -> None:
        def no_server(*args, **kwargs):
            raise AssertionError("onboot must not start the server")

        monkeypatch.setattr(app_module, "run_server", no_server)

        assert app_module.main(["onboot"]) == 0
        assert env_config.service_file.exists()
        assert env_config.nginx_conf.exists()

    def test_onboot_failure_exits_one(self, env_config: InstallerConfig) -> None:
        env_config.nginx_sites_enabled.rmdir()
        assert app_module.main(["onboot"]) == 1

    @pytest.mark.parametrize(
        ("argv", "mode"),
        [([], RunMode.SERVE), (["selfdestruct"], RunMode.SELFDESTRUCT)],
    )
    def test_serving_modes(
        self, monkeypatch: pytest.MonkeyPatch, env_config: InstallerConfig, argv, mode
    ) -> None:
        calls = []
        monkeypatch.setattr(
            app_module, "run_server", lambda config, run_mode, host: calls.append((run_mode, host))
        )

        assert app_module.main(argv) == 0
        assert calls == [(mode, "0.0.0.0")]

    def test_server_error_exits_one(
        self, monkeypatch: pytest.MonkeyPatch, env_config: InstallerConfig
    ) -> None:
        def port_taken(*args, **kwargs):
            raise OSError("Address already in use")

        monkeypatch.setattr(app_module, "run_server", port_taken)
        assert app_module.main(["--host", "127.0.0.1"]) == 1
