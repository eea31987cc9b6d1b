#!/usr/bin/env python3
"""
Dokku Web Installer - Flask Application

Serves the one-page setup form:
- GET  /            form, pre-filled with the admin key and hostname
- POST /setup       commit the form (and self-destruct in selfdestruct mode)
- GET  /api/status  lifecycle state for scripts watching the installer

Run with "onboot" to install the boot service and nginx rule instead of
serving.
"""

import argparse
import logging
import sys
from typing import Optional

from flask import Flask, Response, jsonify, render_template, request

from dokku_installer import __version__
from dokku_installer.common.config import InstallerConfig
from dokku_installer.common.detection import RunMode
from dokku_installer.common.errors import ConfigWriteError
from dokku_installer.common.network import is_ip_address
from dokku_installer.lifecycle import InstallerLifecycle
from dokku_installer.web.finalize import SetupRequest

log = logging.getLogger(__name__)

# Where the browser is sent once setup succeeded
DEPLOY_DOCS_URL = 'http://dokku.viewdocs.io/dokku/deployment/application-deployment/'


def _text_response(body: str, status: int = 200) -> Response:
    return Response(body, status=status, mimetype='text/plain')


def create_app(installer_config: Optional[InstallerConfig] = None,
               mode: RunMode = RunMode.SERVE,
               config: Optional[dict] = None) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        installer_config: Paths and commands (defaults to the environment)
        mode: Run mode of this invocation
        config: Optional Flask configuration overrides

    Returns:
        Configured Flask application
    """
    app = Flask(__name__, template_folder='templates')

    if config:
        app.config.update(config)

    if installer_config is None:
        installer_config = InstallerConfig.from_env()
    lifecycle = InstallerLifecycle(installer_config, mode)

    # Store in app context
    app.lifecycle = lifecycle

    @app.errorhandler(405)
    def method_not_allowed(e):
        response = _text_response('Method not allowed', 405)
        if getattr(e, 'valid_methods', None):
            response.headers['Allow'] = ', '.join(e.valid_methods)
        return response

    @app.route('/')
    def index():
        """Setup form."""
        defaults = lifecycle.form_defaults()
        return render_template(
            'index.html',
            version=defaults['version'],
            admin_key=defaults['admin_key'],
            hostname=defaults['hostname'],
            hostname_is_ip=is_ip_address(defaults['hostname']),
            docs_url=DEPLOY_DOCS_URL,
        )

    @app.route('/setup', methods=['POST'], provide_automatic_options=False)
    def setup():
        """Commit the submitted form."""
        setup_request = SetupRequest.from_form(request.form)
        try:
            results = lifecycle.submit(setup_request)
        except ConfigWriteError as e:
            return _text_response(str(e), 500)

        failed = [r.step_id for r in results if not r.ok]
        if failed:
            log.warning("Installer teardown incomplete: %s", ', '.join(failed))
        return _text_response('OK')

    @app.route('/api/status')
    def api_status():
        return jsonify(lifecycle.status())

    return app


def run_server(installer_config: InstallerConfig, mode: RunMode, host: str = '0.0.0.0'):
    """
    Run the web installer server.

    Args:
        installer_config: Installer configuration
        mode: Run mode of this invocation
        host: Bind address
    """
    app = create_app(installer_config, mode)
    app.run(host=host, port=installer_config.listen_port, threaded=True)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Dokku Web Installer')
    parser.add_argument('mode', nargs='?', default=None,
                        help="'onboot' installs the boot service and exits, "
                             "'selfdestruct' removes the installer after setup")
    parser.add_argument('--host', default='0.0.0.0', help='Bind address')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    installer_config = InstallerConfig.from_env()
    mode = RunMode.from_arg(args.mode)

    if mode is RunMode.ONBOOT:
        return InstallerLifecycle(installer_config, mode).on_boot()

    log.info("Starting Dokku Installer %s on http://%s:%d/ (%s)",
             __version__, args.host, installer_config.listen_port, mode.value)
    try:
        run_server(installer_config, mode, args.host)
    except OSError as e:
        log.error("Installer server stopped: %s", e)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
