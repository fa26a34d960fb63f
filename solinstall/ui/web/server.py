"""
Web server — Flask app factory for the install API.

One ``SolutionInstaller`` lives on the app for the process lifetime so
that its per-solution locks reject overlapping installs across requests.
"""

from __future__ import annotations

import logging

from flask import Flask

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.config.registry import SolutionRegistry
from solinstall.core.config.settings import InstallerSettings, load_settings
from solinstall.core.engine.orchestrator import SolutionInstaller

logger = logging.getLogger(__name__)


def create_app(
    settings: InstallerSettings | None = None,
    registry: SolutionRegistry | None = None,
    runner: CommandRunner | None = None,
) -> Flask:
    """Create and configure the Flask application.

    Args:
        settings: Installer settings (default: from environment).
        registry: Solution registry (default: per settings / built-in).
        runner: Command runner (tests pass a mock).
    """
    from solinstall.core.use_cases.install import resolve_registry

    settings = settings or load_settings()
    registry = registry or resolve_registry(settings=settings)

    app = Flask(__name__)
    app.config["SETTINGS"] = settings
    app.config["REGISTRY"] = registry
    app.config["INSTALLER"] = SolutionInstaller(registry, settings, runner=runner)

    from solinstall.ui.web.routes_solutions import solutions_bp

    app.register_blueprint(solutions_bp, url_prefix="/api")

    logger.debug("Web app created (workspace=%s)", settings.workspace_root)
    return app


def run_server(
    app: Flask,
    host: str = "127.0.0.1",
    port: int = 8000,
    debug: bool = False,
) -> None:
    """Run the Flask development server."""
    logger.info("Starting install API on %s:%d", host, port)
    app.run(host=host, port=port, debug=debug, use_reloader=False, threaded=True)
