"""
Terminal Broker for sandboxed CLI assistant sessions.

This service manages the lifecycle of terminal containers:
- One container per session running Claude Code, Gemini CLI or Codex
- Dedicated host port per session for the in-container web terminal
- Persistent host-backed workspace bind-mounted at /workspace
- Sandboxed browsing and reading of workspace files
- Credentials from runtime overrides, Vault or environment variables
- Rehydration of running sessions after a restart
"""

import logging
import os

from flask import Flask, request

# =============================================================================
# Logging Setup
# =============================================================================

from terminal_broker.config.loader import BrokerConfig
from terminal_broker.observability import resolve_log_level, setup_json_logging

setup_json_logging(level=resolve_log_level(BrokerConfig.settings().logging.level))
logger = logging.getLogger("terminal-broker")

# =============================================================================
# Flask Application
# =============================================================================

_static_dir = BrokerConfig.settings().ui.static_dir
if _static_dir:
    # Serve a prebuilt browser UI from the site root
    app = Flask(__name__, static_folder=os.path.abspath(_static_dir), static_url_path="")
else:
    app = Flask(__name__, static_folder=None)

# Initialize rate limiter
from terminal_broker.api.rate_limit import init_limiter
init_limiter(app)

# Initialize Prometheus metrics (auto-instruments all routes, exposes /metrics)
from terminal_broker.observability import init_metrics
init_metrics(app)

# Swagger UI at /apidocs/
from terminal_broker.api.swagger import init_swagger
init_swagger(app)

# =============================================================================
# Import and Initialize Modules
# =============================================================================

from terminal_broker.api.routes import api
from terminal_broker.api.responses import api_error
from terminal_broker.domain.errors import BrokerError

app.register_blueprint(api)

if _static_dir:
    @app.route("/")
    def index():
        return app.send_static_file("index.html")

# Initialize DI container
from terminal_broker.container import ServiceContainer
import terminal_broker.container as container_mod

container = ServiceContainer()
app.extensions["services"] = container
container_mod._global_container = container

# =============================================================================
# Startup Functions
# =============================================================================

def startup(services: ServiceContainer) -> None:
    """
    Connect to the Docker daemon, prepare images and adopt running sessions.

    Raises:
        DaemonUnavailable: If no daemon answers; the process must not start
    """
    runtime = services.runtime
    logger.info(f"Container runtime ready: {type(runtime).__name__}")
    settings = BrokerConfig.settings()

    if settings.sessions.build_images_on_startup:
        services.manager.ensure_images()

    if settings.sessions.reconcile_on_startup:
        services.manager.reconcile()

    logger.info(
        f"Terminal broker ready: workspace root {services.workspaces.root}, "
        f"{len(services.registry)} sessions"
    )


# =============================================================================
# Error Handlers
# =============================================================================

@app.errorhandler(BrokerError)
def handle_broker_error(e: BrokerError) -> tuple:
    """Render domain errors with their HTTP status."""
    if e.status_code >= 500:
        from terminal_broker.observability import ERRORS_TOTAL

        ERRORS_TOTAL.labels(endpoint=request.endpoint or "unknown").inc()
        logger.error(f"{type(e).__name__}: {e}")
    else:
        logger.info(f"{type(e).__name__}: {e}")
    return api_error(str(e), e.status_code)


@app.errorhandler(404)
def handle_not_found(e: Exception) -> tuple:
    """Handle 404 errors."""
    return api_error("Resource not found", 404)


@app.errorhandler(405)
def handle_method_not_allowed(e: Exception) -> tuple:
    return api_error("Method not allowed", 405)


@app.errorhandler(500)
def handle_server_error(e: Exception) -> tuple:
    """Handle 500 errors."""
    from terminal_broker.observability import ERRORS_TOTAL
    ERRORS_TOTAL.labels(endpoint="app_500").inc()
    logger.error(f"Internal server error: {e}")
    return api_error("Internal server error", 500)


# =============================================================================
# Startup
# =============================================================================

# Runs under both gunicorn and direct execution
startup(container)

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "3000")), debug=False, threaded=True)
