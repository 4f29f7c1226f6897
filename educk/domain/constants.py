"""
Domain Constants: server-wide defaults.

Deployment defaults: port 3044, log level "info", templates/ next to the
process working directory.
"""

# =============================================================================
# Server Defaults
# =============================================================================

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3044
DEFAULT_LOG_LEVEL = "info"
DEFAULT_TEMPLATES_DIR = "templates"
DEFAULT_CONFIG_FILENAME = "default.yaml"

DEFAULT_GRACE_PERIOD = 10.0  # seconds for in-flight requests at shutdown
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds per request
DEFAULT_KEEP_ALIVE_TIMEOUT = 5.0  # seconds an idle connection is kept

MIN_PORT = 1
MAX_PORT = 65535

# =============================================================================
# Environment Variables
# =============================================================================

ENV_LOG = "EDUCK_LOG"
ENV_HOST = "EDUCK_HOST"
ENV_PORT = "EDUCK_PORT"
ENV_TEMPLATES = "EDUCK_TEMPLATES"
ENV_GRACE_PERIOD = "EDUCK_GRACE_PERIOD"
ENV_REQUEST_TIMEOUT = "EDUCK_REQUEST_TIMEOUT"
ENV_CONFIG = "EDUCK_CONFIG"
ENV_ENTSOE_API_KEY = "ENTSOE_API_KEY"

# =============================================================================
# Template Routing
# =============================================================================
# templates/
# ├── index.html      → GET /
# ├── about.html      → GET /about, GET /about.html
# ├── docs/index.html → GET /docs/
# ├── _404.html       → not-found body (internal)
# └── _plot.html      → renewable surplus plot (internal)

INDEX_TEMPLATE = "index.html"
NOT_FOUND_TEMPLATE = "_404.html"
PLOT_TEMPLATE = "_plot.html"
INTERNAL_PREFIX = "_"
DEFAULT_SUFFIX = ".html"
