"""Gunicorn configuration for the search orchestrator service.

Run with ``gunicorn -c gunicorn_conf.py``. Cloud Run provides a PORT
environment variable; everything else has an environment override.
"""

import multiprocessing
import os

from search_orchestrator.logging import configure_structlog

wsgi_app = "search_orchestrator.server:app"

# Bind configuration
port = os.environ.get("PORT", "8080")
bind = f"0.0.0.0:{port}"

# Worker configuration
# At most two async workers; searches and generation calls are I/O bound
workers = int(os.environ.get("GUNICORN_WORKERS", min(2, multiprocessing.cpu_count())))
worker_class = "uvicorn.workers.UvicornWorker"

# Timeout configuration
# Must outlast the 10-minute SSE ceiling of /search/stream
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "660"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))

# Logging configuration
loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")
accesslog = "-"  # Log to stdout
errorlog = "-"  # Log to stderr

preload_app = True
backlog = 2048

# Recycle workers periodically
max_requests = int(os.environ.get("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.environ.get("GUNICORN_MAX_REQUESTS_JITTER", "50"))


def post_worker_init(worker) -> None:
    """JSON logs in production, human-readable output in development."""
    configure_structlog(testing=os.environ.get("ENVIRONMENT", "production") == "development")
