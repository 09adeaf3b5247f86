"""Gunicorn configuration for serving ``research_swarm.server:app``.

Run with ``gunicorn -c gunicorn_conf.py research_swarm.server:app``. The session
registry lives in process memory, so the server runs a single worker process;
concurrency comes from the asyncio event loop inside it.
"""

import os

port = os.environ.get("PORT", "8080")
bind = f"0.0.0.0:{port}"

# One process: a session created by one worker is invisible to any other
workers = 1
worker_class = "uvicorn.workers.UvicornWorker"

# POST /research waits for every worker and the synthesis before responding
timeout = int(os.environ.get("GUNICORN_TIMEOUT", "600"))
graceful_timeout = int(os.environ.get("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.environ.get("GUNICORN_KEEPALIVE", "5"))

loglevel = os.environ.get("GUNICORN_LOG_LEVEL", "info")
accesslog = "-"
errorlog = "-"

# Restarting the worker would drop every in-flight session
max_requests = 0
