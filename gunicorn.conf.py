"""
Gunicorn configuration for the operations dashboard API.

Each worker holds its own upstream clients and Redis pool.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 1024

# Worker processes
workers = int(os.getenv("WORKERS", min(multiprocessing.cpu_count() + 1, 4)))
worker_class = "uvicorn.workers.UvicornWorker"
max_requests = 5000
max_requests_jitter = 500
timeout = 90
keepalive = 5
graceful_timeout = 30

proc_name = "ops-dashboard-api"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(D)s'


def post_fork(server, worker):
    """Log the worker pid once it is ready."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)
