"""
Production Server Configuration

Run the inventory analytics API with Uvicorn workers under Gunicorn.

Each worker keeps its own in-flight rebuild registry; enable Redis so the
rebuild lock spans workers.
"""

import multiprocessing
import os

# Server socket
bind = os.getenv("BIND", "0.0.0.0:8000")
backlog = 2048

# Worker processes
workers = int(os.getenv("WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "uvicorn.workers.UvicornWorker"
worker_connections = 1000
max_requests = 10000
max_requests_jitter = 1000
# A snapshot rebuild for a large catalog can run for a while
timeout = int(os.getenv("WORKER_TIMEOUT", 180))
keepalive = 5
# Lets in-flight rebuilds drain on shutdown
graceful_timeout = int(os.getenv("GRACEFUL_TIMEOUT", 60))

# Process naming
proc_name = "inventory-analytics-api"

# Server mechanics
daemon = False
pidfile = "/tmp/inventory-analytics.pid"

# Logging
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
accesslog = "-"
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'


def post_fork(server, worker):
    """Called after a worker has been forked."""
    server.log.info("Worker spawned (pid: %s)", worker.pid)


def worker_int(worker):
    """Called when worker receives INT or QUIT signal."""
    worker.log.info("Worker interrupted, draining rebuilds (pid: %s)", worker.pid)
