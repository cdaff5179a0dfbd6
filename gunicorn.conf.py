"""
Gunicorn configuration for CollabHub.

Usage:
    gunicorn collabhub.main:app -c gunicorn.conf.py

PORT and WEB_CONCURRENCY override the bind port and worker count.
"""

import multiprocessing
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8000')}"

# Refresh rotation and provisioning rely on the database, not worker memory,
# so any number of workers is safe.
workers = int(os.getenv("WEB_CONCURRENCY", multiprocessing.cpu_count() * 2 + 1))

worker_class = "uvicorn.workers.UvicornWorker"

timeout = 30
keepalive = 5

# bcrypt hashing is CPU-bound; recycle workers to bound memory growth
max_requests = 1000
max_requests_jitter = 100

accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
