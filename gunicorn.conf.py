"""Gunicorn configuration for production."""
import os

# Application
wsgi_app = 'app:create_app()'

# Server socket
bind = os.environ.get('BIND', '0.0.0.0:8080')

# Worker processes
# Each worker holds its own market data caches, so more workers means more
# upstream fetches per TTL window.
workers = int(os.environ.get('WEB_CONCURRENCY', '2'))
worker_class = 'gthread'
threads = 4
# Must outlast a cold-cache fetch (MARKET_DATA_FETCH_TIMEOUT_SECONDS, default 10)
timeout = 30
keepalive = 2

# Logging
accesslog = '-'
errorlog = '-'
loglevel = os.environ.get('LOG_LEVEL', 'info')

# Process naming
proc_name = 'jewelry-pricing'

# Server mechanics
daemon = False
pidfile = None
umask = 0
user = None
group = None
tmp_upload_dir = None


def worker_exit(server, worker):
    """Stop the market data refresh thread when a worker shuts down."""
    from app.services.background_refresh import stop_background_refresh
    stop_background_refresh()
