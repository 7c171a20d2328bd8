import os
import multiprocessing

# Gunicorn configuration for the checkout service.
# Run: gunicorn -c gunicorn_config.py wsgi:app
#
# Checkout state lives in the session cookie and ticket numbers are
# allocated under a row lock, so workers share nothing in memory.
bind = os.environ.get('POS_BIND', '0.0.0.0:8000')
workers = int(os.environ.get('POS_WORKERS', multiprocessing.cpu_count() * 2 + 1))
threads = int(os.environ.get('POS_THREADS', 2))
worker_class = 'gthread'

keepalive = 5
timeout = 30
graceful_timeout = 30
max_requests = 2000
max_requests_jitter = 200

# Logging
accesslog = '-'       # Stdout
errorlog = '-'        # Stderr
loglevel = os.environ.get('POS_LOG_LEVEL', 'info')
capture_output = True
