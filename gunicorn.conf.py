# gunicorn.conf.py
import os

# Worker configuration
# Typing indicators keep their debounce timers in process memory, so all
# requests for a deployment must reach the same process.
workers = int(os.getenv("GUNICORN_WORKERS", 1))
worker_class = "gthread"
threads = int(os.getenv("GUNICORN_THREADS", 8))
timeout = int(os.getenv("GUNICORN_TIMEOUT", 120))
keepalive = 2
max_requests = 1000
max_requests_jitter = 50

# Logging
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")

# Process naming
proc_name = "stackhub-messaging"

# Bind address
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")

# Security headers (if behind proxy)
forwarded_allow_ips = "*"
