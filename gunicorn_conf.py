import multiprocessing

# Gunicorn config
wsgi_app = "netgains.main:app"
bind = "0.0.0.0:8000"  # Match this port in your ALB target group
workers = min(multiprocessing.cpu_count(), 4)
worker_class = "uvicorn.workers.UvicornWorker"
loglevel = "info"
accesslog = "/var/log/gunicorn/access.log"
errorlog = "/var/log/gunicorn/error.log"
