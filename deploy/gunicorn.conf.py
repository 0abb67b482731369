import multiprocessing
import os

wsgi_app = "tutor_schedule.main:app"
bind = os.getenv("TUTOR_SCHEDULE_BIND", "127.0.0.1:8000")
workers = int(os.getenv("TUTOR_SCHEDULE_WORKERS", (multiprocessing.cpu_count() * 2) + 1))
worker_class = "uvicorn.workers.UvicornWorker"
timeout = 60
graceful_timeout = 30
keepalive = 5
loglevel = "info"
accesslog = "-"
errorlog = "-"
