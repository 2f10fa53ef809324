from celery import Celery

from sitescan.core import config

celery = Celery(
    "sitescan",
    broker=config.CELERY_BROKER_URL,
    backend=config.CELERY_RESULT_BACKEND,
    include=["sitescan.scans.tasks"],
)

celery.conf.task_always_eager = config.CELERY_EAGER
celery.conf.task_eager_propagates = True
