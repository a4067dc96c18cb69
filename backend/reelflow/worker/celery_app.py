"""
Celery application for background workflow work.

Broker/backend: Redis (REDIS_URL env).
Default queue: workflow.
"""
from celery import Celery

from reelflow.settings import get_settings

settings = get_settings()

celery_app = Celery(
    "reelflow",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    task_time_limit=5 * 60,
    task_soft_time_limit=4 * 60,
    task_default_queue="workflow",
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
)

celery_app.autodiscover_tasks(["reelflow.worker"])
