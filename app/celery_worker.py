"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.
"""

from celery import Celery

from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    'restaurant_platform',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['app.tasks']
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # One ledger write at a time per process; the file lock serializes across processes
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    result_expires=3600,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Publishing happens inside API requests; fail fast when the broker is down
    task_publish_retry=False,
    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
