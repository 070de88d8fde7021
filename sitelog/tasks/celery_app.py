from celery import Celery

from sitelog.config import settings

app = Celery(
    "sitelog",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "sitelog.tasks.memory_tasks.*": {"queue": "memory"},
    },
)

app.autodiscover_tasks(["sitelog.tasks.memory_tasks"])
