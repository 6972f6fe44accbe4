"""
Celery application configuration for scheduled probing and maintenance.

Redis is both broker and result backend. Celery beat drives two periodic
tasks defined in probe_tasks.py:

- run_probe: one probe every PROBE_INTERVAL_SECONDS
- prune_health_checks: health-check cleanup every PRUNE_INTERVAL_SECONDS

Run with:
    celery -A grounded_probe.tasks.celery_app worker --beat --loglevel=info
"""

from celery import Celery

from grounded_probe.config import settings

celery_app = Celery(
    "grounded_probe",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["grounded_probe.tasks.probe_tasks"],
)

celery_app.conf.update(
    # Task execution
    task_time_limit=settings.CELERY_TASK_TIME_LIMIT,  # Hard limit (kills task)
    task_soft_time_limit=settings.CELERY_TASK_TIME_LIMIT - 30,  # Soft limit (raises exception)

    # Worker settings
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,
    worker_prefetch_multiplier=1,

    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],

    # Timezone
    timezone="UTC",
    enable_utc=True,

    # Result backend
    result_expires=3600,

    # A probe is not idempotent (it consumes quota and writes rows), so it
    # is acknowledged on receipt and never redelivered.
    task_acks_late=False,
    task_track_started=True,

    beat_schedule={
        "run-probe": {
            "task": "run_probe",
            "schedule": float(settings.PROBE_INTERVAL_SECONDS),
        },
        "prune-health-checks": {
            "task": "prune_health_checks",
            "schedule": float(settings.PRUNE_INTERVAL_SECONDS),
        },
    },
)
