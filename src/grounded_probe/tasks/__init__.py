"""
Celery tasks for scheduled probing.

- celery_app.py: Celery application configuration and beat schedule
- probe_tasks.py: Task definitions (run_probe, prune_health_checks)
"""

from grounded_probe.tasks.celery_app import celery_app
from grounded_probe.tasks.probe_tasks import prune_health_checks_task, run_probe_task

__all__ = [
    "celery_app",
    "run_probe_task",
    "prune_health_checks_task",
]
