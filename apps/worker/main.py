"""Celery worker entrypoint.

Run with: celery -A apps.worker.main:celery_app worker -Q analysis,default --loglevel=info

Tasks are registered by explicit import from cofish.tasks; there is no
autodiscovery. Every task accepts `request_id` and calls
configure_task_logging() so its log lines carry request_id, task_name and
task_id.

Queues:
- analysis: catch verification (vision oracle calls, I/O bound)
- default: everything else
"""

from celery.signals import worker_process_init

from cofish.celery import celery_app
from cofish.logging import configure_logging, get_logger
from cofish.tasks import analyze_catch  # noqa: F401


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Use the API's structlog JSON format in worker processes."""
    configure_logging()
    get_logger(__name__).info("celery_worker_started", queues=["analysis", "default"])


__all__ = ["celery_app"]
