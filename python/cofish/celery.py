"""Celery application.

Shared by the API (enqueuing) and the worker (executing).

Usage:
    from cofish.tasks import analyze_catch

    analyze_catch.apply_async(
        args=[str(catch_id), frames],
        kwargs={"request_id": request_id},
        queue="analysis",
    )
"""

from celery import Celery

from cofish.config import get_settings

settings = get_settings()

celery_app = Celery("cofish")

celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

celery_app.conf.task_routes = {
    "analyze_catch": {"queue": "analysis"},
}
celery_app.conf.task_default_queue = "default"
celery_app.conf.task_always_eager = False


def get_celery_app() -> Celery:
    return celery_app
