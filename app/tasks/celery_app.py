# app/tasks/celery_app.py
from celery import Celery
from app.core.config import settings

celery_app = Celery(
    "worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["app.tasks.payments"],
)

celery_app.conf.task_routes = {
    "app.tasks.payments.*": {"queue": "payments"},
}

celery_app.conf.beat_schedule = {
    "reconcile-pending-payments": {
        "task": "app.tasks.payments.reconcile_pending_payments",
        "schedule": 15 * 60,
    },
}

celery_app.conf.timezone = 'UTC'
