# backend/booka/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for Booka.

Tasks are scheduled using crontab expressions for precise timing control.
"""

from typing import Any, Dict

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: Dict[str, Dict[str, Any]] = {
    # Payment retry worker - every 5 minutes
    "retry-failed-transactions": {
        "task": "booka.tasks.payment_tasks.retry_failed_transactions",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "payments", "expires": 240},
    },
}


def get_beat_schedule() -> Dict[str, Dict[str, Any]]:
    return dict(CELERYBEAT_SCHEDULE)
