"""
Recurring Billing Scheduler - Celery Configuration

Celery configuration for the daily and weekly billing jobs.
Uses Redis as the message broker and result backend.
"""

from celery import Celery
from celery.schedules import crontab

from billing_scheduler.config import settings


# Create Celery app
celery_app = Celery(
    'billing_scheduler',
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=['billing_scheduler.tasks.celery_tasks'],
)

# Celery configuration
celery_app.conf.update(
    # Serialization
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',

    # Timezone
    timezone=settings.celery_timezone,
    enable_utc=True,

    # Task execution settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=3600,  # 1 hour
    task_soft_time_limit=3300,  # 55 minutes (warning before hard limit)

    # Worker settings
    worker_prefetch_multiplier=1,

    # Result backend settings
    result_expires=86400,  # 24 hours

    # Beat schedule for periodic tasks
    beat_schedule={
        # Reminders, recurring invoices, cleanup and overdue status every day
        'run-daily-billing-jobs': {
            'task': 'billing_scheduler.tasks.celery_tasks.run_daily_jobs_task',
            'schedule': crontab(hour=settings.daily_jobs_hour, minute=0),
        },

        # Weekly report and archival every Monday
        'run-weekly-billing-jobs': {
            'task': 'billing_scheduler.tasks.celery_tasks.run_weekly_jobs_task',
            'schedule': crontab(day_of_week=1, hour=settings.weekly_jobs_hour, minute=0),
        },
    },
)


celery_app.conf.task_routes = {
    'billing_scheduler.tasks.celery_tasks.*': {'queue': 'billing'},
}
