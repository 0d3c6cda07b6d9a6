"""
Celery application with the scan schedule.

    celery -A lawwatch.celery_app worker -Q scans
    celery -A lawwatch.celery_app beat
"""

from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging, task_failure, worker_ready, worker_shutdown

from lawwatch.core.config import settings
from lawwatch.core.logging_config import get_logger

logger = get_logger(__name__)

# ======================== CREATE CELERY APP ========================

def create_celery_app() -> Celery:
    app = Celery('lawwatch', include=['lawwatch.tasks.scan_tasks'])
    app.config_from_object(settings.celery.get_celery_config(settings.redis))
    app.conf.update(worker_hijack_root_logger=False, worker_send_task_events=True)

    schedule = settings.celery
    app.conf.beat_schedule = {
        'full-scan-daily': {
            'task': 'lawwatch.tasks.scan_tasks.run_full_scan_task',
            'schedule': crontab(minute=schedule.daily_scan_minute, hour=schedule.daily_scan_hour),
            'options': {'queue': 'scans', 'priority': 9}
        },
        # Offset from the full scan so the two never start together
        'registry-check': {
            'task': 'lawwatch.tasks.scan_tasks.check_registry_task',
            'schedule': crontab(minute=30, hour=f"*/{schedule.registry_check_hours}"),
            'options': {'queue': 'scans', 'priority': 5}
        },
    }
    return app


app = create_celery_app()

# ======================== SIGNAL HANDLERS ========================

@setup_logging.connect
def configure_logging(**kwargs):
    """Keep lawwatch.core.logging_config in charge of the root logger."""


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("Scan worker ready", extra={"hostname": getattr(sender, "hostname", "unknown")})


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Scan worker shutting down", extra={"hostname": getattr(sender, "hostname", "unknown")})


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **kwargs):
    logger.error(
        f"Task {getattr(sender, 'name', 'unknown')} failed: {exception}",
        extra={"task_id": task_id}
    )


__all__ = ['app', 'create_celery_app']
