import logging

from celery import shared_task

from tracker.exceptions import SyncError
from tracker.scheduler import run_job
from tracker.services.sync import sync_all_students, sync_student

logger = logging.getLogger(__name__)


@shared_task
def sync_student_task(student_id):
    try:
        student = sync_student(student_id)
    except SyncError as exc:
        logger.warning("sync_student_task student=%s: %s", student_id, exc)
        return {"status": "error", "student_id": student_id, "error": str(exc)}
    return {"status": "ok", "student_id": student.id}


@shared_task
def sync_all_students_task():
    return sync_all_students()


@shared_task
def trigger_cron_job_task(job_name):
    return run_job(job_name)
