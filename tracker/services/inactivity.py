import logging
from datetime import timedelta

from django.conf import settings
from django.db.models import F, Q
from django.utils import timezone

from tracker.models import EmailLog, Student
from tracker.services.email import send_email

logger = logging.getLogger(__name__)

INACTIVITY_DAYS = 7

REMINDER_SUBJECT = "Time to get back to coding, {{studentName}}!"
REMINDER_BODY = """
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <h2>Hi {{studentName}}</h2>
    <p>We noticed you haven't submitted any solutions on Codeforces ({{codeforcesHandle}})
    in the last few days. Consistent practice is key to improving!</p>
    <p>Last activity: {{lastActivity}}</p>
    <p>Current rating: {{currentRating}} &middot; Max rating: {{maxRating}}</p>
    <p><a href="https://codeforces.com/problemset">Start solving problems</a></p>
    <p><small>Sent to {{email}}. If you don't want these reminders, contact your instructor.</small></p>
  </body>
</html>
"""


def render_reminder(template: str, student: Student) -> str:
    last_activity = ""
    if student.last_submission_date:
        last_activity = timezone.localtime(student.last_submission_date).date().isoformat()

    replacements = {
        "{{studentName}}": student.name or "Student",
        "{{currentRating}}": str(student.rating) if student.rating is not None else "",
        "{{maxRating}}": str(student.max_rating) if student.max_rating is not None else "",
        "{{lastActivity}}": last_activity,
        "{{codeforcesHandle}}": student.codeforces_handle or "",
        "{{email}}": student.email or "",
    }
    rendered = template
    for placeholder, value in replacements.items():
        rendered = rendered.replace(placeholder, value)
    return rendered


def find_inactive_students(now=None):
    now = now or timezone.now()
    days = getattr(settings, "INACTIVITY_DAYS", INACTIVITY_DAYS)
    cutoff = now - timedelta(days=days)
    return Student.objects.filter(email_reminder_enabled=True).filter(
        Q(last_submission_date__lt=cutoff) | Q(last_submission_date__isnull=True)
    ).order_by("id")


def _log_email(student: Student, success: bool, error_message: str | None = None) -> EmailLog:
    return EmailLog.objects.create(
        student=student,
        kind="REMINDER",
        success=success,
        error_message=error_message,
    )


def send_reminder(student: Student) -> None:
    subject = render_reminder(REMINDER_SUBJECT, student)
    body = render_reminder(REMINDER_BODY, student)
    try:
        send_email(student, subject, body)
    except Exception as exc:
        _log_email(student, False, str(exc))
        raise

    _log_email(student, True)
    Student.objects.filter(id=student.id).update(reminder_email_count=F("reminder_email_count") + 1)


def run_inactivity_check(now=None) -> dict:
    students = list(find_inactive_students(now))
    logger.info("Found %s inactive students", len(students))

    sent = 0
    failed = 0
    for student in students:
        try:
            send_reminder(student)
            sent += 1
        except Exception:
            failed += 1
            logger.exception("Failed to send reminder to student=%s", student.id)

    logger.info("Inactivity check completed sent=%s failed=%s", sent, failed)
    return {
        "status": "ok",
        "inactive": len(students),
        "sent": sent,
        "failed": failed,
    }
