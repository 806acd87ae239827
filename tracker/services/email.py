import logging

from django.conf import settings
from django.core.mail import send_mail
from django.utils.html import strip_tags

from tracker.exceptions import EmailDeliveryError
from tracker.models import Student

logger = logging.getLogger(__name__)


def send_email(student: Student, subject: str, body: str) -> None:
    """
    Envia um email já renderizado (placeholders substituídos pelo chamador).
    Levanta EmailDeliveryError em qualquer falha.
    """
    if not student.email:
        raise EmailDeliveryError("Student email not found")

    try:
        send_mail(
            subject,
            strip_tags(body),
            getattr(settings, "DEFAULT_FROM_EMAIL", None),
            [student.email],
            html_message=body,
        )
    except Exception as exc:
        raise EmailDeliveryError(str(exc) or exc.__class__.__name__) from exc

    logger.info("Email sent to %s", student.email)
