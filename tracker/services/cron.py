import logging
from datetime import datetime

from apscheduler.triggers.cron import CronTrigger
from django.conf import settings
from django.utils import timezone

from tracker.exceptions import InvalidCronExpression, UnknownJob
from tracker.models import CronJobConfig

logger = logging.getLogger(__name__)

DATA_SYNC = "DATA_SYNC"
INACTIVITY_CHECK = "INACTIVITY_CHECK"

BUILTIN_JOBS = {
    DATA_SYNC: "0 2 * * *",         # 02:00 daily
    INACTIVITY_CHECK: "0 3 * * *",  # 03:00 daily
}


DAY_NAMES = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


def _day_value(token: str) -> int:
    token = token.strip().lower()
    if token in DAY_NAMES:
        return DAY_NAMES.index(token)
    if token.isdigit() and int(token) <= 7:
        return int(token)
    raise ValueError(f"Invalid day of week: {token!r}")


def standard_day_of_week(field: str) -> str:
    """
    Traduz o campo dia-da-semana do cron padrão (0 ou 7 = domingo, 1 = segunda)
    para nomes, que o APScheduler entende sem ambiguidade.
    """
    if field == "*":
        return field

    days = set()
    for part in field.split(","):
        base, has_step, step_text = part.partition("/")
        step = int(step_text) if has_step else 1
        if step <= 0:
            raise ValueError(f"Invalid step in day of week: {part!r}")

        if base == "*":
            start, end = 0, 6
        elif "-" in base:
            start_text, end_text = base.split("-", 1)
            start, end = _day_value(start_text), _day_value(end_text)
        else:
            start = _day_value(base)
            end = 6 if has_step else start

        if start > end:
            raise ValueError(f"Invalid day of week range: {part!r}")
        days.update(day % 7 for day in range(start, end + 1, step))

    return ",".join(DAY_NAMES[day] for day in sorted(days))


def parse_cron(expression: str | None) -> CronTrigger:
    """
    Standard five-field crontab ("min hour day month dow").

    Day of week uses standard numbering (0 or 7 = sunday, 1-5 = mon-fri) or
    three-letter names.
    """
    if not expression or not expression.strip():
        raise InvalidCronExpression("Cron expression is required")

    fields = expression.split()
    if len(fields) != 5:
        raise InvalidCronExpression(f"Invalid cron expression: {expression}")
    minute, hour, day, month, day_of_week = fields
    try:
        return CronTrigger(
            minute=minute,
            hour=hour,
            day=day,
            month=month,
            day_of_week=standard_day_of_week(day_of_week),
            timezone=getattr(settings, "TIME_ZONE", "UTC"),
        )
    except (ValueError, TypeError) as exc:
        raise InvalidCronExpression(f"Invalid cron expression: {expression}") from exc


def validate_cron(expression: str | None) -> str:
    parse_cron(expression)
    return expression.strip()


def next_fire_after(expression: str, after: datetime | None = None) -> datetime | None:
    """Next fire time strictly after `after` (defaults to now)."""
    trigger = parse_cron(expression)
    if after is None:
        after = timezone.now()
    # Passing `after` as the previous fire time makes the search exclusive.
    return trigger.get_next_fire_time(after, after)


def _require_known_job(name: str) -> None:
    if name not in BUILTIN_JOBS:
        raise UnknownJob(f"Unknown cron job: {name}")


def seed_default_jobs() -> list[CronJobConfig]:
    created = []
    for name, expression in BUILTIN_JOBS.items():
        config, was_created = CronJobConfig.objects.get_or_create(
            name=name,
            defaults={
                "cron_expression": expression,
                "enabled": True,
                "next_run": next_fire_after(expression),
            },
        )
        if was_created:
            logger.info("Seeded cron job %s with expression %s", name, expression)
            created.append(config)
    return created


def get_cron_configs():
    return CronJobConfig.objects.order_by("name")


def get_cron_config(name: str) -> CronJobConfig:
    config = CronJobConfig.objects.filter(name=name).first()
    if config is None:
        raise UnknownJob(f"Cron job {name} not found")
    return config


def update_cron_config(name: str, expression: str, enabled: bool = True) -> CronJobConfig:
    # Validation happens before any write.
    _require_known_job(name)
    expression = validate_cron(expression)

    config, _ = CronJobConfig.objects.update_or_create(
        name=name,
        defaults={
            "cron_expression": expression,
            "enabled": enabled,
            "next_run": next_fire_after(expression) if enabled else None,
        },
    )
    logger.info("Updated cron job %s expression=%s enabled=%s", name, expression, enabled)
    return config


def enable_cron_job(name: str) -> CronJobConfig:
    config = get_cron_config(name)
    return update_cron_config(name, config.cron_expression, True)


def disable_cron_job(name: str) -> CronJobConfig:
    config = get_cron_config(name)
    config.enabled = False
    config.next_run = None
    config.save(update_fields=["enabled", "next_run", "updated_at"])
    logger.info("Disabled cron job %s", name)
    return config


def mark_job_started(name: str) -> None:
    CronJobConfig.objects.filter(name=name).update(last_run=timezone.now())


def mark_job_completed(name: str) -> None:
    config = CronJobConfig.objects.filter(name=name).first()
    if config is None:
        return
    config.next_run = next_fire_after(config.cron_expression) if config.enabled else None
    config.save(update_fields=["next_run", "updated_at"])
