"""
Cron-driven job scheduler.

Job configs live in CronJobConfig; a JobScheduler instance owns the live
timers (APScheduler jobs) for one host process. Config changes made by other
processes (e.g. the admin API) are picked up by reload(), which the running
scheduler calls periodically.
"""
import logging
import threading

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from django.conf import settings
from django.db import connections

from tracker.exceptions import InvalidCronExpression, JobAlreadyRunning, UnknownJob
from tracker.models import CronJobConfig
from tracker.services.cron import (
    BUILTIN_JOBS,
    DATA_SYNC,
    INACTIVITY_CHECK,
    disable_cron_job,
    enable_cron_job,
    get_cron_configs,
    mark_job_completed,
    mark_job_started,
    parse_cron,
    seed_default_jobs,
    update_cron_config,
)
from tracker.services.inactivity import run_inactivity_check
from tracker.services.locks import held_lock, job_lock_key
from tracker.services.sync import sync_all_students

logger = logging.getLogger(__name__)

JOB_LOCK_TTL_SECONDS = 6 * 60 * 60
RELOAD_JOB_ID = "__reload_cron_configs__"
RELOAD_INTERVAL_SECONDS = 60


def _run_job_body(name: str):
    if name == DATA_SYNC:
        return sync_all_students()
    if name == INACTIVITY_CHECK:
        return run_inactivity_check()
    raise UnknownJob(f"Unknown cron job: {name}")


def run_job(name: str):
    """
    Executa o corpo de um job: marca last_run, roda, recalcula next_run.

    Erros propagam para o chamador. Um job que já está rodando (timer ou
    trigger manual, em qualquer processo que compartilhe o cache) não roda
    de novo em paralelo: JobAlreadyRunning.
    """
    if name not in BUILTIN_JOBS:
        raise UnknownJob(f"Unknown cron job: {name}")

    with held_lock(job_lock_key(name), ttl_seconds=JOB_LOCK_TTL_SECONDS) as acquired:
        if not acquired:
            raise JobAlreadyRunning(f"Cron job {name} is already running")

        logger.info("Running cron job: %s", name)
        mark_job_started(name)
        result = _run_job_body(name)
        mark_job_completed(name)
        logger.info("Completed cron job: %s", name)
        return result


class JobScheduler:
    def __init__(self, scheduler=None, reload_interval: int | None = None):
        self._scheduler = scheduler or BackgroundScheduler(timezone=getattr(settings, "TIME_ZONE", "UTC"))
        self._reload_interval = reload_interval or RELOAD_INTERVAL_SECONDS
        self._jobs = {}
        self._expressions: dict[str, str] = {}
        self._lock = threading.RLock()

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> None:
        seed_default_jobs()
        self.reload()
        if not self._scheduler.running:
            self._scheduler.start()
        self._scheduler.add_job(
            self._reload_safely,
            "interval",
            seconds=self._reload_interval,
            id=RELOAD_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info("Scheduler started with jobs: %s", ", ".join(sorted(self._jobs)) or "none")

    def shutdown(self, wait: bool = False) -> None:
        with self._lock:
            for name in list(self._jobs):
                self._unschedule(name)
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        logger.info("Scheduler stopped")

    def reload(self) -> None:
        """Reconcile live timers with the persisted configs."""
        configs = {config.name: config for config in CronJobConfig.objects.all()}
        with self._lock:
            for name in list(self._jobs):
                config = configs.get(name)
                if config is None or not config.enabled:
                    self._unschedule(name)

            for name, config in configs.items():
                if not config.enabled:
                    continue
                if name not in BUILTIN_JOBS:
                    logger.warning("Ignoring unknown cron job config: %s", name)
                    continue
                if self._expressions.get(name) == config.cron_expression and name in self._jobs:
                    continue
                try:
                    self._schedule(name, config.cron_expression)
                except InvalidCronExpression:
                    logger.error("Stored cron expression for %s is invalid: %s", name, config.cron_expression)

    def _reload_safely(self) -> None:
        try:
            self.reload()
        except Exception:
            logger.exception("Failed to reload cron configs")
        finally:
            connections.close_all()

    # -- timers --------------------------------------------------------------

    def _schedule(self, name: str, expression: str) -> None:
        trigger = parse_cron(expression)
        self._unschedule(name)
        self._jobs[name] = self._scheduler.add_job(
            self._run_scheduled,
            trigger=trigger,
            args=[name],
            id=name,
            name=name,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._expressions[name] = expression
        logger.info("Scheduled cron job: %s with expression: %s", name, expression)

    def _unschedule(self, name: str) -> None:
        job = self._jobs.pop(name, None)
        self._expressions.pop(name, None)
        if job is None:
            return
        try:
            self._scheduler.remove_job(name)
        except JobLookupError:
            pass
        logger.info("Stopped cron job: %s", name)

    def _run_scheduled(self, name: str) -> None:
        # Timer path: log and keep the schedule alive.
        try:
            run_job(name)
        except Exception:
            logger.exception("Error in cron job %s", name)
        finally:
            connections.close_all()

    def is_scheduled(self, name: str) -> bool:
        return name in self._jobs

    def scheduled_jobs(self) -> dict[str, str]:
        return dict(self._expressions)

    # -- operations ----------------------------------------------------------

    def list_configs(self) -> list[CronJobConfig]:
        return list(get_cron_configs())

    def update_config(self, name: str, expression: str, enabled: bool = True) -> CronJobConfig:
        with self._lock:
            config = update_cron_config(name, expression, enabled)
            if config.enabled:
                self._schedule(name, config.cron_expression)
            else:
                self._unschedule(name)
            return config

    def enable(self, name: str) -> CronJobConfig:
        with self._lock:
            config = enable_cron_job(name)
            self._schedule(name, config.cron_expression)
            return config

    def disable(self, name: str) -> CronJobConfig:
        with self._lock:
            config = disable_cron_job(name)
            self._unschedule(name)
            return config

    def trigger(self, name: str):
        """Run a job now, out of band. Errors are re-raised to the caller."""
        logger.info("Manually triggering cron job: %s", name)
        try:
            return run_job(name)
        except Exception:
            logger.exception("Error in manual trigger for %s", name)
            raise
