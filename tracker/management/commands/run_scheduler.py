import signal
import threading

from django.core.management.base import BaseCommand

from tracker.scheduler import JobScheduler


class Command(BaseCommand):
    help = "Run the cron job scheduler (DATA_SYNC, INACTIVITY_CHECK) until interrupted."

    def add_arguments(self, parser):
        parser.add_argument(
            "--reload-interval",
            type=int,
            default=60,
            help="Seconds between re-reads of the stored cron configs.",
        )

    def handle(self, *args, **options):
        stop = threading.Event()

        def _stop(signum, frame):
            stop.set()

        signal.signal(signal.SIGINT, _stop)
        signal.signal(signal.SIGTERM, _stop)

        scheduler = JobScheduler(reload_interval=options["reload_interval"])
        scheduler.start()
        for name, expression in sorted(scheduler.scheduled_jobs().items()):
            self.stdout.write(f"Scheduled {name}: {expression}")
        self.stdout.write(self.style.SUCCESS("Scheduler running. Press Ctrl+C to stop."))

        try:
            stop.wait()
        finally:
            scheduler.shutdown(wait=False)
            self.stdout.write("Scheduler stopped.")
