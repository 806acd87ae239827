from django.core.management.base import BaseCommand, CommandError

from tracker.exceptions import SyncError
from tracker.services.sync import sync_all_students, sync_student


class Command(BaseCommand):
    help = "Sync Codeforces data for one student (--student) or for every student with a handle."

    def add_arguments(self, parser):
        parser.add_argument("--student", type=int, help="Student id to sync.")
        parser.add_argument("--batch-size", type=int, default=None)
        parser.add_argument("--batch-delay", type=float, default=None)

    def handle(self, *args, **options):
        student_id = options.get("student")
        if student_id:
            try:
                student = sync_student(student_id)
            except SyncError as exc:
                raise CommandError(str(exc)) from exc
            self.stdout.write(
                self.style.SUCCESS(
                    f"Synced {student}: rating={student.rating} max_rating={student.max_rating}"
                )
            )
            return

        report = sync_all_students(
            batch_size=options.get("batch_size"),
            batch_delay=options.get("batch_delay"),
        )
        for row in report["results"]:
            if row["status"] != "ok":
                self.stdout.write(self.style.WARNING(f"student={row['student_id']}: {row['error']}"))
        self.stdout.write(
            self.style.SUCCESS(
                f"Synced {report['synced']} of {report['students']} students "
                f"({report['failed']} failed) in {report['duration_ms']} ms."
            )
        )
