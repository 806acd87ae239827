import logging
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone as dt_timezone

from django.conf import settings
from django.db import connections
from django.utils import timezone

from tracker.exceptions import MissingHandle, ProfileNotFound, StudentNotFound, SyncInProgress
from tracker.models import Student
from tracker.services.aggregation import compute_contest_problems, compute_daily_stats
from tracker.services.codeforces_client import CodeforcesClient
from tracker.services.locks import held_lock, student_sync_lock_key
from tracker.services.persistence import (
    build_contest_rows,
    build_daily_rows,
    replace_contests,
    replace_daily_stats,
)

logger = logging.getLogger(__name__)

SYNC_BATCH_SIZE = 3
SYNC_BATCH_DELAY_SECONDS = 3.0


def _students_with_handle():
    return Student.objects.exclude(codeforces_handle__isnull=True).exclude(codeforces_handle="")


def sync_student(student_id: int) -> Student:
    """
    Sincroniza um aluno: fetch -> agregação -> persistência -> resumo no Student.

    Levanta SyncError (ou subclasses) quando o sync não pode acontecer e deixa
    erros de banco propagarem. Duas chamadas simultâneas para o mesmo aluno não
    se intercalam: a segunda recebe SyncInProgress.
    """
    try:
        student = Student.objects.get(id=student_id)
    except Student.DoesNotExist as exc:
        raise StudentNotFound(f"Student {student_id} not found.") from exc

    handle = (student.codeforces_handle or "").strip()
    if not handle:
        raise MissingHandle(f"Student {student_id} has no Codeforces handle.")

    with held_lock(student_sync_lock_key(student.id)) as acquired:
        if not acquired:
            raise SyncInProgress(f"Sync already running for student {student_id}.")
        return _sync_student_data(student, handle)


def _sync_student_data(student: Student, handle: str) -> Student:
    started = time.monotonic()
    logger.info("Starting sync for student=%s handle=%s", student.id, handle)

    profile = CodeforcesClient.get_user_info(handle)
    if not profile:
        raise ProfileNotFound(f"User {handle} not found on Codeforces.")

    submissions = CodeforcesClient.get_submissions(handle)
    rating_changes = CodeforcesClient.get_rating_changes(handle)

    contest_problems = compute_contest_problems(submissions, rating_changes)
    daily_stats = compute_daily_stats(submissions)

    # Empty lists come from failed fetches as well; keep the stored rows then.
    if rating_changes:
        replace_contests(student.id, build_contest_rows(student.id, rating_changes, contest_problems))
    if daily_stats:
        stats_rows, heatmap_rows = build_daily_rows(student.id, daily_stats)
        replace_daily_stats(student.id, stats_rows, heatmap_rows)

    last_submission = None
    if submissions:
        last_ts = max(sub["creation_time"] for sub in submissions)
        last_submission = datetime.fromtimestamp(last_ts, tz=dt_timezone.utc)

    student.rating = profile.get("rating") or 0
    student.max_rating = profile.get("max_rating") or 0
    student.rank = profile.get("rank") or ""
    student.max_rank = profile.get("max_rank") or ""
    student.title_photo = profile.get("title_photo") or ""
    student.last_data_update = timezone.now()
    student.last_submission_date = last_submission
    update_fields = [
        "rating",
        "max_rating",
        "rank",
        "max_rank",
        "title_photo",
        "last_data_update",
        "last_submission_date",
        "updated_at",
    ]
    if profile.get("email"):
        student.email = profile["email"]
        update_fields.append("email")
    student.save(update_fields=update_fields)

    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "sync_student student=%s handle=%s submissions=%s contests=%s days=%s duration_ms=%s",
        student.id,
        handle,
        len(submissions),
        len(rating_changes),
        len(daily_stats),
        duration_ms,
    )
    return student


def _sync_student_outcome(student_id: int) -> dict:
    try:
        sync_student(student_id)
        return {"student_id": student_id, "status": "ok"}
    except Exception as exc:
        logger.exception("Failed to sync student %s", student_id)
        return {"student_id": student_id, "status": "error", "error": str(exc)}
    finally:
        # Worker threads open their own DB connections.
        connections.close_all()


def sync_all_students(batch_size: int | None = None, batch_delay: float | None = None) -> dict:
    """
    Sincroniza todos os alunos com handle, em grupos de batch_size em paralelo.

    Cada grupo termina por completo (sucessos e falhas) antes do próximo; entre
    grupos há uma pausa fixa para respeitar o limite agregado da API.
    """
    if batch_size is None:
        batch_size = getattr(settings, "SYNC_BATCH_SIZE", SYNC_BATCH_SIZE)
    if batch_delay is None:
        batch_delay = getattr(settings, "SYNC_BATCH_DELAY_SECONDS", SYNC_BATCH_DELAY_SECONDS)
    batch_size = max(1, int(batch_size))

    started = time.monotonic()
    student_ids = list(_students_with_handle().order_by("id").values_list("id", flat=True))
    logger.info("Starting sync for %s students", len(student_ids))

    results = []
    for start in range(0, len(student_ids), batch_size):
        group = student_ids[start:start + batch_size]
        with ThreadPoolExecutor(max_workers=len(group)) as executor:
            results.extend(executor.map(_sync_student_outcome, group))

        if start + batch_size < len(student_ids) and batch_delay > 0:
            time.sleep(batch_delay)

    synced = sum(1 for row in results if row["status"] == "ok")
    failed = len(results) - synced
    duration_ms = int((time.monotonic() - started) * 1000)
    logger.info(
        "sync_all_students students=%s synced=%s failed=%s duration_ms=%s",
        len(student_ids),
        synced,
        failed,
        duration_ms,
    )
    return {
        "status": "ok",
        "students": len(student_ids),
        "synced": synced,
        "failed": failed,
        "results": results,
        "duration_ms": duration_ms,
    }
