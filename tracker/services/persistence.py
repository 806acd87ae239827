"""
Replace-all-for-student writer for the derived tables.

Each replace is two phases: delete every row of the student for that kind,
then bulk insert the fresh rows in bounded chunks. Without SYNC_ATOMIC_REPLACE
the pair is not transactional; a crash in between leaves the student with no
rows of that kind until the next sync, which always starts by deleting.
"""
import logging
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator

from django.conf import settings
from django.db import transaction

from tracker.models import (
    RATING_BUCKET_FIELDS,
    Contest,
    DailyProblemStats,
    DailySubmissionHeatmap,
)

logger = logging.getLogger(__name__)

CONTEST_BATCH_SIZE = 50
DAILY_BATCH_SIZE = 100


def chunked(items: list, size: int) -> Iterator[list]:
    if size <= 0:
        raise ValueError("chunk size must be positive")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _replace_scope():
    if getattr(settings, "SYNC_ATOMIC_REPLACE", False):
        return transaction.atomic()
    return nullcontext()


def _bulk_insert(model, rows: list, batch_size: int) -> int:
    inserted = 0
    for batch in chunked(rows, batch_size):
        model.objects.bulk_create(batch)
        inserted += len(batch)
    return inserted


def build_contest_rows(
    student_id: int,
    rating_changes: list[dict[str, Any]],
    contest_problems: dict[int, dict[str, Any]],
) -> list[Contest]:
    rows = []
    for change in rating_changes:
        problems = contest_problems.get(change["contest_id"]) or {}
        old_rating = change.get("old_rating")
        new_rating = change.get("new_rating")
        rating_change = None
        if old_rating is not None and new_rating is not None:
            rating_change = new_rating - old_rating
        rows.append(
            Contest(
                student_id=student_id,
                codeforces_contest_id=change["contest_id"],
                name=change.get("contest_name") or "",
                participant_type="CONTESTANT",
                rank=change.get("rank"),
                old_rating=old_rating,
                new_rating=new_rating,
                rating_change=rating_change,
                contest_time=datetime.fromtimestamp(change["rating_update_time"], tz=timezone.utc),
                total_problems=problems.get("total_problems", 0),
                problems_solved=problems.get("problems_solved", 0),
                hardest_problem=problems.get("hardest_problem"),
            )
        )
    return rows


def build_daily_rows(
    student_id: int,
    daily_stats: dict[Any, dict[str, Any]],
) -> tuple[list[DailyProblemStats], list[DailySubmissionHeatmap]]:
    stats_rows = []
    heatmap_rows = []
    for day, stats in daily_stats.items():
        buckets = {field: stats["buckets"].get(field, 0) for field in RATING_BUCKET_FIELDS}
        stats_rows.append(
            DailyProblemStats(
                student_id=student_id,
                date=day,
                total_solved=stats["total_solved"],
                max_rating_solved=stats["max_rating"],
                avg_rating=stats["avg_rating"],
                **buckets,
            )
        )
        heatmap_rows.append(
            DailySubmissionHeatmap(
                student_id=student_id,
                date=day,
                submission_count=stats["submission_count"],
                accepted_count=stats["accepted_count"],
            )
        )
    return stats_rows, heatmap_rows


def replace_contests(student_id: int, rows: Iterable[Contest]) -> int:
    rows = list(rows)
    batch_size = getattr(settings, "CONTEST_BATCH_SIZE", CONTEST_BATCH_SIZE)
    with _replace_scope():
        deleted, _ = Contest.objects.filter(student_id=student_id).delete()
        inserted = _bulk_insert(Contest, rows, batch_size)
    logger.info(
        "replace_contests student_id=%s deleted=%s inserted=%s",
        student_id,
        deleted,
        inserted,
    )
    return inserted


def replace_daily_stats(
    student_id: int,
    stats_rows: Iterable[DailyProblemStats],
    heatmap_rows: Iterable[DailySubmissionHeatmap],
) -> tuple[int, int]:
    stats_rows = list(stats_rows)
    heatmap_rows = list(heatmap_rows)
    batch_size = getattr(settings, "DAILY_BATCH_SIZE", DAILY_BATCH_SIZE)
    with _replace_scope():
        DailyProblemStats.objects.filter(student_id=student_id).delete()
        DailySubmissionHeatmap.objects.filter(student_id=student_id).delete()
        stats_inserted = _bulk_insert(DailyProblemStats, stats_rows, batch_size)
        heatmap_inserted = _bulk_insert(DailySubmissionHeatmap, heatmap_rows, batch_size)
    logger.info(
        "replace_daily_stats student_id=%s stats=%s heatmap=%s",
        student_id,
        stats_inserted,
        heatmap_inserted,
    )
    return stats_inserted, heatmap_inserted
