from datetime import date, timedelta
from unittest.mock import patch

from django.test import SimpleTestCase, TestCase, override_settings

from tracker.models import Contest, DailyProblemStats, DailySubmissionHeatmap, Student
from tracker.services.persistence import (
    build_contest_rows,
    build_daily_rows,
    chunked,
    replace_contests,
    replace_daily_stats,
)


def _daily_stats(days: int, start=date(2024, 1, 1)):
    stats = {}
    for offset in range(days):
        day = start + timedelta(days=offset)
        stats[day] = {
            "date": day,
            "total_solved": 1,
            "max_rating": 1200,
            "avg_rating": 1250.0,
            "submission_count": 3,
            "accepted_count": 1,
            "buckets": {"rating_1200": 1},
        }
    return stats


def _rating_changes(count: int):
    return [
        {
            "contest_id": 1000 + n,
            "contest_name": f"Round {n}",
            "rank": n + 1,
            "old_rating": 1400 + n,
            "new_rating": 1410 + n,
            "rating_update_time": 1704067200 + n * 86400,
        }
        for n in range(count)
    ]


class ChunkedTests(SimpleTestCase):
    def test_splits_into_bounded_batches(self):
        self.assertEqual(list(chunked(list(range(5)), 2)), [[0, 1], [2, 3], [4]])

    def test_empty_input_yields_nothing(self):
        self.assertEqual(list(chunked([], 10)), [])

    def test_rejects_non_positive_size(self):
        with self.assertRaises(ValueError):
            list(chunked([1], 0))


class ReplaceTests(TestCase):
    def setUp(self):
        self.student = Student.objects.create(name="Ana", codeforces_handle="ana")
        self.other = Student.objects.create(name="Bia", codeforces_handle="bia")

    def test_contest_rows_carry_rating_change_and_problem_summary(self):
        summary = {
            1000: {
                "total_problems": 2,
                "problems_solved": 1,
                "hardest_problem": {"contest_id": 1000, "index": "B", "name": "B", "rating": 1600},
            }
        }

        rows = build_contest_rows(self.student.id, _rating_changes(2), summary)

        self.assertEqual(rows[0].rating_change, 10)
        self.assertEqual(rows[0].problems_solved, 1)
        self.assertEqual(rows[0].hardest_problem["rating"], 1600)
        self.assertEqual(rows[1].total_problems, 0)
        self.assertIsNone(rows[1].hardest_problem)
        self.assertEqual(rows[0].contest_time.year, 2024)

    @override_settings(DAILY_BATCH_SIZE=100)
    def test_daily_replace_inserts_in_chunks(self):
        stats_rows, heatmap_rows = build_daily_rows(self.student.id, _daily_stats(120))

        with patch.object(
            DailyProblemStats.objects, "bulk_create", wraps=DailyProblemStats.objects.bulk_create
        ) as bulk_mock:
            inserted = replace_daily_stats(self.student.id, stats_rows, heatmap_rows)

        self.assertEqual(inserted, (120, 120))
        self.assertEqual(bulk_mock.call_count, 2)
        self.assertEqual([len(call.args[0]) for call in bulk_mock.call_args_list], [100, 20])

    @override_settings(CONTEST_BATCH_SIZE=50)
    def test_contest_replace_inserts_in_chunks(self):
        rows = build_contest_rows(self.student.id, _rating_changes(51), {})

        with patch.object(Contest.objects, "bulk_create", wraps=Contest.objects.bulk_create) as bulk_mock:
            inserted = replace_contests(self.student.id, rows)

        self.assertEqual(inserted, 51)
        self.assertEqual(bulk_mock.call_count, 2)

    def test_replace_removes_stale_rows_and_keeps_other_students(self):
        replace_contests(self.student.id, build_contest_rows(self.student.id, _rating_changes(3), {}))
        replace_contests(self.other.id, build_contest_rows(self.other.id, _rating_changes(2), {}))

        replace_contests(self.student.id, build_contest_rows(self.student.id, _rating_changes(1), {}))

        self.assertEqual(Contest.objects.filter(student=self.student).count(), 1)
        self.assertEqual(Contest.objects.filter(student=self.other).count(), 2)

    def test_replace_is_idempotent(self):
        stats = _daily_stats(5)

        for _ in range(2):
            stats_rows, heatmap_rows = build_daily_rows(self.student.id, stats)
            replace_daily_stats(self.student.id, stats_rows, heatmap_rows)

        self.assertEqual(DailyProblemStats.objects.filter(student=self.student).count(), 5)
        self.assertEqual(DailySubmissionHeatmap.objects.filter(student=self.student).count(), 5)
        row = DailyProblemStats.objects.get(student=self.student, date=date(2024, 1, 1))
        self.assertEqual(row.rating_1200, 1)
        self.assertEqual(row.rating_800, 0)
        self.assertEqual(row.avg_rating, 1250.0)

    @override_settings(SYNC_ATOMIC_REPLACE=True)
    def test_atomic_replace_writes_same_rows(self):
        stats_rows, heatmap_rows = build_daily_rows(self.student.id, _daily_stats(3))

        replace_daily_stats(self.student.id, stats_rows, heatmap_rows)

        self.assertEqual(DailySubmissionHeatmap.objects.filter(student=self.student).count(), 3)
