from datetime import date

from django.test import SimpleTestCase

from tracker.models import RATING_BUCKET_FIELDS
from tracker.services.aggregation import (
    compute_contest_problems,
    compute_daily_stats,
    problem_key,
    rating_bucket,
)

DAY = 24 * 60 * 60
BASE_TS = 1704067200  # 2024-01-01 00:00:00 UTC


def _sub(contest_id, index, verdict="OK", day=1, rating=None, offset=0, contest=None):
    return {
        "external_id": f"{contest_id}{index}-{day}-{offset}",
        "contest_id": contest if contest is not None else contest_id,
        "problem_contest_id": contest_id,
        "problem_index": index,
        "problem_name": f"Problem {index}",
        "problem_rating": rating,
        "verdict": verdict,
        "creation_time": BASE_TS + (day - 1) * DAY + offset,
    }


def _change(contest_id, old=1400, new=1450):
    return {
        "contest_id": contest_id,
        "contest_name": f"Codeforces Round {contest_id}",
        "rank": 100,
        "old_rating": old,
        "new_rating": new,
        "rating_update_time": BASE_TS,
    }


class RatingBucketTests(SimpleTestCase):
    def test_bands_are_half_open(self):
        self.assertEqual(rating_bucket(800), "rating_800")
        self.assertEqual(rating_bucket(899), "rating_800")
        self.assertEqual(rating_bucket(900), "rating_900")
        self.assertEqual(rating_bucket(2399), "rating_2300")
        self.assertEqual(rating_bucket(2400), "rating_2400_plus")
        self.assertEqual(rating_bucket(3500), "rating_2400_plus")

    def test_missing_rating_is_unknown(self):
        self.assertEqual(rating_bucket(None), "rating_unknown")
        self.assertEqual(rating_bucket(0), "rating_unknown")

    def test_below_800_lands_in_lowest_band(self):
        self.assertEqual(rating_bucket(500), "rating_800")

    def test_problem_key_joins_contest_and_index(self):
        self.assertEqual(problem_key(_sub(100, "A")), "100A")


class DailyStatsTests(SimpleTestCase):
    def test_re_solve_counts_only_on_first_day(self):
        submissions = [
            _sub(100, "A", "OK", day=1, rating=900),
            _sub(100, "A", "OK", day=3, rating=900),
        ]

        daily = compute_daily_stats(submissions)

        day1 = daily[date(2024, 1, 1)]
        day3 = daily[date(2024, 1, 3)]
        self.assertEqual(day1["total_solved"], 1)
        self.assertEqual(day1["buckets"]["rating_900"], 1)
        self.assertEqual(day3["total_solved"], 0)
        self.assertEqual(day3["accepted_count"], 1)
        self.assertEqual(day3["submission_count"], 1)

    def test_wrong_answers_count_only_as_submissions(self):
        submissions = [
            _sub(100, "B", "WRONG_ANSWER", day=1, rating=1200),
            _sub(100, "B", "TIME_LIMIT_EXCEEDED", day=1, rating=1200, offset=10),
            _sub(100, "B", "OK", day=2, rating=1200),
        ]

        daily = compute_daily_stats(submissions)

        day1 = daily[date(2024, 1, 1)]
        self.assertEqual(day1["submission_count"], 2)
        self.assertEqual(day1["accepted_count"], 0)
        self.assertEqual(day1["total_solved"], 0)
        self.assertIsNone(day1["avg_rating"])
        self.assertEqual(daily[date(2024, 1, 2)]["total_solved"], 1)

    def test_multiple_accepts_same_day_count_once(self):
        submissions = [
            _sub(100, "A", "OK", day=1, rating=800),
            _sub(100, "A", "OK", day=1, rating=800, offset=60),
        ]

        stats = compute_daily_stats(submissions)[date(2024, 1, 1)]

        self.assertEqual(stats["total_solved"], 1)
        self.assertEqual(stats["accepted_count"], 2)

    def test_average_uses_bucket_midpoints_and_skips_unknown(self):
        submissions = [
            _sub(100, "A", "OK", day=1, rating=800),
            _sub(100, "B", "OK", day=1, rating=1500, offset=1),
            _sub(100, "C", "OK", day=1, rating=None, offset=2),
        ]

        stats = compute_daily_stats(submissions)[date(2024, 1, 1)]

        self.assertEqual(stats["total_solved"], 3)
        self.assertEqual(stats["buckets"]["rating_unknown"], 1)
        self.assertEqual(stats["max_rating"], 1500)
        self.assertAlmostEqual(stats["avg_rating"], (850 + 1550) / 2)

    def test_day_with_only_unknown_ratings_has_null_average(self):
        stats = compute_daily_stats([_sub(100, "A", "OK", rating=None)])[date(2024, 1, 1)]

        self.assertEqual(stats["total_solved"], 1)
        self.assertIsNone(stats["avg_rating"])
        self.assertIsNone(stats["max_rating"])

    def test_unsorted_input_is_processed_chronologically(self):
        submissions = [
            _sub(200, "C", "OK", day=5, rating=1700),
            _sub(200, "C", "OK", day=2, rating=1700),
        ]

        daily = compute_daily_stats(submissions)

        self.assertEqual(list(daily), [date(2024, 1, 2), date(2024, 1, 5)])
        self.assertEqual(daily[date(2024, 1, 2)]["total_solved"], 1)
        self.assertEqual(daily[date(2024, 1, 5)]["total_solved"], 0)

    def test_input_list_is_not_mutated(self):
        submissions = [_sub(1, "A", day=3), _sub(1, "B", day=1)]
        snapshot = [dict(sub) for sub in submissions]

        compute_daily_stats(submissions)

        self.assertEqual(submissions, snapshot)

    def test_each_problem_counted_on_exactly_one_day_and_buckets_sum(self):
        submissions = []
        for day in range(1, 8):
            for index, rating in (("A", 800), ("B", 1400), ("C", None), ("D", 2600)):
                verdict = "OK" if (day + ord(index)) % 2 else "WRONG_ANSWER"
                submissions.append(_sub(300 + day % 3, index, verdict, day=day, rating=rating, offset=ord(index)))

        daily = compute_daily_stats(submissions)

        solved_keys = {problem_key(sub) for sub in submissions if sub["verdict"] == "OK"}
        self.assertEqual(sum(stats["total_solved"] for stats in daily.values()), len(solved_keys))
        for stats in daily.values():
            self.assertEqual(sum(stats["buckets"][field] for field in RATING_BUCKET_FIELDS), stats["total_solved"])

    def test_is_deterministic(self):
        submissions = [
            _sub(100, "A", "OK", day=1, rating=900),
            _sub(100, "A", "OK", day=1, rating=900),
            _sub(101, "B", "WRONG_ANSWER", day=2, rating=1300),
            _sub(101, "B", "OK", day=2, rating=1300, offset=5),
        ]

        self.assertEqual(compute_daily_stats(submissions), compute_daily_stats(list(submissions)))


class ContestProblemsTests(SimpleTestCase):
    def test_solved_and_hardest_problem(self):
        submissions = [
            _sub(100, "A", "OK", rating=1200),
            _sub(100, "B", "WRONG_ANSWER", rating=1600, offset=30),
        ]

        summary = compute_contest_problems(submissions, [_change(100)])

        self.assertEqual(summary[100]["total_problems"], 2)
        self.assertEqual(summary[100]["problems_solved"], 1)
        self.assertEqual(summary[100]["hardest_problem"]["index"], "B")
        self.assertEqual(summary[100]["hardest_problem"]["rating"], 1600)

    def test_contests_without_rating_change_are_ignored(self):
        submissions = [
            _sub(100, "A", "OK", rating=1200),
            _sub(555, "A", "OK", rating=3000),
        ]

        summary = compute_contest_problems(submissions, [_change(100)])

        self.assertEqual(list(summary), [100])
        self.assertEqual(summary[100]["hardest_problem"]["rating"], 1200)

    def test_rated_contest_without_submissions_keeps_zeroes(self):
        summary = compute_contest_problems([], [_change(42)])

        self.assertEqual(summary[42], {"total_problems": 0, "problems_solved": 0, "hardest_problem": None})

    def test_hardest_tie_keeps_first_encountered(self):
        submissions = [
            _sub(100, "C", "OK", rating=1800),
            _sub(100, "D", "OK", rating=1800, offset=1),
        ]

        summary = compute_contest_problems(submissions, [_change(100)])

        self.assertEqual(summary[100]["hardest_problem"]["index"], "C")

    def test_repeated_submissions_do_not_inflate_counts(self):
        submissions = [
            _sub(100, "A", "WRONG_ANSWER"),
            _sub(100, "A", "OK", offset=1),
            _sub(100, "A", "OK", offset=2),
        ]

        summary = compute_contest_problems(submissions, [_change(100)])

        self.assertEqual(summary[100]["total_problems"], 1)
        self.assertEqual(summary[100]["problems_solved"], 1)
        self.assertLessEqual(summary[100]["problems_solved"], summary[100]["total_problems"])
