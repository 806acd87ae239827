from datetime import timedelta

from django.db.models import Max, Sum
from django.utils import timezone

from tracker.models import RATING_BUCKET_FIELDS, Contest, DailyProblemStats, DailySubmissionHeatmap, Student


def contest_history(student: Student, days: int | None = 365) -> dict:
    contests = Contest.objects.filter(student=student)
    if days:
        contests = contests.filter(contest_time__gte=timezone.now() - timedelta(days=days))
    contests = list(contests.order_by("contest_time"))

    rating_data = [
        {
            "date": contest.contest_time.date().isoformat(),
            "rating": contest.new_rating or 0,
            "contest_name": contest.name,
            "rating_change": contest.rating_change,
        }
        for contest in contests
    ]
    total = len(contests)
    total_change = sum(contest.rating_change or 0 for contest in contests)
    total_solved = sum(contest.problems_solved for contest in contests)

    return {
        "contests": [
            {
                "contest_id": contest.codeforces_contest_id,
                "name": contest.name,
                "rank": contest.rank,
                "old_rating": contest.old_rating,
                "new_rating": contest.new_rating,
                "rating_change": contest.rating_change,
                "contest_time": contest.contest_time.isoformat(),
                "total_problems": contest.total_problems,
                "problems_solved": contest.problems_solved,
                "hardest_problem": contest.hardest_problem,
            }
            for contest in reversed(contests)
        ],
        "rating_data": rating_data,
        "total_contests": total,
        "average_change": total_change / total if total else 0,
        "total_problems_solved": total_solved,
        "average_problems_per_contest": total_solved / total if total else 0,
    }


def problem_stats(student: Student, days: int = 90) -> dict:
    stats_qs = DailyProblemStats.objects.filter(student=student)
    heatmap_qs = DailySubmissionHeatmap.objects.filter(student=student)
    if days and days > 0:
        cutoff = (timezone.now() - timedelta(days=days)).date()
        stats_qs = stats_qs.filter(date__gte=cutoff)
        heatmap_qs = heatmap_qs.filter(date__gte=cutoff)

    aggregates = stats_qs.aggregate(
        total_solved=Sum("total_solved"),
        max_rating=Max("max_rating_solved"),
        **{field: Sum(field) for field in RATING_BUCKET_FIELDS},
    )
    total_solved = aggregates["total_solved"] or 0

    # Day averages weighted by the day's rated solves.
    rated_sum = 0.0
    rated_count = 0
    for row in stats_qs.exclude(avg_rating__isnull=True).values("avg_rating", "total_solved", "rating_unknown"):
        rated = row["total_solved"] - row["rating_unknown"]
        rated_sum += row["avg_rating"] * rated
        rated_count += rated

    return {
        "total_solved": total_solved,
        "max_rating": aggregates["max_rating"],
        "avg_rating": rated_sum / rated_count if rated_count else None,
        "avg_per_day": total_solved / days if days and days > 0 else 0,
        "rating_distribution": {field: aggregates[field] or 0 for field in RATING_BUCKET_FIELDS},
        "daily_submissions": [
            {
                "date": row["date"].isoformat(),
                "count": row["submission_count"],
                "accepted": row["accepted_count"],
            }
            for row in heatmap_qs.order_by("date").values("date", "submission_count", "accepted_count")
        ],
    }
