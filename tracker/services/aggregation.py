"""
Agregações puras sobre o histórico de um aluno no Codeforces.

Nada aqui toca banco ou rede: as funções recebem as listas normalizadas pelo
CodeforcesClient e devolvem dicionários prontos para persistir.
"""
from datetime import date, datetime, timezone
from typing import Any

from tracker.models import RATING_BUCKET_FIELDS

ACCEPTED_VERDICT = "OK"

UNKNOWN_BUCKET = "rating_unknown"
TOP_BUCKET = "rating_2400_plus"
MIN_BUCKET_RATING = 800
TOP_BUCKET_RATING = 2400
BUCKET_WIDTH = 100

# Representative rating used to average a day's rated solves.
BUCKET_MIDPOINTS = {
    f"rating_{low}": low + BUCKET_WIDTH // 2
    for low in range(MIN_BUCKET_RATING, TOP_BUCKET_RATING, BUCKET_WIDTH)
}
BUCKET_MIDPOINTS[TOP_BUCKET] = 2500


def problem_key(submission: dict[str, Any]) -> str:
    return f"{submission.get('problem_contest_id') or ''}{submission.get('problem_index') or ''}"


def submission_date(creation_time: int) -> date:
    return datetime.fromtimestamp(creation_time, tz=timezone.utc).date()


def rating_bucket(rating: int | None) -> str:
    if not rating:
        return UNKNOWN_BUCKET
    if rating >= TOP_BUCKET_RATING:
        return TOP_BUCKET
    # Ratings below 800 do not exist upstream, but land in the lowest band anyway.
    low = max(MIN_BUCKET_RATING, (int(rating) // BUCKET_WIDTH) * BUCKET_WIDTH)
    return f"rating_{low}"


def _problem_summary(submission: dict[str, Any]) -> dict[str, Any]:
    return {
        "contest_id": submission.get("problem_contest_id"),
        "index": submission.get("problem_index"),
        "name": submission.get("problem_name", ""),
        "rating": submission.get("problem_rating"),
    }


def compute_contest_problems(
    submissions: list[dict[str, Any]],
    rating_changes: list[dict[str, Any]],
) -> dict[int, dict[str, Any]]:
    """
    Resumo de problemas por contest avaliado.

    Só contests presentes no histórico de rating entram; submissões de outros
    contests (treino, virtual, gym) são ignoradas.
    """
    summary: dict[int, dict[str, Any]] = {}
    for change in rating_changes:
        summary[change["contest_id"]] = {
            "total_problems": 0,
            "problems_solved": 0,
            "hardest_problem": None,
        }

    grouped: dict[int, list[dict[str, Any]]] = {}
    for sub in submissions:
        contest_id = sub.get("contest_id")
        if contest_id is None or contest_id not in summary:
            continue
        grouped.setdefault(contest_id, []).append(sub)

    for contest_id, contest_subs in grouped.items():
        seen: set[str] = set()
        solved: set[str] = set()
        hardest = None
        for sub in contest_subs:
            key = problem_key(sub)
            seen.add(key)
            if sub.get("verdict") == ACCEPTED_VERDICT:
                solved.add(key)
            rating = sub.get("problem_rating")
            if rating and (hardest is None or rating > hardest["problem_rating"]):
                hardest = sub

        summary[contest_id] = {
            "total_problems": len(seen),
            "problems_solved": len(solved),
            "hardest_problem": _problem_summary(hardest) if hardest else None,
        }

    return summary


def _empty_day(day: date) -> dict[str, Any]:
    stats = {
        "date": day,
        "total_solved": 0,
        "max_rating": None,
        "avg_rating": None,
        "submission_count": 0,
        "accepted_count": 0,
    }
    stats["buckets"] = {bucket: 0 for bucket in RATING_BUCKET_FIELDS}
    return stats


def _weighted_average(stats: dict[str, Any]) -> float | None:
    buckets = stats["buckets"]
    rated = stats["total_solved"] - buckets[UNKNOWN_BUCKET]
    if rated <= 0:
        return None
    total = sum(BUCKET_MIDPOINTS[bucket] * count for bucket, count in buckets.items() if bucket != UNKNOWN_BUCKET)
    return total / rated


def compute_daily_stats(submissions: list[dict[str, Any]]) -> dict[date, dict[str, Any]]:
    """
    Estatísticas por dia (UTC).

    Um problema conta em total_solved uma única vez: no dia do seu primeiro AC.
    Re-solves em dias posteriores só aparecem em accepted_count.
    """
    # sorted() is stable: equal timestamps keep fetch order.
    ordered = sorted(submissions, key=lambda sub: sub["creation_time"])

    first_solved_day: dict[str, date] = {}
    for sub in ordered:
        if sub.get("verdict") != ACCEPTED_VERDICT:
            continue
        key = problem_key(sub)
        if key not in first_solved_day:
            first_solved_day[key] = submission_date(sub["creation_time"])

    daily: dict[date, dict[str, Any]] = {}
    solved: set[str] = set()
    for sub in ordered:
        day = submission_date(sub["creation_time"])
        stats = daily.get(day)
        if stats is None:
            stats = daily[day] = _empty_day(day)

        stats["submission_count"] += 1
        if sub.get("verdict") != ACCEPTED_VERDICT:
            continue
        stats["accepted_count"] += 1

        key = problem_key(sub)
        if key in solved or first_solved_day.get(key) != day:
            continue
        solved.add(key)
        stats["total_solved"] += 1

        rating = sub.get("problem_rating")
        bucket = rating_bucket(rating)
        if bucket != UNKNOWN_BUCKET:
            stats["max_rating"] = max(stats["max_rating"] or 0, rating)
        stats["buckets"][bucket] += 1

    for stats in daily.values():
        stats["avg_rating"] = _weighted_average(stats)

    return dict(sorted(daily.items()))
