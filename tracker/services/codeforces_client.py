import logging
import time
from typing import Any

import requests
from django.conf import settings

from tracker.exceptions import CodeforcesAPIError

logger = logging.getLogger(__name__)


class CodeforcesClient:
    """
    Cliente da API pública do Codeforces.

    Toda chamada espera um intervalo fixo antes da requisição (piso de rate limit)
    e faz exatamente um GET com timeout. Não há retry.
    """

    BASE_URL = "https://codeforces.com/api"

    @classmethod
    def _base_url(cls) -> str:
        return getattr(settings, "CF_API_URL", cls.BASE_URL).rstrip("/")

    @classmethod
    def _request(cls, method: str, params: dict[str, Any]) -> Any:
        delay = float(getattr(settings, "CF_API_REQUEST_DELAY_SECONDS", 1.0))
        timeout = getattr(settings, "CF_API_TIMEOUT_SECONDS", 10)
        headers = {"User-Agent": getattr(settings, "CF_API_USER_AGENT", "cftracker/1.0")}

        if delay > 0:
            time.sleep(delay)

        url = f"{cls._base_url()}/{method}"
        try:
            response = requests.get(url, params=params, timeout=timeout, headers=headers)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as exc:
            raise CodeforcesAPIError(f"Request to {method} failed: {exc}") from exc
        except ValueError as exc:
            raise CodeforcesAPIError(f"Invalid JSON from {method}") from exc

        if data.get("status") != "OK":
            raise CodeforcesAPIError(f"Codeforces API error: {data.get('comment', '')}")

        return data.get("result")

    @classmethod
    def get_user_info(cls, handle: str | None) -> dict[str, Any] | None:
        if not handle:
            return None

        try:
            users = cls._request("user.info", {"handles": handle})
        except CodeforcesAPIError as exc:
            logger.error("Failed to fetch user info for %s: %s", handle, exc)
            return None

        if not users:
            return None

        payload = users[0]
        return {
            "handle": payload.get("handle", handle),
            "rating": payload.get("rating"),
            "max_rating": payload.get("maxRating"),
            "rank": payload.get("rank"),
            "max_rank": payload.get("maxRank"),
            "email": payload.get("email"),
            "title_photo": payload.get("titlePhoto"),
        }

    @classmethod
    def get_submissions(cls, handle: str | None, start: int = 1, count: int = 100000) -> list[dict[str, Any]]:
        """
        Busca todas as submissões do usuário. A ordem retornada é a da API;
        quem agrega reordena por creation_time.
        """
        if not handle:
            return []

        try:
            raw = cls._request("user.status", {"handle": handle, "from": start, "count": count})
        except CodeforcesAPIError as exc:
            logger.error("Failed to fetch submissions for %s: %s", handle, exc)
            return []

        submissions = []
        for sub in raw or []:
            problem = sub.get("problem", {})
            submissions.append({
                "external_id": str(sub.get("id")),
                "contest_id": sub.get("contestId"),
                "problem_contest_id": problem.get("contestId") or problem.get("problemsetName"),
                "problem_index": problem.get("index", ""),
                "problem_name": problem.get("name", ""),
                "problem_rating": problem.get("rating"),
                "verdict": sub.get("verdict", "UNKNOWN"),
                "creation_time": int(sub.get("creationTimeSeconds", 0)),
            })

        return submissions

    @classmethod
    def get_rating_changes(cls, handle: str | None) -> list[dict[str, Any]]:
        if not handle:
            return []

        try:
            raw = cls._request("user.rating", {"handle": handle})
        except CodeforcesAPIError as exc:
            logger.error("Failed to fetch rating history for %s: %s", handle, exc)
            return []

        changes = []
        for row in raw or []:
            changes.append({
                "contest_id": row.get("contestId"),
                "contest_name": row.get("contestName", ""),
                "rank": row.get("rank"),
                "old_rating": row.get("oldRating"),
                "new_rating": row.get("newRating"),
                "rating_update_time": int(row.get("ratingUpdateTimeSeconds", 0)),
            })

        return changes
