from unittest.mock import patch

import requests
from django.test import SimpleTestCase, override_settings

from tracker.exceptions import CodeforcesAPIError
from tracker.services.codeforces_client import CodeforcesClient


class _MockResponse:
    def __init__(self, status_code: int, payload):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@override_settings(CF_API_REQUEST_DELAY_SECONDS=1.0, CF_API_URL="https://codeforces.com/api")
class CodeforcesClientTests(SimpleTestCase):
    def setUp(self):
        sleep_patcher = patch("tracker.services.codeforces_client.time.sleep")
        self.sleep_mock = sleep_patcher.start()
        self.addCleanup(sleep_patcher.stop)

    def test_request_waits_before_calling_api(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, {"status": "OK", "result": []}),
        ) as get_mock:
            CodeforcesClient._request("user.rating", {"handle": "tourist"})

        self.sleep_mock.assert_called_once_with(1.0)
        get_mock.assert_called_once()
        self.assertEqual(get_mock.call_args.args[0], "https://codeforces.com/api/user.rating")
        self.assertEqual(get_mock.call_args.kwargs["params"], {"handle": "tourist"})
        self.assertIn("timeout", get_mock.call_args.kwargs)

    def test_non_ok_envelope_raises(self):
        payload = {"status": "FAILED", "comment": "handle: User with handle nobody not found"}
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, payload),
        ):
            with self.assertRaises(CodeforcesAPIError) as ctx:
                CodeforcesClient._request("user.info", {"handles": "nobody"})

        self.assertIn("not found", str(ctx.exception))

    def test_http_error_raises(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(503, {}),
        ):
            with self.assertRaises(CodeforcesAPIError):
                CodeforcesClient._request("user.status", {"handle": "tourist"})

    def test_invalid_json_raises(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, ValueError("not json")),
        ):
            with self.assertRaises(CodeforcesAPIError):
                CodeforcesClient._request("user.status", {"handle": "tourist"})

    def test_get_user_info_normalizes_profile(self):
        payload = {
            "status": "OK",
            "result": [
                {
                    "handle": "Tourist",
                    "rating": 3800,
                    "maxRating": 4000,
                    "rank": "legendary grandmaster",
                    "maxRank": "legendary grandmaster",
                    "email": "t@example.com",
                    "titlePhoto": "https://userpic.codeforces.org/t.jpg",
                }
            ],
        }
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, payload),
        ):
            profile = CodeforcesClient.get_user_info("tourist")

        self.assertEqual(profile["handle"], "Tourist")
        self.assertEqual(profile["rating"], 3800)
        self.assertEqual(profile["max_rating"], 4000)
        self.assertEqual(profile["email"], "t@example.com")
        self.assertEqual(profile["title_photo"], "https://userpic.codeforces.org/t.jpg")

    def test_get_user_info_returns_none_on_failure(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            side_effect=requests.ConnectionError("boom"),
        ):
            self.assertIsNone(CodeforcesClient.get_user_info("tourist"))

    def test_missing_handle_skips_request(self):
        with patch("tracker.services.codeforces_client.requests.get") as get_mock:
            self.assertIsNone(CodeforcesClient.get_user_info(""))
            self.assertEqual(CodeforcesClient.get_submissions(None), [])
            self.assertEqual(CodeforcesClient.get_rating_changes(""), [])

        get_mock.assert_not_called()
        self.sleep_mock.assert_not_called()

    def test_get_submissions_normalizes_rows(self):
        payload = {
            "status": "OK",
            "result": [
                {
                    "id": 987,
                    "contestId": 100,
                    "creationTimeSeconds": 1704067200,
                    "verdict": "OK",
                    "problem": {"contestId": 100, "index": "A", "name": "Watermelon", "rating": 800},
                },
                {
                    "id": 988,
                    "creationTimeSeconds": 1704067300,
                    "problem": {"problemsetName": "acmsguru", "index": "101", "name": "Domino"},
                },
            ],
        }
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, payload),
        ) as get_mock:
            submissions = CodeforcesClient.get_submissions("tourist")

        self.assertEqual(get_mock.call_args.kwargs["params"]["from"], 1)
        self.assertEqual(len(submissions), 2)
        self.assertEqual(submissions[0]["external_id"], "987")
        self.assertEqual(submissions[0]["problem_contest_id"], 100)
        self.assertEqual(submissions[0]["problem_rating"], 800)
        self.assertEqual(submissions[0]["creation_time"], 1704067200)
        self.assertEqual(submissions[1]["problem_contest_id"], "acmsguru")
        self.assertIsNone(submissions[1]["problem_rating"])
        self.assertEqual(submissions[1]["verdict"], "UNKNOWN")

    def test_get_submissions_returns_empty_list_on_failure(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, {"status": "FAILED", "comment": "Call limit exceeded"}),
        ):
            self.assertEqual(CodeforcesClient.get_submissions("tourist"), [])

    def test_get_rating_changes_normalizes_rows(self):
        payload = {
            "status": "OK",
            "result": [
                {
                    "contestId": 1900,
                    "contestName": "Codeforces Round 900",
                    "rank": 12,
                    "oldRating": 1500,
                    "newRating": 1620,
                    "ratingUpdateTimeSeconds": 1704074400,
                }
            ],
        }
        with patch(
            "tracker.services.codeforces_client.requests.get",
            return_value=_MockResponse(200, payload),
        ):
            changes = CodeforcesClient.get_rating_changes("tourist")

        self.assertEqual(
            changes,
            [
                {
                    "contest_id": 1900,
                    "contest_name": "Codeforces Round 900",
                    "rank": 12,
                    "old_rating": 1500,
                    "new_rating": 1620,
                    "rating_update_time": 1704074400,
                }
            ],
        )

    def test_get_rating_changes_returns_empty_list_on_timeout(self):
        with patch(
            "tracker.services.codeforces_client.requests.get",
            side_effect=requests.Timeout("slow"),
        ):
            self.assertEqual(CodeforcesClient.get_rating_changes("tourist"), [])
