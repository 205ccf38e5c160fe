import os
import random
import sys
import unittest
from pathlib import Path

# Keep API tests deterministic and offline.
os.environ.setdefault("RATE_LIMIT_ENABLED", "0")

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from fastapi import Request
from fastapi.testclient import TestClient

from app.core.rate_limit import client_key, limiter
from app.main import app
from app.schemas.unemployedle import JobSearchResult
from app.services.job_curation import CurationMode
from app.services.unemployedle_service import UnemployedleService

RESUME = b"""Experience
Backend Engineer, Example Corp
- Built Python APIs on Postgres and Redis.
- Ran services with Docker on AWS.
"""

OPEN_MODE = CurationMode(thresholds=(0.0,), desired_count=10, max_results=10)


class StubSearchClient:
    def __init__(self):
        self.options = []

    async def search_jobs(self, resume_text, options):
        self.options.append(options)
        return JobSearchResult.model_validate(
            {
                "summary": "Searched backend roles.",
                "jobs": [
                    {
                        "company": "Acme",
                        "title": "Backend Engineer",
                        "location": "Remote",
                        "companyUrl": "https://careers.acme.com/jobs/backend-engineer-123456",
                        "keywords": ["python"],
                    }
                ],
            }
        )


class StubVerifier:
    async def verify_jobs(self, jobs):
        return list(jobs)


class UnemployedleApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        limiter.enabled = False
        cls.client = TestClient(app)

    def setUp(self):
        self.search = StubSearchClient()
        app.state.unemployedle_service = UnemployedleService(
            search_client=self.search,
            verifier=StubVerifier(),
            rng=random.Random(0),
            game_mode=OPEN_MODE,
            top_jobs_mode=OPEN_MODE,
        )

    def tearDown(self):
        app.state.unemployedle_service = None

    def _start(self, **form):
        return self.client.post(
            "/v1/games/unemployedle/start",
            files={"resume": ("resume.txt", RESUME, "text/plain")},
            data=form,
        )

    def test_start_game_contract(self):
        response = self._start()
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["maskedCompany"], "____")
        self.assertEqual(body["guessesLeft"], 7)
        self.assertEqual(body["maxGuesses"], 7)
        self.assertEqual(body["status"], "in_progress")
        self.assertEqual(body["job"]["companyMasked"], "____")
        self.assertIsInstance(body["job"]["matchScore"], int)
        self.assertNotIn("hint", body)
        self.assertNotIn("company", body["job"])

    def test_form_fields_use_camel_case(self):
        response = self._start(includeRemote="false", includeSpecific="true", specificLocation="Berlin")
        self.assertEqual(response.status_code, 200)
        options = self.search.options[-1]
        self.assertFalse(options.include_remote)
        self.assertEqual(options.specific_location, "Berlin")

    def test_invalid_options_are_rejected(self):
        response = self._start(includeSpecific="true")
        self.assertEqual(response.status_code, 400)

    def test_missing_resume_file(self):
        response = self.client.post("/v1/games/unemployedle/start", data={"includeRemote": "true"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Resume file is required.")

    def test_empty_resume_file(self):
        response = self.client.post(
            "/v1/games/unemployedle/start",
            files={"resume": ("resume.txt", b"   ", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)

    def test_guess_flow(self):
        game_id = self._start().json()["gameId"]
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": game_id, "letter": "a"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["maskedCompany"], "A___")
        self.assertEqual(body["guessedLetters"], ["A"])
        self.assertFalse(body["alreadyGuessed"])
        self.assertNotIn("revealedCompany", body)

        for letter in "cme":
            body = self.client.post(
                "/v1/games/unemployedle/guess", json={"gameId": game_id, "letter": letter}
            ).json()
        self.assertEqual(body["status"], "won")
        self.assertEqual(body["revealedCompany"], "Acme")
        self.assertEqual(body["jobUrl"], "https://careers.acme.com/jobs/backend-engineer-123456")

    def test_guess_requires_game_and_letter(self):
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": "", "letter": "a"})
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": "abc"})
        self.assertEqual(response.status_code, 400)

    def test_guess_rejects_non_letters(self):
        game_id = self._start().json()["gameId"]
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": game_id, "letter": "ab"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_game(self):
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": "nope", "letter": "a"})
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["detail"], "Game not found")

    def test_top_jobs_contract(self):
        response = self.client.post(
            "/v1/games/unemployedle/jobs",
            files={"resume": ("resume.txt", RESUME, "text/plain")},
            data={"desiredJobTitle": "Backend Engineer"},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["selectionSummary"].endswith("Showing the top matches."))
        job = body["jobs"][0]
        self.assertEqual(job["company"], "Acme")
        self.assertEqual(job["companySize"], "mid")
        self.assertIn("matchScore", job)

    def test_service_missing_returns_503(self):
        app.state.unemployedle_service = None
        response = self.client.post("/v1/games/unemployedle/guess", json={"gameId": "abc", "letter": "a"})
        self.assertEqual(response.status_code, 503)

    def test_health_reports_game_count(self):
        self._start()
        body = self.client.get("/v1/health").json()
        self.assertEqual(body["status"], "healthy")
        self.assertEqual(body["unemployedle"]["active_games"], 1)


class ClientKeyTests(unittest.TestCase):
    def _request(self, headers):
        return Request({"type": "http", "headers": headers, "client": ("10.0.0.9", 4321)})

    def test_forwarded_for_wins(self):
        request = self._request([(b"x-forwarded-for", b"203.0.113.7, 10.0.0.1")])
        self.assertEqual(client_key(request), "203.0.113.7")

    def test_falls_back_to_peer_address(self):
        self.assertEqual(client_key(self._request([])), "10.0.0.9")


if __name__ == "__main__":
    unittest.main()
