import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.normalize.job_urls import build_fallback_url, normalize_company_url, normalize_source_url
from app.normalize.normalize_jobs import (
    apply_job_rankings,
    build_company_hint,
    build_job_id,
    normalize_company_key,
    normalize_company_size,
    normalize_job_results,
    normalize_job_source,
    normalize_keywords,
    normalize_match_score,
    sanitize_company_hint,
)
from app.schemas.unemployedle import JobRanking


class FieldNormalizationTests(unittest.TestCase):
    def test_source_priority(self):
        self.assertEqual(normalize_job_source("LinkedIn via Indeed"), "LinkedIn")
        self.assertEqual(normalize_job_source("glassdoor"), "Glassdoor")
        self.assertEqual(normalize_job_source("Fortune 500 careers"), "Fortune 500")
        self.assertEqual(normalize_job_source("Indeed"), "Indeed")
        self.assertEqual(normalize_job_source("Company careers page"), "Company Careers")
        self.assertEqual(normalize_job_source(None), "Other")

    def test_keywords_from_list_or_delimited_string(self):
        self.assertEqual(normalize_keywords([" Python ", "python", "AWS", ""]), ["python", "aws"])
        self.assertEqual(normalize_keywords("React, TypeScript/GraphQL|react"), ["react", "typescript", "graphql"])
        self.assertEqual(normalize_keywords(42), [])

    def test_match_score_scale(self):
        self.assertEqual(normalize_match_score(85), 0.85)
        self.assertEqual(normalize_match_score(0.7), 0.7)
        self.assertEqual(normalize_match_score(250), 1.0)
        self.assertIsNone(normalize_match_score("n/a"))
        self.assertIsNone(normalize_match_score(float("nan")))

    def test_company_size_buckets(self):
        self.assertEqual(normalize_company_size("Series B startup"), "startup")
        self.assertEqual(normalize_company_size("scale-up"), "mid")
        self.assertEqual(normalize_company_size("Enterprise"), "large")
        self.assertEqual(normalize_company_size(None), "mid")

    def test_company_key_strips_legal_suffixes(self):
        self.assertEqual(normalize_company_key("Acme, Inc."), "acme")
        self.assertEqual(normalize_company_key("Globex Corporation LLC"), "globex")
        self.assertEqual(normalize_company_key("Co"), "co")

    def test_job_id_is_content_addressed(self):
        first = build_job_id("Acme", "Engineer", "Remote", "https://acme.com/jobs/1")
        self.assertEqual(first, build_job_id("Acme", "Engineer", "Remote", "https://acme.com/jobs/1"))
        self.assertNotEqual(first, build_job_id("Acme", "Engineer", "Remote", "https://acme.com/jobs/2"))
        self.assertEqual(len(first), 12)


class UrlRuleTests(unittest.TestCase):
    def test_company_url_rejects_job_boards_and_google_search(self):
        self.assertEqual(
            normalize_company_url("https://boards.greenhouse.io/acme/jobs/123456"),
            "https://boards.greenhouse.io/acme/jobs/123456",
        )
        self.assertIsNone(normalize_company_url("https://www.linkedin.com/jobs/view/1234567"))
        self.assertIsNone(normalize_company_url("https://uk.indeed.com/viewjob?jk=abcdef123"))
        self.assertIsNone(normalize_company_url("https://www.google.com/search?q=acme+jobs"))
        self.assertIsNone(normalize_company_url("ftp://acme.com/jobs"))
        self.assertIsNone(normalize_company_url("https://localhost/jobs"))

    def test_unparseable_urls_are_rejected(self):
        for url in ("https://careers.acme.com:abc/jobs/1", "https://xn--.com/jobs/1", "https://exa\x00mple.com/jobs/1"):
            with self.subTest(url=url):
                self.assertIsNone(normalize_company_url(url))
        self.assertEqual(normalize_company_url("https://careers.acme.com:8443/jobs/1"), "https://careers.acme.com:8443/jobs/1")

    def test_source_url_requires_detail_page_with_id(self):
        self.assertIsNotNone(normalize_source_url("https://www.linkedin.com/jobs/view/3812345678"))
        self.assertIsNone(normalize_source_url("https://www.linkedin.com/jobs/view/123"))
        self.assertIsNone(normalize_source_url("https://www.linkedin.com/jobs/search/?keywords=python"))
        self.assertIsNotNone(normalize_source_url("https://www.indeed.com/viewjob?jk=9f8e7d6c5b"))
        self.assertIsNone(normalize_source_url("https://www.indeed.com/jobs?q=python"))
        self.assertIsNotNone(
            normalize_source_url("https://www.glassdoor.com/job-listing/backend-engineer-acme-JV.htm?jl=1009876543")
        )
        self.assertIsNone(normalize_source_url("https://www.glassdoor.com/job-listing/backend-engineer.htm"))
        self.assertIsNone(normalize_source_url("https://acme.com/careers/123456"))

    def test_fallback_urls_are_deterministic_search_links(self):
        url = build_fallback_url("LinkedIn", "Acme", "Backend Engineer", "Remote")
        self.assertEqual(url, "https://www.linkedin.com/jobs/search/?keywords=Backend%20Engineer%20Acme%20Remote")
        self.assertTrue(build_fallback_url("Other", "Acme", "Engineer", "Berlin").startswith("https://www.google.com/search?q="))


class CompanyHintTests(unittest.TestCase):
    def test_hint_that_names_company_is_rejected(self):
        self.assertIsNone(sanitize_company_hint("Acme builds rockets for everyone", "Acme Inc."))
        self.assertIsNone(sanitize_company_hint("Payments leader HubSpot-style", "HubSpot"))
        self.assertEqual(
            sanitize_company_hint("Builds payment rails for small businesses", "Acme Inc."),
            "Builds payment rails for small businesses",
        )

    def test_generic_words_in_company_name_do_not_block_hints(self):
        hint = sanitize_company_hint("Regional health network with clinics", "Nimbus Health")
        self.assertEqual(hint, "Regional health network with clinics")

    def test_long_hint_is_truncated(self):
        hint = sanitize_company_hint("word " * 60, "Acme")
        self.assertLessEqual(len(hint), 160)

    def test_templated_hint_never_leaks_company(self):
        hint = build_company_hint(
            company="Seattle Robotics",
            company_size="startup",
            location="Seattle, WA",
            keywords=["python", "testing", "docker"],
            focus_tag="backend engineering",
        )
        self.assertNotIn("Seattle", hint)
        self.assertTrue(hint.startswith("Fast-growing software startup"))
        self.assertIn("python, docker", hint)


class NormalizeJobResultsTests(unittest.TestCase):
    def test_drops_blank_entries_and_duplicates_keeping_first(self):
        jobs = normalize_job_results(
            [
                {"company": "Acme Inc.", "title": "Backend Engineer", "location": "Remote", "source": "LinkedIn"},
                {"company": "  ", "title": "Engineer"},
                {"company": "Globex", "title": None},
                "not a job",
                {"company": "ACME", "title": "backend engineer", "location": "remote", "source": "Indeed"},
                {"company": "Initech", "title": "Data Analyst", "location": "Austin, TX"},
            ]
        )
        self.assertEqual([job.company for job in jobs], ["Acme Inc.", "Initech"])
        self.assertEqual(jobs[0].source, "LinkedIn")

    def test_defaults_and_url_resolution(self):
        [job] = normalize_job_results(
            [
                {
                    "company": "Acme",
                    "title": "Backend Engineer",
                    "source": "linkedin",
                    "rating": "9",
                    "companyUrl": "https://www.linkedin.com/jobs/view/3812345678",
                    "url": "https://jobs.lever.co/acme/1234-5678",
                    "matchScore": 82,
                    "companyHint": "Acme makes everything",
                    "companySize": "Fortune 500 enterprise",
                }
            ]
        )
        self.assertEqual(job.location, "Remote")
        self.assertEqual(job.rating, 5.0)
        self.assertEqual(job.company_url, "https://jobs.lever.co/acme/1234-5678")
        self.assertIsNone(job.source_url)
        self.assertEqual(job.url, job.company_url)
        self.assertEqual(job.match_score_hint, 0.82)
        self.assertEqual(job.company_size, "large")
        self.assertNotIn("Acme", job.company_hint)
        self.assertIn("backend", job.keywords)
        self.assertEqual(job.id, build_job_id("Acme", "Backend Engineer", "Remote", job.url))

    def test_legacy_job_board_url_becomes_source_url(self):
        [job] = normalize_job_results(
            [
                {
                    "company": "Globex",
                    "title": "Product Manager",
                    "location": "Berlin",
                    "source": "Indeed",
                    "url": "https://de.indeed.com/viewjob?jk=a1b2c3d4e5",
                }
            ]
        )
        self.assertIsNone(job.company_url)
        self.assertEqual(job.source_url, "https://de.indeed.com/viewjob?jk=a1b2c3d4e5")
        self.assertEqual(job.url, job.source_url)

    def test_missing_urls_fall_back_to_search(self):
        [job] = normalize_job_results([{"company": "Globex", "title": "Designer", "source": "Glassdoor"}])
        self.assertIsNone(job.company_url)
        self.assertIsNone(job.source_url)
        self.assertTrue(job.url.startswith("https://www.glassdoor.com/Job/jobs.htm?sc.keyword="))
        self.assertEqual(job.rating, 4.0)


class RankingOverlayTests(unittest.TestCase):
    def test_overlay_updates_matching_ids_only(self):
        jobs = normalize_job_results(
            [
                {"company": "Acme", "title": "Backend Engineer"},
                {"company": "Globex", "title": "Frontend Engineer"},
            ]
        )
        overlaid = apply_job_rankings(
            jobs,
            [
                JobRanking(id=jobs[0].id, match_score=91, company_size="startup", company_hint="Acme is cool"),
                JobRanking(id="unknown", match_score=10),
            ],
        )
        self.assertEqual(overlaid[0].match_score_hint, 0.91)
        self.assertEqual(overlaid[0].company_size, "startup")
        self.assertEqual(overlaid[0].company_hint, jobs[0].company_hint)
        self.assertEqual(overlaid[1], jobs[1])


if __name__ == "__main__":
    unittest.main()
