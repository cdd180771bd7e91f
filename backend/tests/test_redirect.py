import unittest

from devinsights.services.readiness.policy import ReadinessPolicy
from devinsights.services.readiness.redirect import (
    PendingRedirect,
    normalize_requested_path,
    processing_path,
    resolve_redirect_path,
)


class TestRedirect(unittest.TestCase):

    def setUp(self):
        self.policy = ReadinessPolicy()

    def test_success_uses_requested_path_once(self):
        pending = PendingRedirect("/reports/risk?tab=files")

        self.assertEqual(
            resolve_redirect_path(True, pending, self.policy), "/reports/risk?tab=files"
        )
        self.assertIsNone(pending.path)
        self.assertEqual(
            resolve_redirect_path(True, pending, self.policy), "/reports/traceability"
        )

    def test_success_without_requested_path_uses_fallback(self):
        self.assertEqual(
            resolve_redirect_path(True, PendingRedirect(), self.policy), "/reports/traceability"
        )

    def test_failure_goes_to_manage_repositories_and_drops_path(self):
        pending = PendingRedirect("/reports/risk")

        self.assertEqual(
            resolve_redirect_path(False, pending, self.policy), "/settings/repositories"
        )
        self.assertIsNone(pending.path)

    def test_normalize_requested_path(self):
        self.assertEqual(normalize_requested_path(" /reports/risk "), "/reports/risk")
        for value in (None, "", "null", "undefined", "reports/risk", "//evil.example", "http://x"):
            self.assertIsNone(normalize_requested_path(value), value)

    def test_processing_path_encodes_full_name(self):
        self.assertEqual(
            processing_path("octocat/hello", self.policy), "/process-repository/octocat%2Fhello"
        )

    def test_custom_policy_paths(self):
        policy = ReadinessPolicy(default_redirect_path="/home")

        self.assertEqual(resolve_redirect_path(True, PendingRedirect("null"), policy), "/home")


class TestReadinessPolicy(unittest.TestCase):

    def test_unbounded_by_default(self):
        self.assertFalse(ReadinessPolicy().polling_exhausted(10_000, 10_000.0))

    def test_attempt_and_duration_bounds(self):
        self.assertTrue(ReadinessPolicy(max_attempts=3).polling_exhausted(3, 0.0))
        self.assertFalse(ReadinessPolicy(max_attempts=3).polling_exhausted(2, 0.0))
        self.assertTrue(ReadinessPolicy(max_duration=5.0).polling_exhausted(1, 5.0))


if __name__ == "__main__":
    unittest.main()
