"""Custom exceptions for the DevInsights companion service."""

from __future__ import annotations


class DevInsightsError(Exception):
    """Base exception for service failures."""


class AnalyticsApiError(DevInsightsError):
    """Raised when the analytics API answers with an error or unusable body."""

    def __init__(self, message: str, status_code: int | None = None, payload: object = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AnalyticsTransportError(AnalyticsApiError):
    """Raised when the analytics API cannot be reached (network error, timeout)."""


class AuthenticationError(DevInsightsError):
    """Raised when a login attempt does not yield a usable session."""


class LoginInProgressError(AuthenticationError):
    """Raised when a login is attempted while another one is still running."""


class InvalidRepositoryNameError(DevInsightsError, ValueError):
    """Raised for repository identifiers that are not ``owner/repo``."""

    def __init__(self, repo_full_name: object):
        super().__init__(f"Invalid repository name {repo_full_name!r}, expected 'owner/repo'")
        self.repo_full_name = repo_full_name


class InvalidSelectionError(DevInsightsError, ValueError):
    """Raised when a repository selection lacks an id or a full name."""


class RepositoryNotFoundError(DevInsightsError):
    """Raised when a repository cannot be resolved for processing."""

    def __init__(self, repo_full_name: str):
        super().__init__(f'Repository "{repo_full_name}" not found')
        self.repo_full_name = repo_full_name


class JobNotFoundError(DevInsightsError):
    """Raised when no readiness job exists for a repository."""

    def __init__(self, repo_full_name: str):
        super().__init__(f"No readiness job for {repo_full_name}")
        self.repo_full_name = repo_full_name


class ReadinessTimeoutError(DevInsightsError):
    """
    Raised when a polling bound is exhausted before the repository is ready.

    Only raised when POLL_MAX_ATTEMPTS or POLL_MAX_DURATION_SECONDS is set.
    """

    def __init__(self, repo_full_name: str, attempts: int, elapsed: float):
        super().__init__(
            f"Repository {repo_full_name} was not ready after {attempts} status checks "
            f"({elapsed:.1f}s)"
        )
        self.repo_full_name = repo_full_name
        self.attempts = attempts
        self.elapsed = elapsed
