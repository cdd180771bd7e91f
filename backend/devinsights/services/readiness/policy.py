from dataclasses import dataclass
from typing import Optional

from devinsights.config import Settings, settings as default_settings


@dataclass(frozen=True)
class ReadinessPolicy:
    """Knobs of the readiness workflow (see Settings for the defaults)."""

    poll_interval: float = 3.0
    max_attempts: Optional[int] = None
    max_duration: Optional[float] = None
    progress_tick: float = 0.5
    progress_step: float = 0.5
    progress_ceiling: float = 90.0
    ingestion_branch: str = "main"
    ingestion_limit: int = 100
    default_redirect_path: str = "/reports/traceability"
    manage_repositories_path: str = "/settings/repositories"
    processing_path_prefix: str = "/process-repository"

    @classmethod
    def from_settings(cls, cfg: Optional[Settings] = None) -> "ReadinessPolicy":
        cfg = cfg or default_settings
        return cls(
            poll_interval=cfg.POLL_INTERVAL_SECONDS,
            max_attempts=cfg.POLL_MAX_ATTEMPTS,
            max_duration=cfg.POLL_MAX_DURATION_SECONDS,
            progress_tick=cfg.PROGRESS_TICK_SECONDS,
            progress_step=cfg.PROGRESS_STEP,
            progress_ceiling=cfg.PROGRESS_CEILING,
            ingestion_branch=cfg.INGESTION_BRANCH,
            ingestion_limit=cfg.INGESTION_COMMIT_LIMIT,
            default_redirect_path=cfg.DEFAULT_REDIRECT_PATH,
            manage_repositories_path=cfg.MANAGE_REPOSITORIES_PATH,
            processing_path_prefix=cfg.PROCESSING_PATH_PREFIX,
        )

    def polling_exhausted(self, attempts: int, elapsed: float) -> bool:
        if self.max_attempts is not None and attempts >= self.max_attempts:
            return True
        if self.max_duration is not None and elapsed >= self.max_duration:
            return True
        return False
