"""Repository list and the persisted repository selection."""

from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import unquote

from pydantic import ValidationError

from devinsights.dtos.repository import RepositorySelection, RepositorySummary
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.exceptions import (
    InvalidSelectionError,
    RepositoryNotFoundError,
)
from devinsights.services.readiness.status import split_full_name
from devinsights.services.state_store import ClientStateStore

logger = logging.getLogger(__name__)


class RepositorySelectionService:
    def __init__(self, client: AnalyticsApiClient, state: ClientStateStore):
        self._client = client
        self._state = state
        self.repositories: List[RepositorySummary] = []

    async def refresh(self) -> List[RepositorySummary]:
        """
        Reload the user's repositories and reconcile the stored selection.

        A selected repository that is still listed gets its full name
        updated; one that disappeared is deselected.
        """
        docs = await self._client.list_repositories()
        repositories: List[RepositorySummary] = []
        for doc in docs:
            try:
                repositories.append(RepositorySummary.from_api(doc))
            except (ValidationError, AttributeError) as exc:
                logger.warning(f"Skipping unreadable repository entry: {exc}")
        self.repositories = repositories

        selection = await self._state.get_selection()
        if selection is not None:
            repo = self.get_by_id(selection.repo_id)
            if repo is None:
                logger.info(f"Selected repository {selection.repo_full_name} no longer listed")
                await self.clear()
            elif repo.full_name != selection.repo_full_name:
                await self._state.set_selection(
                    RepositorySelection(repo_id=repo.id, repo_full_name=repo.full_name)
                )
        return repositories

    async def selection(self) -> Optional[RepositorySelection]:
        return await self._state.get_selection()

    async def select(self, repo_id: str, repo_full_name: str) -> RepositorySelection:
        if not repo_id or not repo_full_name:
            raise InvalidSelectionError("Repository selection needs both an id and a full name")
        split_full_name(repo_full_name)
        selection = RepositorySelection(repo_id=repo_id, repo_full_name=repo_full_name)
        await self._state.set_selection(selection)
        return selection

    async def clear(self) -> None:
        await self._state.clear_selection()

    def get_by_id(self, repo_id: str) -> Optional[RepositorySummary]:
        return next((r for r in self.repositories if r.id == repo_id), None)

    def get_by_full_name(self, full_name: str) -> Optional[RepositorySummary]:
        return next((r for r in self.repositories if r.full_name == full_name), None)

    async def resolve_for_processing(self, repo_full_name: str) -> str:
        """
        Pick the repository a processing request is about.

        Listed repositories become the selection. Unlisted names are still
        processed as long as they look like ``owner/repo``.
        """
        if not repo_full_name:
            raise RepositoryNotFoundError("")
        decoded = unquote(repo_full_name)
        repo = self.get_by_full_name(repo_full_name) or self.get_by_full_name(decoded)
        if repo is not None:
            await self.select(repo.id, repo.full_name)
            return repo.full_name
        if "/" in decoded:
            logger.info(f"Repository {decoded} not in list, processing it anyway")
            split_full_name(decoded)
            return decoded
        raise RepositoryNotFoundError(repo_full_name)
