"""Service wiring shared by the API routers."""

from dataclasses import dataclass

from fastapi import Depends, Request

from devinsights.config import Settings
from devinsights.services.analytics.client import AnalyticsApiClient
from devinsights.services.readiness.workflow import ReadinessWorkflow
from devinsights.services.selection_service import RepositorySelectionService
from devinsights.services.session_service import SessionService
from devinsights.services.state_store import ClientStateStore


@dataclass
class AppServices:
    settings: Settings
    state: ClientStateStore
    client: AnalyticsApiClient
    sessions: SessionService
    selection: RepositorySelectionService
    workflow: ReadinessWorkflow

    async def close(self) -> None:
        await self.workflow.shutdown()
        await self.state.close()


def get_services(request: Request) -> AppServices:
    return request.app.state.services


def get_session_service(services: AppServices = Depends(get_services)) -> SessionService:
    return services.sessions


def get_selection_service(
    services: AppServices = Depends(get_services),
) -> RepositorySelectionService:
    return services.selection


def get_workflow(services: AppServices = Depends(get_services)) -> ReadinessWorkflow:
    return services.workflow
