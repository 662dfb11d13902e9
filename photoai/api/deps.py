"""FastAPI dependencies resolving components from app state."""

from typing import Optional

from fastapi import Header, Request

from ..core.jobs import JobCorrelationWorkflow
from ..providers.object_storage import UploadGateway
from ..storage.base import BaseStorage


async def get_storage(request: Request) -> BaseStorage:
    """Dependency to get the storage accessor from app state."""
    return request.app.state.storage


async def get_workflow(request: Request) -> JobCorrelationWorkflow:
    """Dependency to get the job correlation workflow from app state."""
    return request.app.state.workflow


async def get_uploads(request: Request) -> UploadGateway:
    """Dependency to get the upload gateway from app state."""
    return request.app.state.uploads


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> str:
    """
    Resolve the caller's user id from the bearer token.

    Raises AuthenticationError (401) before the handler body runs.
    """
    user_id = request.app.state.auth_gate.resolve_header(authorization)
    request.state.user_id = user_id
    return user_id
