"""
Shared FastAPI dependencies: acting team member, workflow service, error mapping.
"""
from __future__ import annotations

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from .db import get_session
from .services.content_repository import ContentRepository
from .services.notify import WorkflowNotifier
from .services.team_directory import TeamDirectory
from .services.workflow_service import WorkflowService
from .services.workflow_types import Err, ErrorCode, Person

SessionDep = Depends(get_session)

ERROR_STATUS = {
    ErrorCode.invalid_transition: 409,
    ErrorCode.forbidden: 403,
    ErrorCode.dissolved: 410,
    ErrorCode.validation_error: 422,
    ErrorCode.role_mismatch: 422,
    ErrorCode.no_eligible_person: 409,
    ErrorCode.empty_assignment: 422,
    ErrorCode.conflict: 409,
    ErrorCode.not_found: 404,
}


def raise_for_error(result: Err) -> None:
    raise HTTPException(status_code=ERROR_STATUS.get(result.code, 400), detail=result.error.to_dict())


async def get_actor(
    x_actor_id: int | None = Header(default=None),
    session: AsyncSession = SessionDep,
) -> Person:
    if x_actor_id is None:
        raise HTTPException(status_code=401, detail="X-Actor-Id header required")
    person = await TeamDirectory(session).get_person(x_actor_id)
    if person is None or not person.is_active:
        raise HTTPException(status_code=401, detail=f"Unknown team member {x_actor_id}")
    return person


def get_workflow_service(session: AsyncSession = SessionDep) -> WorkflowService:
    return WorkflowService(ContentRepository(session), TeamDirectory(session), WorkflowNotifier())


def require_admin(actor: Person = Depends(get_actor)) -> Person:
    if not actor.role.is_admin:
        raise HTTPException(status_code=403, detail={"code": ErrorCode.forbidden.value, "message": "Admin only"})
    return actor
