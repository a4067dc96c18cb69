"""
Team registry API: members, roles, trusted-writer flag, workload.
"""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .deps import SessionDep, get_actor, require_admin
from .schemas import TeamMemberCreate, TeamMemberRead, TrustUpdate, WorkloadRead
from .services.team_directory import TeamDirectory
from .services.workflow_types import Person, Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/team", tags=["team"])


@router.get("", response_model=list[TeamMemberRead])
async def list_team(
    session: AsyncSession = SessionDep,
    actor: Person = Depends(get_actor),
    role: Optional[str] = Query(None),
):
    try:
        role_filter = Role.parse(role) if role else None
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    people = await TeamDirectory(session).list_all(role=role_filter)
    return [TeamMemberRead.from_person(p) for p in people]


@router.post("", response_model=TeamMemberRead, status_code=201)
async def add_member(
    payload: TeamMemberCreate,
    session: AsyncSession = SessionDep,
    actor: Person = Depends(require_admin),
):
    try:
        person = await TeamDirectory(session).create_person(
            email=payload.email,
            role=payload.role,
            full_name=payload.full_name,
            is_trusted_writer=payload.is_trusted_writer,
        )
    except IntegrityError:
        await session.rollback()
        raise HTTPException(status_code=409, detail=f"Team member {payload.email} already exists")
    return TeamMemberRead.from_person(person)


@router.patch("/{person_id}/trust", response_model=TeamMemberRead)
async def set_trust(
    person_id: int,
    payload: TrustUpdate,
    session: AsyncSession = SessionDep,
    actor: Person = Depends(require_admin),
):
    """Toggle trusted-writer status (trusted submissions skip review)."""
    person = await TeamDirectory(session).set_trusted(person_id, payload.is_trusted_writer)
    if person is None:
        raise HTTPException(status_code=404, detail="Team member not found")
    logger.info(f"[team] {actor.id} set trusted={payload.is_trusted_writer} for {person_id}")
    return TeamMemberRead.from_person(person)


@router.get("/{person_id}/workload", response_model=WorkloadRead)
async def get_workload(
    person_id: int,
    session: AsyncSession = SessionDep,
    actor: Person = Depends(get_actor),
):
    directory = TeamDirectory(session)
    if await directory.get_person(person_id) is None:
        raise HTTPException(status_code=404, detail="Team member not found")
    return WorkloadRead(person_id=person_id, active_assignments=await directory.count_active_assignments(person_id))
