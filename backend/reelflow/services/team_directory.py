"""
Team registry lookups (PersonDirectory implementation).

Workload = number of assignments on items that are neither POSTED nor
dissolved. Counts are queried on every call and never cached.
"""
from __future__ import annotations

import logging

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from reelflow.models import ContentItemRecord, ProjectAssignment, TeamMember
from reelflow.services.stage_graph import ACTIVE_STAGES
from reelflow.services.workflow_types import Person, Role

logger = logging.getLogger(__name__)


def to_person(member: TeamMember) -> Person:
    return Person(
        id=member.id,
        email=member.email,
        role=Role.parse(member.role),
        full_name=member.full_name,
        is_trusted_writer=bool(member.is_trusted_writer),
        is_active=bool(member.is_active),
        created_at=member.created_at,
    )


def active_assignment_filter():
    """Item-side condition for an assignment that counts toward workload."""
    return and_(
        ContentItemRecord.is_dissolved.is_(False),
        or_(
            ContentItemRecord.production_stage.is_(None),
            ContentItemRecord.production_stage.in_(sorted(s.value for s in ACTIVE_STAGES)),
        ),
    )


class TeamDirectory:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_person(self, person_id: int) -> Person | None:
        member = await self.session.get(TeamMember, person_id)
        return to_person(member) if member else None

    async def list_by_role(self, role: Role, *, for_update: bool = False) -> list[Person]:
        query = (
            select(TeamMember)
            .where(TeamMember.role == role.value)
            .order_by(TeamMember.created_at.asc(), TeamMember.id.asc())
        )
        if for_update:
            # Row locks on Postgres; ignored by SQLite
            query = query.with_for_update()
        res = await self.session.execute(query)
        return [to_person(m) for m in res.scalars().all()]

    async def count_active_assignments(self, person_id: int) -> int:
        count = await self.session.scalar(
            select(func.count(ProjectAssignment.id))
            .join(ContentItemRecord, ProjectAssignment.content_item_id == ContentItemRecord.id)
            .where(and_(ProjectAssignment.person_id == person_id, active_assignment_filter()))
        )
        return count or 0

    async def list_admins(self) -> list[Person]:
        res = await self.session.execute(
            select(TeamMember).where(and_(
                TeamMember.role.in_([Role.admin.value, Role.super_admin.value]),
                TeamMember.is_active.is_(True),
            ))
        )
        return [to_person(m) for m in res.scalars().all()]

    async def list_all(self, *, role: Role | None = None) -> list[Person]:
        query = select(TeamMember).order_by(TeamMember.created_at.asc(), TeamMember.id.asc())
        if role is not None:
            query = query.where(TeamMember.role == role.value)
        res = await self.session.execute(query)
        return [to_person(m) for m in res.scalars().all()]

    async def create_person(
        self,
        *,
        email: str,
        role: Role,
        full_name: str | None = None,
        is_trusted_writer: bool = False,
    ) -> Person:
        member = TeamMember(
            email=email.strip().lower(),
            full_name=full_name,
            role=role.value,
            is_trusted_writer=is_trusted_writer,
            is_active=True,
        )
        self.session.add(member)
        await self.session.commit()
        await self.session.refresh(member)
        logger.info(f"[team] Added {member.email} as {member.role} (id={member.id})")
        return to_person(member)

    async def set_trusted(self, person_id: int, trusted: bool) -> Person | None:
        member = await self.session.get(TeamMember, person_id)
        if member is None:
            return None
        member.is_trusted_writer = trusted
        await self.session.commit()
        await self.session.refresh(member)
        logger.info(f"[team] {member.email} trusted={trusted}")
        return to_person(member)
