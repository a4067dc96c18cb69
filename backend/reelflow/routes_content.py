"""
Content workflow API: script submission, review, production stages, team assignment.
"""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from .deps import SessionDep, get_actor, get_workflow_service, raise_for_error
from .schemas import (
    AssignRequest,
    ContentItemRead,
    ContentListResponse,
    ContentSubmit,
    CrossPostRequest,
    DisapproveRequest,
    NextStagesResponse,
    PostingDetailsRequest,
    RemarkRequest,
    ResubmitRequest,
    ReviewRequest,
    ScheduleRequest,
    SubmitResponse,
    TransitionRequest,
    WorkflowEventRead,
)
from .services.assignment_resolver import AssignmentSpec
from .services.content_repository import ContentRepository
from .services.workflow_service import WorkflowService
from .services.workflow_types import Person, ProductionStage, Result, ReviewStatus, Role, Scores

router = APIRouter(prefix="/api/content", tags=["content"])

ActorDep = Depends(get_actor)
ServiceDep = Depends(get_workflow_service)


def _unwrap(result: Result) -> ContentItemRead:
    if not result.ok:
        raise_for_error(result)
    return ContentItemRead.from_item(result.value)


@router.post("", response_model=SubmitResponse, status_code=201)
async def submit_content(
    payload: ContentSubmit,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    """Submit a script; trusted writers skip the review queue."""
    decision = await service.submit(actor, title=payload.title, reference_url=payload.reference_url)
    return SubmitResponse(auto_approved=decision.auto_approved, item=ContentItemRead.from_item(decision.item))


@router.get("", response_model=ContentListResponse)
async def list_content(
    session: AsyncSession = SessionDep,
    actor: Person = ActorDep,
    status: Optional[str] = Query(None, description="PENDING / APPROVED / REJECTED"),
    stage: Optional[str] = Query(None, description="Production stage"),
    assignee_id: Optional[int] = Query(None),
    include_dissolved: bool = Query(False),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    try:
        status_filter = ReviewStatus.parse(status) if status else None
        stage_filter = ProductionStage.parse(stage)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    items, total = await ContentRepository(session).list_items(
        status=status_filter,
        stage=stage_filter,
        assignee_id=assignee_id,
        include_dissolved=include_dissolved,
        limit=limit,
        offset=offset,
    )
    return ContentListResponse(items=[ContentItemRead.from_item(i) for i in items], total=total)


@router.get("/{item_id}", response_model=ContentItemRead)
async def get_content(
    item_id: int,
    session: AsyncSession = SessionDep,
    actor: Person = ActorDep,
):
    item = await ContentRepository(session).load_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content item not found")
    return ContentItemRead.from_item(item)


@router.get("/{item_id}/next-stages", response_model=NextStagesResponse)
async def next_stages(
    item_id: int,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    """Stages reachable from the current one for the calling team member."""
    result = await service.next_stages(item_id, actor)
    if not result.ok:
        raise_for_error(result)
    return result.value


@router.post("/{item_id}/review", response_model=ContentItemRead)
async def review_content(
    item_id: int,
    payload: ReviewRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    scores = Scores(
        hook_strength=payload.hook_strength,
        content_quality=payload.content_quality,
        viral_potential=payload.viral_potential,
        replication_clarity=payload.replication_clarity,
    )
    return _unwrap(await service.review(
        item_id, actor, payload.decision, scores, payload.feedback,
        expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/resubmit", response_model=ContentItemRead)
async def resubmit_content(
    item_id: int,
    payload: ResubmitRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    return _unwrap(await service.resubmit(
        item_id, actor, note=payload.note, expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/transition", response_model=ContentItemRead)
async def transition_content(
    item_id: int,
    payload: TransitionRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    return _unwrap(await service.transition(
        item_id, actor, payload.to_stage,
        note=payload.note,
        planned_date=payload.planned_date,
        posted_url=payload.posted_url,
        expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/posting", response_model=ContentItemRead)
async def set_posting_details(
    item_id: int,
    payload: PostingDetailsRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    """Platform, caption and optional schedule for an item ready to post."""
    return _unwrap(await service.set_posting_details(
        item_id, actor,
        platform=payload.platform,
        caption=payload.caption,
        heading=payload.heading,
        hashtags=payload.hashtags,
        scheduled_post_time=payload.scheduled_post_time,
        expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/schedule", response_model=ContentItemRead)
async def schedule_post(
    item_id: int,
    payload: ScheduleRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    return _unwrap(await service.schedule_post(
        item_id, actor, payload.scheduled_post_time, expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/cross-post", response_model=ContentItemRead)
async def cross_post(
    item_id: int,
    payload: CrossPostRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    """Record a live URL and keep the item queued for another platform."""
    return _unwrap(await service.cross_post(
        item_id, actor, payload.url, expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/disapprove", response_model=ContentItemRead)
async def disapprove_content(
    item_id: int,
    payload: DisapproveRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    """Send an item back to script review; repeated disapprovals dissolve it."""
    return _unwrap(await service.disapprove(
        item_id, actor, payload.reason, expected_version=payload.expected_version,
    ))


@router.post("/{item_id}/assign", response_model=ContentItemRead)
async def assign_team(
    item_id: int,
    payload: AssignRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    requests: dict[Role, AssignmentSpec] = {}
    for role in (Role.videographer, Role.editor, Role.posting_manager):
        spec = getattr(payload, role.name)
        if spec is not None:
            requests[role] = AssignmentSpec(person_id=spec.person_id, auto_assign=spec.auto_assign)
    try:
        result = await service.assign(item_id, actor, requests, expected_version=payload.expected_version)
    except TimeoutError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return _unwrap(result)


@router.post("/{item_id}/remarks", response_model=ContentItemRead)
async def add_remark(
    item_id: int,
    payload: RemarkRequest,
    actor: Person = ActorDep,
    service: WorkflowService = ServiceDep,
):
    return _unwrap(await service.add_remark(
        item_id, actor, payload.text, expected_version=payload.expected_version,
    ))


@router.get("/{item_id}/events", response_model=list[WorkflowEventRead])
async def list_events(
    item_id: int,
    session: AsyncSession = SessionDep,
    actor: Person = ActorDep,
):
    repo = ContentRepository(session)
    if await repo.load_item(item_id) is None:
        raise HTTPException(status_code=404, detail="Content item not found")
    return await repo.list_events(item_id)
