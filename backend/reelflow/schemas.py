from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from .services.remarks import parse_remarks
from .services.workflow_types import (
    ContentItem,
    Person,
    PostingPlatform,
    ProductionStage,
    ReviewStatus,
    Role,
)


class TeamMemberCreate(BaseModel):
    email: str
    role: Role
    full_name: str | None = None
    is_trusted_writer: bool = False

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: Any) -> Role:
        return Role.parse(value)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        value = value.strip().lower()
        if "@" not in value:
            raise ValueError("email must contain @")
        return value


class TeamMemberRead(BaseModel):
    id: int
    email: str
    full_name: str | None = None
    role: Role
    is_trusted_writer: bool
    is_active: bool
    created_at: datetime | None = None

    class Config:
        from_attributes = True

    @classmethod
    def from_person(cls, person: Person) -> "TeamMemberRead":
        return cls.model_validate(person)


class TrustUpdate(BaseModel):
    is_trusted_writer: bool


class WorkloadRead(BaseModel):
    person_id: int
    active_assignments: int


class ContentSubmit(BaseModel):
    title: str | None = None
    reference_url: str | None = None


class VersionedRequest(BaseModel):
    # Version the client last saw; omit to let the server read the latest
    expected_version: int | None = Field(default=None, ge=1)


class ReviewRequest(VersionedRequest):
    decision: ReviewStatus
    hook_strength: int
    content_quality: int
    viral_potential: int
    replication_clarity: int
    feedback: str | None = None

    @field_validator("decision", mode="before")
    @classmethod
    def normalize_decision(cls, value: Any) -> ReviewStatus:
        return ReviewStatus.parse(value)


class ResubmitRequest(VersionedRequest):
    note: str | None = None


class TransitionRequest(VersionedRequest):
    to_stage: ProductionStage
    note: str | None = None
    # PRE_PRODUCTION -> PLANNED
    planned_date: date | None = None
    # READY_TO_POST -> POSTED
    posted_url: str | None = None

    @field_validator("to_stage", mode="before")
    @classmethod
    def normalize_stage(cls, value: Any) -> ProductionStage:
        stage = ProductionStage.parse(value)
        if stage is None:
            raise ValueError("to_stage is required")
        return stage


class DisapproveRequest(VersionedRequest):
    reason: str


class PostingDetailsRequest(VersionedRequest):
    platform: PostingPlatform
    caption: str
    heading: str | None = None
    hashtags: list[str] = Field(default_factory=list)
    scheduled_post_time: datetime | None = None

    @field_validator("platform", mode="before")
    @classmethod
    def normalize_platform(cls, value: Any) -> PostingPlatform:
        return PostingPlatform.parse(value)


class ScheduleRequest(VersionedRequest):
    scheduled_post_time: datetime


class CrossPostRequest(VersionedRequest):
    url: str


class RoleAssignment(BaseModel):
    person_id: int | None = None
    auto_assign: bool = False


class AssignRequest(VersionedRequest):
    videographer: RoleAssignment | None = None
    editor: RoleAssignment | None = None
    posting_manager: RoleAssignment | None = None


class RemarkRequest(VersionedRequest):
    text: str


class ScoresRead(BaseModel):
    hook_strength: int
    content_quality: int
    viral_potential: int
    replication_clarity: int
    overall_score: float


class RemarkEntry(BaseModel):
    at: str
    text: str


class ContentItemRead(BaseModel):
    id: int
    author_id: int
    title: str | None = None
    reference_url: str | None = None
    planned_date: date | None = None
    status: ReviewStatus
    production_stage: ProductionStage | None = None
    rejection_count: int
    is_dissolved: bool
    dissolution_reason: str | None = None
    assignees: dict[str, int]
    scores: ScoresRead | None = None
    feedback: str | None = None
    admin_remarks: str
    remarks: list[RemarkEntry]
    posting_platform: PostingPlatform | None = None
    posting_caption: str | None = None
    posting_heading: str | None = None
    posting_hashtags: list[str] = Field(default_factory=list)
    scheduled_post_time: datetime | None = None
    posted_url: str | None = None
    posted_at: datetime | None = None
    posted_urls: list[dict[str, str]] = Field(default_factory=list)
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_item(cls, item: ContentItem) -> "ContentItemRead":
        scores = None
        if item.scores is not None:
            scores = ScoresRead(
                hook_strength=item.scores.hook_strength,
                content_quality=item.scores.content_quality,
                viral_potential=item.scores.viral_potential,
                replication_clarity=item.scores.replication_clarity,
                overall_score=item.scores.overall_score,
            )
        return cls(
            id=item.id,
            author_id=item.author_id,
            title=item.title,
            reference_url=item.reference_url,
            status=item.status,
            production_stage=item.production_stage,
            rejection_count=item.rejection_count,
            is_dissolved=item.is_dissolved,
            dissolution_reason=item.dissolution_reason,
            assignees={role.value: pid for role, pid in item.assignees.items()},
            scores=scores,
            feedback=item.feedback,
            admin_remarks=item.admin_remarks,
            remarks=[RemarkEntry(**r) for r in parse_remarks(item.admin_remarks)],
            planned_date=item.planned_date,
            posting_platform=item.posting_platform,
            posting_caption=item.posting_caption,
            posting_heading=item.posting_heading,
            posting_hashtags=list(item.posting_hashtags),
            scheduled_post_time=item.scheduled_post_time,
            posted_url=item.posted_url,
            posted_at=item.posted_at,
            posted_urls=[dict(p) for p in item.posted_urls],
            version=item.version,
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class SubmitResponse(BaseModel):
    auto_approved: bool
    item: ContentItemRead


class ContentListResponse(BaseModel):
    items: list[ContentItemRead]
    total: int


class StageOption(BaseModel):
    next: ProductionStage
    role: Role
    label: str
    description: str
    requires_note: bool
    requires_planned_date: bool = False
    requires_posted_url: bool = False
    allowed: bool


class NextStagesResponse(BaseModel):
    stages: list[StageOption]
    can_disapprove: bool


class WorkflowEventRead(BaseModel):
    id: int
    event: str
    actor_id: int | None = None
    from_stage: str | None = None
    to_stage: str | None = None
    payload_json: dict | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True
