"""
Domain types for the production workflow engine.

Everything here is plain data: the engine functions take a ContentItem,
return a new one, and never touch the database. Results (including
refusals) are returned explicitly as Ok / Err instead of being raised.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


def _normalize_token(value: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"expected a name, got {type(value).__name__}")
    return value.strip().upper().replace("-", "_").replace(" ", "_")


class Role(str, Enum):
    script_writer = "SCRIPT_WRITER"
    videographer = "VIDEOGRAPHER"
    editor = "EDITOR"
    posting_manager = "POSTING_MANAGER"
    admin = "ADMIN"
    super_admin = "SUPER_ADMIN"

    @classmethod
    def parse(cls, value: "str | Role") -> "Role":
        """Parse a role name case-insensitively ("video-grapher" style tolerated)."""
        if isinstance(value, Role):
            return value
        return cls(_normalize_token(value))

    @property
    def is_admin(self) -> bool:
        return self in (Role.admin, Role.super_admin)


ASSIGNMENT_ROLES: tuple[Role, ...] = (Role.videographer, Role.editor, Role.posting_manager)


class ReviewStatus(str, Enum):
    pending = "PENDING"
    approved = "APPROVED"
    rejected = "REJECTED"

    @classmethod
    def parse(cls, value: "str | ReviewStatus") -> "ReviewStatus":
        if isinstance(value, ReviewStatus):
            return value
        return cls(_normalize_token(value))


class ProductionStage(str, Enum):
    not_started = "NOT_STARTED"
    planning = "PLANNING"
    pre_production = "PRE_PRODUCTION"
    planned = "PLANNED"
    shooting = "SHOOTING"
    shoot_review = "SHOOT_REVIEW"
    ready_for_edit = "READY_FOR_EDIT"
    editing = "EDITING"
    edit_review = "EDIT_REVIEW"
    ready_to_post = "READY_TO_POST"
    posted = "POSTED"

    @classmethod
    def parse(cls, value: "str | ProductionStage | None") -> "ProductionStage | None":
        if value is None or isinstance(value, ProductionStage):
            return value
        if isinstance(value, str) and not value.strip():
            return None
        return cls(_normalize_token(value))


class PostingPlatform(str, Enum):
    instagram_reel = "INSTAGRAM_REEL"
    instagram_post = "INSTAGRAM_POST"
    instagram_story = "INSTAGRAM_STORY"
    tiktok = "TIKTOK"
    youtube_shorts = "YOUTUBE_SHORTS"
    youtube_video = "YOUTUBE_VIDEO"

    @classmethod
    def parse(cls, value: "str | PostingPlatform") -> "PostingPlatform":
        if isinstance(value, PostingPlatform):
            return value
        return cls(_normalize_token(value))

    @property
    def requires_heading(self) -> bool:
        return self in (PostingPlatform.tiktok, PostingPlatform.youtube_shorts, PostingPlatform.youtube_video)


class ErrorCode(str, Enum):
    invalid_transition = "INVALID_TRANSITION"
    forbidden = "FORBIDDEN"
    dissolved = "DISSOLVED"
    validation_error = "VALIDATION_ERROR"
    role_mismatch = "ROLE_MISMATCH"
    no_eligible_person = "NO_ELIGIBLE_PERSON"
    empty_assignment = "EMPTY_ASSIGNMENT"
    conflict = "CONFLICT"
    not_found = "NOT_FOUND"


@dataclass(frozen=True)
class WorkflowError:
    code: ErrorCode
    message: str

    def to_dict(self) -> dict:
        return {"code": self.code.value, "message": self.message}


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T
    ok: bool = field(default=True, init=False)


@dataclass(frozen=True)
class Err:
    error: WorkflowError
    ok: bool = field(default=False, init=False)

    @property
    def code(self) -> ErrorCode:
        return self.error.code


Result = Union[Ok[T], Err]


def fail(code: ErrorCode, message: str) -> Err:
    return Err(WorkflowError(code, message))


@dataclass(frozen=True)
class Person:
    id: int
    email: str
    role: Role
    full_name: str | None = None
    is_trusted_writer: bool = False
    is_active: bool = True
    created_at: datetime | None = None

    @property
    def display_name(self) -> str:
        return self.full_name or self.email


SCORE_MIN = 1
SCORE_MAX = 10


@dataclass(frozen=True)
class Scores:
    hook_strength: int
    content_quality: int
    viral_potential: int
    replication_clarity: int

    def as_tuple(self) -> tuple[int, int, int, int]:
        return (self.hook_strength, self.content_quality, self.viral_potential, self.replication_clarity)

    @property
    def overall_score(self) -> float:
        """Mean of the four scores, one decimal, halves rounded up."""
        values = self.as_tuple()
        mean = Decimal(sum(values)) / len(values)
        return float(mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

    def out_of_range(self) -> list[str]:
        names = ("hook_strength", "content_quality", "viral_potential", "replication_clarity")
        return [n for n, v in zip(names, self.as_tuple()) if not SCORE_MIN <= v <= SCORE_MAX]


@dataclass(frozen=True)
class ContentItem:
    id: int | None
    author_id: int
    status: ReviewStatus = ReviewStatus.pending
    production_stage: ProductionStage | None = None
    rejection_count: int = 0
    is_dissolved: bool = False
    dissolution_reason: str | None = None
    assignees: dict[Role, int] = field(default_factory=dict)
    admin_remarks: str = ""
    scores: Scores | None = None
    feedback: str | None = None
    title: str | None = None
    reference_url: str | None = None
    planned_date: date | None = None
    # Posting details (set by the posting manager while READY_TO_POST)
    posting_platform: PostingPlatform | None = None
    posting_caption: str | None = None
    posting_heading: str | None = None
    posting_hashtags: tuple[str, ...] = ()
    scheduled_post_time: datetime | None = None
    posted_url: str | None = None
    posted_at: datetime | None = None
    # Every live URL, including cross-posts made before the final one
    posted_urls: tuple[dict[str, str], ...] = ()
    version: int = 1
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def overall_score(self) -> float | None:
        return self.scores.overall_score if self.scores else None

    def assignee(self, role: Role) -> int | None:
        return self.assignees.get(role)

    def evolve(self, **changes: Any) -> "ContentItem":
        if "assignees" in changes:
            changes["assignees"] = dict(changes["assignees"])
        for key in ("posting_hashtags", "posted_urls"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return replace(self, **changes)


@dataclass(frozen=True)
class GateDecision:
    auto_approved: bool
    item: ContentItem


@dataclass(frozen=True)
class WorkflowPolicy:
    """Business policy knobs (overridable through settings)."""
    dissolution_threshold: int = 4
    auto_approve_trusted: bool = True
    initial_stage: ProductionStage = ProductionStage.planning
    trusted_shoot_bypass: bool = True


def policy_from_settings(settings: Any = None) -> WorkflowPolicy:
    if settings is None:
        from reelflow.settings import get_settings
        settings = get_settings()
    return WorkflowPolicy(
        dissolution_threshold=settings.dissolution_threshold,
        auto_approve_trusted=settings.auto_approve_trusted,
        initial_stage=ProductionStage.parse(settings.initial_production_stage) or ProductionStage.planning,
        trusted_shoot_bypass=settings.trusted_shoot_bypass,
    )


DEFAULT_POLICY = WorkflowPolicy()
