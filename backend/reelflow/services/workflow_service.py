"""
Workflow service: runs the pure workflow engine against its collaborators.

Each operation is one read-decide-write cycle:
1. load the item (ItemStore)
2. run the engine function (validator / disapprove / review / assignment)
3. save with an optimistic version check
4. dispatch notifications (best-effort, fire-and-forget)

Conflict policy: when the caller passes expected_version, a mismatch is
returned as CONFLICT straight away. When the service did the read itself
it retries exactly once with a fresh read, then gives up.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Awaitable, Callable, Iterable, Mapping

from reelflow.services import assignment_lock, posting
from reelflow.services.assignment_resolver import AssignmentSpec, plan_assignments
from reelflow.services.collaborators import ItemStore, Notifier, PersonDirectory
from reelflow.services.dissolution import can_disapprove, disapprove
from reelflow.services.remarks import append_remark
from reelflow.services.script_review import resubmit_script, review_script, submit_script
from reelflow.services.stage_graph import Edge, edges_for_role, find_edge
from reelflow.services.transition_validator import can_transition, validate_transition
from reelflow.services.trust_gate import gate_shoot_review
from reelflow.services.workflow_types import (
    ASSIGNMENT_ROLES,
    ContentItem,
    ErrorCode,
    GateDecision,
    Ok,
    Person,
    PostingPlatform,
    ProductionStage,
    Result,
    ReviewStatus,
    Role,
    Scores,
    WorkflowPolicy,
    fail,
    policy_from_settings,
)

logger = logging.getLogger(__name__)

MAX_SAVE_ATTEMPTS = 2


@dataclass
class Change:
    """Outcome of one engine decision, ready to be saved."""
    item: ContentItem
    event: str
    payload: dict[str, Any] = field(default_factory=dict)


Step = Callable[[ContentItem], Awaitable[Result[Change]]]


class WorkflowService:
    def __init__(
        self,
        store: ItemStore,
        directory: PersonDirectory,
        notifier: Notifier | None = None,
        *,
        policy: WorkflowPolicy | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.directory = directory
        self.notifier = notifier
        self.policy = policy or policy_from_settings()
        self.clock = clock

    def _now(self) -> datetime | None:
        return self.clock() if self.clock else None

    # ── Core read-decide-write loop ─────────────────────────

    async def _apply(
        self,
        item_id: int,
        actor: Person,
        step: Step,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        attempts = 1 if expected_version is not None else MAX_SAVE_ATTEMPTS
        saved: Result[ContentItem] = fail(ErrorCode.conflict, f"Item {item_id} could not be saved")

        for attempt in range(1, attempts + 1):
            item = await self.store.load_item(item_id)
            if item is None:
                return fail(ErrorCode.not_found, f"Item {item_id} not found")
            if expected_version is not None and item.version != expected_version:
                logger.warning(
                    f"[workflow] Stale write on item {item_id}: "
                    f"client v{expected_version}, stored v{item.version}"
                )
                return fail(
                    ErrorCode.conflict,
                    f"Item {item_id} is at version {item.version}, request was based on {expected_version}",
                )

            decided = await step(item)
            if not decided.ok:
                logger.info(f"[workflow] Refused on item {item_id} for actor {actor.id}: {decided.error.message}")
                return decided
            change: Change = decided.value

            from_stage = item.production_stage.value if item.production_stage else None
            saved = await self.store.save_item(
                change.item,
                item.version,
                event=change.event,
                actor_id=actor.id,
                from_stage=from_stage,
                payload=change.payload,
            )
            if saved.ok:
                new = saved.value
                logger.info(
                    f"[workflow] Item {item_id} {change.event}: "
                    f"{from_stage or '-'} -> {new.production_stage.value if new.production_stage else '-'} "
                    f"(status={new.status.value}, actor={actor.id}, v{new.version})"
                )
                await self._dispatch(change.event, new)
                return saved
            if saved.code != ErrorCode.conflict:
                return saved
            if attempt < attempts:
                logger.warning(f"[workflow] Conflict on item {item_id}, retrying once with a fresh read")

        return saved

    # ── Notifications ───────────────────────────────────────

    async def _people(self, ids: list[int | None]) -> list[Person]:
        people = []
        for pid in dict.fromkeys(i for i in ids if i is not None):
            person = await self.directory.get_person(pid)
            if person is not None:
                people.append(person)
        return people

    async def _recipients(self, event: str, item: ContentItem) -> list[Person]:
        admins = await self._admins()
        if event in ("submitted", "resubmitted", "shoot_submitted", "edit_submitted"):
            return admins
        if event in ("approved", "rejected", "disapproved", "auto_approved"):
            return await self._people([item.author_id])
        if event in ("dissolved", "posted"):
            return await self._people([item.author_id]) + admins
        if event == "reshoot_requested":
            return await self._people([item.assignee(Role.videographer)])
        if event == "revision_requested":
            return await self._people([item.assignee(Role.editor)])
        return await self._people([item.assignee(r) for r in ASSIGNMENT_ROLES])

    async def _admins(self) -> list[Person]:
        return await self.directory.list_admins()

    async def _dispatch(self, event: str, item: ContentItem) -> None:
        if self.notifier is None:
            return
        try:
            recipients = await self._recipients(event, item)
            self.notifier.notify(event, item, recipients)
        except Exception as e:
            logger.warning(f"[workflow] Notification for {event} on item {item.id} failed: {e}")

    # ── Operations ──────────────────────────────────────────

    async def submit(
        self,
        author: Person,
        *,
        title: str | None = None,
        reference_url: str | None = None,
    ) -> GateDecision:
        decision = submit_script(
            author, title=title, reference_url=reference_url, policy=self.policy, now=self._now(),
        )
        created = await self.store.create_item(decision.item, actor_id=author.id)
        event = "auto_approved" if decision.auto_approved else "submitted"
        logger.info(f"[workflow] Item {created.id} {event} by {author.id}")
        await self._dispatch(event, created)
        return GateDecision(auto_approved=decision.auto_approved, item=created)

    async def review(
        self,
        item_id: int,
        actor: Person,
        decision: ReviewStatus,
        scores: Scores,
        feedback: str | None = None,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            reviewed = review_script(
                item, actor, decision, scores, feedback, policy=self.policy, now=self._now(),
            )
            if not reviewed.ok:
                return reviewed
            new = reviewed.value
            if new.is_dissolved:
                event = "dissolved"
            else:
                event = "approved" if decision == ReviewStatus.approved else "rejected"
            return Ok(Change(new, event, {"overall_score": new.overall_score, "feedback": new.feedback}))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def resubmit(
        self,
        item_id: int,
        actor: Person,
        *,
        note: str | None = None,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            done = resubmit_script(item, actor, note=note, now=self._now())
            return Ok(Change(done.value, "resubmitted")) if done.ok else done

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def transition(
        self,
        item_id: int,
        actor: Person,
        to_stage: ProductionStage,
        *,
        note: str | None = None,
        planned_date: date | None = None,
        posted_url: str | None = None,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            moved = validate_transition(
                item, to_stage, actor,
                note=note, planned_date=planned_date, posted_url=posted_url, now=self._now(),
            )
            if not moved.ok:
                return moved
            edge: Edge = find_edge(item.production_stage, to_stage)
            new = moved.value
            event = edge.event
            payload: dict[str, Any] = {"label": edge.label}
            if note:
                payload["note"] = note
            if new.planned_date is not None and edge.requires_planned_date:
                payload["planned_date"] = new.planned_date.isoformat()
            if edge.requires_posted_url:
                payload["posted_url"] = new.posted_url

            if to_stage == ProductionStage.shoot_review:
                gated = gate_shoot_review(new, actor, policy=self.policy, now=self._now())
                if gated.auto_approved:
                    new = gated.item
                    event = "shoot_auto_approved"
                    payload["bypassed"] = ProductionStage.shoot_review.value
            return Ok(Change(new, event, payload))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def disapprove(
        self,
        item_id: int,
        actor: Person,
        reason: str,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            done = disapprove(item, reason, actor, policy=self.policy, now=self._now())
            if not done.ok:
                return done
            new = done.value
            event = "dissolved" if new.is_dissolved else "disapproved"
            return Ok(Change(new, event, {"reason": reason.strip(), "rejection_count": new.rejection_count}))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def assign(
        self,
        item_id: int,
        actor: Person,
        requests: Mapping[Role, AssignmentSpec],
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        auto_roles = [role.value for role, spec in requests.items() if spec.auto_assign and spec.person_id is None]

        async def step(item: ContentItem) -> Result[Change]:
            candidates: dict[Role, list] = {}
            for role, spec in requests.items():
                if spec.is_empty or role not in ASSIGNMENT_ROLES:
                    continue
                people = await self.directory.list_by_role(role, for_update=spec.auto_assign)
                if spec.person_id is not None and all(p.id != spec.person_id for p in people):
                    explicit = await self.directory.get_person(spec.person_id)
                    if explicit is not None:
                        people = people + [explicit]
                candidates[role] = people

            ids = [p.id for people in candidates.values() for p in people]
            workloads = {pid: await self.directory.count_active_assignments(pid) for pid in dict.fromkeys(ids)}

            planned = plan_assignments(
                item, requests, candidates, workloads, assigned_by=actor, now=self._now(),
            )
            if not planned.ok:
                return planned
            plan = planned.value
            payload = {role.value: person.id for role, person in plan.assigned.items()}
            return Ok(Change(plan.item, "assigned", payload))

        async with assignment_lock.hold(auto_roles):
            return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def add_remark(
        self,
        item_id: int,
        actor: Person,
        text: str,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            if not actor.role.is_admin:
                return fail(ErrorCode.forbidden, "Only admins can add remarks")
            if not (text or "").strip():
                return fail(ErrorCode.validation_error, "Remark text is required")
            updated = append_remark(item, f"{actor.display_name}: {text.strip()}", now=self._now())
            return Ok(Change(updated, "remark_added"))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def set_posting_details(
        self,
        item_id: int,
        actor: Person,
        *,
        platform: PostingPlatform,
        caption: str | None,
        heading: str | None = None,
        hashtags: Iterable[str] = (),
        scheduled_post_time: datetime | None = None,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            done = posting.set_posting_details(
                item, actor,
                platform=platform, caption=caption, heading=heading, hashtags=hashtags,
                scheduled_post_time=scheduled_post_time, now=self._now(),
            )
            if not done.ok:
                return done
            payload = {"platform": platform.value}
            if scheduled_post_time is not None:
                payload["scheduled_post_time"] = scheduled_post_time.isoformat()
            return Ok(Change(done.value, "posting_details_set", payload))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def schedule_post(
        self,
        item_id: int,
        actor: Person,
        when: datetime,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            done = posting.schedule_post(item, actor, when, now=self._now())
            if not done.ok:
                return done
            return Ok(Change(done.value, "post_scheduled", {"scheduled_post_time": when.isoformat()}))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def cross_post(
        self,
        item_id: int,
        actor: Person,
        url: str,
        *,
        expected_version: int | None = None,
    ) -> Result[ContentItem]:
        async def step(item: ContentItem) -> Result[Change]:
            done = posting.record_cross_post(item, actor, url, now=self._now())
            if not done.ok:
                return done
            return Ok(Change(done.value, "cross_posted", {"url": url.strip()}))

        return await self._apply(item_id, actor, step, expected_version=expected_version)

    async def next_stages(self, item_id: int, actor: Person) -> Result[dict]:
        """Moves the actor may offer from the current stage, plus whether disapproving is open."""
        item = await self.store.load_item(item_id)
        if item is None:
            return fail(ErrorCode.not_found, f"Item {item_id} not found")
        options = []
        for edge in edges_for_role(item.production_stage, actor.role):
            entry = edge.to_dict()
            entry["allowed"] = can_transition(item, edge.to_stage, actor)
            options.append(entry)
        return Ok({
            "stages": options,
            "can_disapprove": actor.role.is_admin and can_disapprove(item),
        })

    async def workload(self, person_id: int) -> int:
        return await self.directory.count_active_assignments(person_id)

