"""
Collaborator interfaces the workflow engine is hosted on.

The engine itself never does I/O; WorkflowService talks to these.
"""
from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from reelflow.services.workflow_types import ContentItem, Person, Result, Role


@runtime_checkable
class ItemStore(Protocol):
    async def load_item(self, item_id: int) -> ContentItem | None: ...

    async def create_item(self, item: ContentItem, *, actor_id: int | None = None) -> ContentItem: ...

    async def save_item(
        self,
        item: ContentItem,
        expected_version: int,
        *,
        event: str,
        actor_id: int | None = None,
        from_stage: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> Result[ContentItem]:
        """Persist item if its stored version still equals expected_version, else Err(CONFLICT)."""
        ...


@runtime_checkable
class PersonDirectory(Protocol):
    async def get_person(self, person_id: int) -> Person | None: ...

    async def list_by_role(self, role: Role, *, for_update: bool = False) -> list[Person]: ...

    async def count_active_assignments(self, person_id: int) -> int: ...

    async def list_admins(self) -> list[Person]: ...


@runtime_checkable
class Notifier(Protocol):
    def notify(self, event: str, item: ContentItem, recipients: Sequence[Person]) -> None:
        """Fire-and-forget; must not raise."""
        ...
