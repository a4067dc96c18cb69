"""
Celery tasks.

workflow.notify: delivers one workflow notification (Telegram) in the
worker process.
"""
from __future__ import annotations

import asyncio
import logging

import httpx

from reelflow.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    bind=True,
    name="workflow.notify",
    autoretry_for=(httpx.TransportError,),
    retry_backoff=True,
    retry_kwargs={"max_retries": 3},
    queue="workflow",
)
def deliver_workflow_event(self, event: str, item: dict, recipients: list[str]) -> bool:
    """Celery task: send a workflow event notification."""
    from reelflow.services.notify import send_workflow_event

    logger.info(
        f"[worker] notify {event} for item {item.get('id')} "
        f"(celery_id={self.request.id}, attempt={self.request.retries + 1})"
    )
    return asyncio.run(send_workflow_event(event, item, recipients, raise_transport_errors=True))
