"""Notification boundary - fire-and-forget events for async delivery."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from firmdesk.core.structured_logging import build_log_context
from firmdesk.db.enums import JobType, NotificationEvent
from firmdesk.db.models import Job
from firmdesk.services import job_service

logger = logging.getLogger(__name__)


def emit(
    db: Session,
    org_id: UUID,
    event: NotificationEvent,
    entity_id: UUID,
    actor_id: UUID | None,
) -> Job:
    """
    Queue a notification event in the current transaction.

    Delivery is owned by the worker consuming the job table; no
    acknowledgment flows back into the core.
    """
    payload = {
        "event": event.value,
        "entity_id": str(entity_id),
        "actor_id": str(actor_id) if actor_id else None,
    }
    job = job_service.schedule_job(db, org_id, JobType.NOTIFICATION, payload)
    logger.debug(
        "Queued notification",
        extra=build_log_context(org_id=org_id, entity_id=entity_id, event=event.value),
    )
    return job


def list_events(db: Session, org_id: UUID, event: NotificationEvent | None = None) -> list[dict]:
    """Return queued notification payloads for an organization, newest first."""
    jobs = job_service.list_jobs(db, org_id, job_type=JobType.NOTIFICATION, limit=500)
    payloads = [job.payload for job in jobs]
    if event is not None:
        payloads = [p for p in payloads if p.get("event") == event.value]
    return payloads
