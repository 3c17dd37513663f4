"""Thread service - discussion threads with an open/resolved state machine.

    open --resolve--> resolved --reopen--> open
    resolved --post_message--> open   (new activity reopens)
"""

import logging
from uuid import UUID

import nh3
from sqlalchemy.orm import Session

from firmdesk.core.errors import InvalidStateError, NotFoundError, ValidationError
from firmdesk.db.enums import NotificationEvent, ThreadStatus
from firmdesk.db.models import Message, Thread
from firmdesk.db.types import utcnow
from firmdesk.services import membership_service, notification_service, org_service

logger = logging.getLogger(__name__)

# Allowed HTML tags for rich text message bodies
ALLOWED_TAGS = {"p", "br", "strong", "em", "ul", "ol", "li", "a", "blockquote", "code", "pre"}
ALLOWED_ATTRIBUTES = {"a": {"href"}}


def sanitize_body(body: str) -> str:
    """Sanitize HTML to prevent XSS, allowing only safe rich text tags."""
    return nh3.clean(body, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES).strip()


def create_thread(
    db: Session,
    org_id: UUID,
    title: str,
    created_by_user_id: UUID | None = None,
) -> Thread:
    """Open a new thread in an organization."""
    title = (title or "").strip()
    if not title:
        raise ValidationError("Thread title cannot be blank")
    org_service.require_org(db, org_id)

    now = utcnow()
    thread = Thread(
        organization_id=org_id,
        created_by_user_id=created_by_user_id,
        title=title,
        status=ThreadStatus.OPEN.value,
        created_at=now,
        last_activity_at=now,
    )
    db.add(thread)
    db.commit()
    logger.info("Created thread %s in org %s", thread.id, org_id)
    return thread


def post_message(db: Session, thread: Thread, author_id: UUID, body: str) -> Message:
    """
    Append a message and bump last activity.

    A resolved thread goes back to open and loses its closer/close time.

    Raises:
        ValidationError: empty body (after sanitizing) or author not a member
    """
    clean_body = sanitize_body(body or "")
    if not clean_body:
        raise ValidationError("Message body cannot be empty")
    if not membership_service.is_member(db, thread.organization_id, author_id):
        raise ValidationError("Author is not a member of this organization")

    now = utcnow()
    message = Message(
        thread_id=thread.id,
        author_user_id=author_id,
        body=clean_body,
        created_at=now,
    )
    db.add(message)
    thread.last_activity_at = now

    if thread.status == ThreadStatus.RESOLVED.value:
        thread.status = ThreadStatus.OPEN.value
        thread.closed_by_user_id = None
        thread.closed_at = None
        logger.info("Thread %s reopened by new message", thread.id)

    db.flush()
    notification_service.emit(
        db, thread.organization_id, NotificationEvent.MESSAGE_POSTED, message.id, author_id
    )
    db.commit()
    return message


def resolve_thread(db: Session, thread: Thread, closer_id: UUID) -> Thread:
    """
    Resolve an open thread.

    Raises:
        InvalidStateError: thread is already resolved
    """
    if thread.status == ThreadStatus.RESOLVED.value:
        raise InvalidStateError("Thread is already resolved")

    thread.status = ThreadStatus.RESOLVED.value
    thread.closed_by_user_id = closer_id
    thread.closed_at = utcnow()
    notification_service.emit(
        db, thread.organization_id, NotificationEvent.THREAD_RESOLVED, thread.id, closer_id
    )
    db.commit()
    logger.info("Thread %s resolved by user %s", thread.id, closer_id)
    return thread


def reopen_thread(db: Session, thread: Thread) -> Thread:
    """
    Reopen a resolved thread.

    Raises:
        InvalidStateError: thread is already open
    """
    if thread.status == ThreadStatus.OPEN.value:
        raise InvalidStateError("Thread is already open")

    thread.status = ThreadStatus.OPEN.value
    thread.closed_by_user_id = None
    thread.closed_at = None
    db.commit()
    return thread


def get_thread(db: Session, org_id: UUID, thread_id: UUID) -> Thread:
    """
    Get a thread scoped to an organization.

    Raises:
        NotFoundError
    """
    thread = db.query(Thread).filter(
        Thread.organization_id == org_id,
        Thread.id == thread_id,
    ).first()
    if not thread:
        raise NotFoundError("Thread not found")
    return thread


def list_threads(
    db: Session,
    org_id: UUID,
    status: ThreadStatus | None = None,
) -> list[Thread]:
    """List threads by most recent activity."""
    query = db.query(Thread).filter(Thread.organization_id == org_id)
    if status:
        query = query.filter(Thread.status == status.value)
    return query.order_by(Thread.last_activity_at.desc()).all()


def list_messages(db: Session, thread_id: UUID) -> list[Message]:
    """Messages of a thread, oldest first."""
    return (
        db.query(Message)
        .filter(Message.thread_id == thread_id)
        .order_by(Message.created_at)
        .all()
    )
