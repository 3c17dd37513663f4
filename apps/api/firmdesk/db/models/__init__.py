"""SQLAlchemy ORM models."""

from firmdesk.db.models.auth import (
    AuthIdentity,
    Client,
    Firm,
    Membership,
    Organization,
    OrgInvite,
    User,
)
from firmdesk.db.models.documents import Document
from firmdesk.db.models.jobs import Job
from firmdesk.db.models.threads import Message, Thread

__all__ = [
    "AuthIdentity",
    "Client",
    "Document",
    "Firm",
    "Job",
    "Membership",
    "Message",
    "OrgInvite",
    "Organization",
    "Thread",
    "User",
]
