"""Enum definitions for application constants."""

from firmdesk.db.enums.auth import AuthProvider, Role
from firmdesk.db.enums.documents import DocumentCategory, DocumentStatus
from firmdesk.db.enums.invites import InviteStatus
from firmdesk.db.enums.jobs import JobStatus, JobType, NotificationEvent
from firmdesk.db.enums.organizations import OrganizationKind
from firmdesk.db.enums.threads import ThreadStatus

DEFAULT_JOB_STATUS = JobStatus.PENDING

__all__ = [
    "AuthProvider",
    "DEFAULT_JOB_STATUS",
    "DocumentCategory",
    "DocumentStatus",
    "InviteStatus",
    "JobStatus",
    "JobType",
    "NotificationEvent",
    "OrganizationKind",
    "Role",
    "ThreadStatus",
]
