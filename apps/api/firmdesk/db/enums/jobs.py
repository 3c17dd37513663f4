"""Job-related enums."""

from enum import Enum


class JobType(str, Enum):
    """Types of background jobs."""

    SEND_EMAIL = "send_email"
    NOTIFICATION = "notification"


class JobStatus(str, Enum):
    """Status of background jobs."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NotificationEvent(str, Enum):
    """Events handed to the notification collaborator."""

    INVITATION_ISSUED = "invitation_issued"
    DOCUMENT_UPLOADED = "document_uploaded"
    MESSAGE_POSTED = "message_posted"
    THREAD_RESOLVED = "thread_resolved"
