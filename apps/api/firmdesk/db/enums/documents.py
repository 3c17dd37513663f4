"""Document-related enums."""

from enum import Enum


class DocumentStatus(str, Enum):
    """Review status. Only moves forward: uploaded -> viewed."""

    UPLOADED = "uploaded"
    VIEWED = "viewed"


class DocumentCategory(str, Enum):
    """Free-form categorization, independent of status."""

    INVOICE = "invoice"
    RECEIPT = "receipt"
    CONTRACT = "contract"
    OTHER = "other"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_
