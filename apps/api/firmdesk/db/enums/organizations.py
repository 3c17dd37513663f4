"""Organization-related enums."""

from enum import Enum


class OrganizationKind(str, Enum):
    """Organization variants. A firm owns zero or more clients."""

    FIRM = "firm"
    CLIENT = "client"
