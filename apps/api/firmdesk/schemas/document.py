"""Document-related Pydantic schemas."""

import re

from pydantic import BaseModel, Field, field_validator

from firmdesk.utils.normalization import normalize_content_type

_EXTENSION_RE = re.compile(r"[a-z0-9]{1,10}")


class FileMeta(BaseModel):
    """Metadata for an uploaded file. Raw content is never inspected."""
    filename: str = Field(min_length=1, max_length=255)
    content_type: str = Field(min_length=1, max_length=100)
    size: int = Field(gt=0)

    @field_validator("filename")
    @classmethod
    def strip_filename(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("filename cannot be blank")
        return v

    @field_validator("content_type")
    @classmethod
    def normalize(cls, v: str) -> str:
        v = normalize_content_type(v)
        if not v:
            raise ValueError("content_type cannot be blank")
        return v

    @property
    def extension(self) -> str:
        """Lowercase extension usable in a storage key, or "" if there is none."""
        ext = self.filename.rsplit(".", 1)[-1].lower() if "." in self.filename else ""
        return ext if _EXTENSION_RE.fullmatch(ext) else ""
