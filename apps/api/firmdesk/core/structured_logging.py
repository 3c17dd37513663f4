"""Structured logging helpers (PII-safe)."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def build_log_context(
    *,
    user_id: str | None = None,
    org_id: str | None = None,
    entity_id: str | None = None,
    event: str | None = None,
) -> dict[str, Any]:
    """Return a log context dict of ids only (no emails, names or bodies)."""
    context: dict[str, Any] = {}
    if user_id:
        context["user_id"] = str(user_id)
    if org_id:
        context["org_id"] = str(org_id)
    if entity_id:
        context["entity_id"] = str(entity_id)
    if event:
        context["event"] = event
    return context


def configure_logging(level: str | int = "INFO") -> None:
    """Configure root logging once for scripts and workers."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)
