"""
Tenant hooks.
"""

from typing import Any

import structlog

logger = structlog.get_logger(__name__)


def clean_allow_public_read(data: dict[str, Any], existing: dict[str, Any] | None = None) -> dict[str, Any]:
    """
    Keep ``allow_public_read`` a subset of ``allowed_collections``.

    Runs on every tenant write against the merged document, so turning a
    collection off also withdraws its public read. Extra entries are
    trimmed, never rejected. With ``allowed_collections`` unset every
    collection is enabled and nothing is trimmed.
    """
    existing = existing or {}
    allowed = data["allowed_collections"] if "allowed_collections" in data else existing.get("allowed_collections")
    public = data["allow_public_read"] if "allow_public_read" in data else existing.get("allow_public_read")

    if not isinstance(allowed, list) or not isinstance(public, list):
        return data

    trimmed = [collection for collection in public if collection in allowed]
    if trimmed == public and "allow_public_read" in data:
        return data
    if trimmed != public:
        logger.info(
            "allow_public_read_trimmed",
            tenant_id=existing.get("id"),
            removed=[collection for collection in public if collection not in allowed],
        )
    return {**data, "allow_public_read": trimmed}
