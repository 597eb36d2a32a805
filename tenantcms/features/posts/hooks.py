"""
Post hooks.

Guest writers always author their own posts and can never publish: their
writes are forced to a draft without a publish date. Published posts get a
publish date when none is set.
"""

from datetime import datetime, timezone
from typing import Any

from tenantcms.access.context import RequestContext
from tenantcms.access.roles import has_guest_writer_role, is_top_level_user
from tenantcms.collections import DocStatus


def _is_guest_writer(ctx: RequestContext) -> bool:
    return ctx.user is not None and not is_top_level_user(ctx.user) and has_guest_writer_role(ctx.user)


def assign_guest_writer_author(ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
    """Guest writers are the sole author of what they write."""
    if not _is_guest_writer(ctx):
        return data
    return {**data, "authors": [ctx.user.id]}


def prevent_guest_writer_publish(ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
    """Force draft status and clear the publish date for guest writers."""
    if not _is_guest_writer(ctx):
        return data
    return {**data, "status": DocStatus.DRAFT.value, "published_at": None}


def auto_publish_date(data: dict[str, Any], existing: dict[str, Any] | None = None) -> dict[str, Any]:
    """Stamp ``published_at`` when a post is published without a date."""
    existing = existing or {}
    status = data.get("status", existing.get("status"))
    published_at = data["published_at"] if "published_at" in data else existing.get("published_at")

    if status == DocStatus.PUBLISHED.value and not published_at:
        return {**data, "published_at": datetime.now(timezone.utc)}
    return data
