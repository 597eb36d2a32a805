"""
Guest-writer post quota.

A guest writer may create posts while the number of their posts that are
published, or carry a publish date, stays below their limit. Both conditions
count so a scheduled post cannot be used to slip past the quota.

The limit is read from the request's user record (``ctx.user``), which the
auth dependency loads from the database on every request, so a changed limit
applies from the next request on. The quota check issues no extra fetch of
its own. The count itself is always live.
"""

import structlog

from tenantcms.access.context import RequestContext
from tenantcms.access.where import And, Condition, Operator, Or, Where
from tenantcms.collections import Collection, DocStatus
from tenantcms.core.metrics import guest_writer_quota_checks_total
from tenantcms.schemas.user import AuthUser

logger = structlog.get_logger(__name__)


def counted_posts_where(user_id: int | str) -> Where:
    """Posts that count toward a guest writer's quota."""
    return And((
        Condition("authors", Operator.CONTAINS, user_id),
        Or((
            Condition("status", Operator.EQUALS, DocStatus.PUBLISHED.value),
            Condition("published_at", Operator.EXISTS, True),
        )),
    ))


async def can_guest_writer_create(ctx: RequestContext, user: AuthUser) -> bool:
    """
    Check the guest writer's quota.

    Store failures propagate: this runs on a mutating path and must not
    quietly allow or deny.
    """
    limit = user.guest_writer_post_limit
    if limit <= 0:
        guest_writer_quota_checks_total.labels(outcome="disabled").inc()
        return False

    count = await ctx.store.count(Collection.POSTS.value, counted_posts_where(user.id))
    allowed = count < limit

    guest_writer_quota_checks_total.labels(outcome="allowed" if allowed else "exceeded").inc()
    if not allowed:
        logger.info("guest_writer_quota_reached", user_id=user.id, count=count, limit=limit)
    return allowed
