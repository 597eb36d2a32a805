"""
Per-request access context and memo.

One ``RequestContext`` is built for every inbound operation and passed to
every access predicate. It owns a ``RequestCache`` so that repeated checks
within a request (the same tenant's allow-list consulted for every
collection on an admin screen, for example) hit the store once.

Nothing here is global: dropping the context drops the memo.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from starlette.requests import cookie_parser

from tenantcms.access.store import Store
from tenantcms.schemas.user import AuthUser

T = TypeVar("T")


class CachePurpose(str, Enum):
    """What a memo entry holds. Part of the cache key."""
    USER_TENANT_DATA = "user_tenant_data"
    ALLOWED_COLLECTIONS = "allowed_collections"
    ALLOW_PUBLIC_READ = "allow_public_read"
    RESOLVED_TENANT = "resolved_tenant"


class RequestCache:
    """
    Memo keyed by ``(purpose, key)`` for the lifetime of one request.

    - None and other negative results are cached like any other value
    - concurrent lookups of the same key share one in-flight computation
    - a failing computation is not cached; the exception reaches every waiter
    """

    def __init__(self) -> None:
        self._values: dict[tuple[str, Hashable], Any] = {}
        self._pending: dict[tuple[str, Hashable], asyncio.Future] = {}
        self.hits = 0
        self.misses = 0

    async def get_or_compute(
        self,
        purpose: CachePurpose,
        key: Hashable,
        factory: Callable[[], Awaitable[T]],
    ) -> T:
        cache_key = (purpose.value, key)

        if cache_key in self._values:
            self.hits += 1
            return self._values[cache_key]

        pending = self._pending.get(cache_key)
        if pending is not None:
            self.hits += 1
            return await asyncio.shield(pending)

        self.misses += 1
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending[cache_key] = future
        try:
            value = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved so an unawaited future does not log a warning
            future.exception()
            raise
        else:
            self._values[cache_key] = value
            future.set_result(value)
            return value
        finally:
            self._pending.pop(cache_key, None)

    def get_or_compute_sync(
        self,
        purpose: CachePurpose,
        key: Hashable,
        factory: Callable[[], T],
    ) -> T:
        """Same memo for pure, synchronous computations."""
        cache_key = (purpose.value, key)

        if cache_key in self._values:
            self.hits += 1
            return self._values[cache_key]

        self.misses += 1
        value = factory()
        self._values[cache_key] = value
        return value

    def __contains__(self, item: tuple[CachePurpose, Hashable]) -> bool:
        purpose, key = item
        return (purpose.value, key) in self._values

    def __len__(self) -> int:
        return len(self._values)


@dataclass
class RequestContext:
    """
    Everything an access decision may look at.

    Attributes:
        user: validated requester, None for anonymous requests
        store: raw data store, no access control applied
        cookies: raw ``Cookie`` header
        host: request host, used to match tenant domains
        tenant: tenant already attached by trusted middleware
        cache: request-scoped memo
    """

    user: AuthUser | None
    store: Store
    cookies: str = ""
    host: str | None = None
    tenant: Any = None
    cache: RequestCache = field(default_factory=RequestCache)
    _cookie_map: dict[str, str] | None = field(default=None, init=False, repr=False)

    def get_cookie(self, name: str) -> str | None:
        """Read one cookie from the raw header. Malformed headers yield nothing."""
        if self._cookie_map is None:
            self._cookie_map = cookie_parser(self.cookies or "")
        value = self._cookie_map.get(name)
        return value if value else None
