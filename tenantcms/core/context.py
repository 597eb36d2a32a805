"""
Log correlation context using contextvars.

Holds the identifiers every log line of a request should carry:
- Request ID and trace ID (set by RequestContextMiddleware)
- User ID (set once the requester is authenticated)
- Tenant ID (set once the acting tenant is resolved)

This is for logging only. Access decisions read the explicit
``tenantcms.access.context.RequestContext`` and never these variables.
"""

import contextvars
from typing import Any

request_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
trace_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "trace_id", default=None
)
user_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
tenant_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tenant_id", default=None
)


def set_request_context(
    request_id: str | None = None,
    trace_id: str | None = None,
    user_id: Any = None,
    tenant_id: Any = None,
) -> None:
    """Set the given identifiers, leaving the others untouched."""
    if request_id:
        request_id_var.set(request_id)
    if trace_id:
        trace_id_var.set(trace_id)
    if user_id is not None:
        user_id_var.set(str(user_id))
    if tenant_id is not None:
        tenant_id_var.set(str(tenant_id))


def get_request_context() -> dict[str, Any]:
    """Identifiers that are set, for merging into log entries."""
    context = {
        "request_id": request_id_var.get(),
        "trace_id": trace_id_var.get(),
        "user_id": user_id_var.get(),
        "tenant_id": tenant_id_var.get(),
    }
    return {key: value for key, value in context.items() if value is not None}


def clear_request_context() -> None:
    """Reset every identifier at the end of a request."""
    for var in (request_id_var, trace_id_var, user_id_var, tenant_id_var):
        var.set(None)
