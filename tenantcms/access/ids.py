"""
Tenant identifier normalization.

Tenant ids reach the access layer as ints, numeric strings (cookies, path
params), populated documents (`{"id": 3, ...}`) or ORM objects. Everything is
folded into one canonical form so membership tests compare like with like.
"""

import math
from typing import Any, Union

TenantId = Union[int, str]


def normalize_tenant_id(value: Any) -> TenantId | None:
    """
    Normalize a tenant reference to an int (or a non-numeric string id).

    Returns None for anything malformed: None, bools, empty strings,
    non-integral floats, containers without an ``id``. None always means
    "no tenant", never "any tenant".
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return value

    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
        return None

    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        try:
            return int(stripped)
        except ValueError:
            return stripped

    if isinstance(value, dict):
        return normalize_tenant_id(value.get("id"))

    if hasattr(value, "id") and not isinstance(value, (list, tuple, set)):
        return normalize_tenant_id(getattr(value, "id"))

    return None
