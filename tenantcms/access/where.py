"""
Where-filter algebra.

Access predicates that cannot answer with a plain True/False return a
``Where`` tree describing which documents qualify. The same tree is:
- serialized to the JSON shape clients and stores understand (``to_dict``)
- parsed back from client-supplied filters (``Where.from_dict``)
- evaluated against plain dict documents in memory (``matches``)
- compiled to SQL by ``tenantcms.store.sqlalchemy_store``

Usage:
    where = And((
        Condition("tenant", Operator.IN, (1, 2)),
        Condition("deleted_at", Operator.EXISTS, False),
    ))
    where.to_dict()
    # {"and": [{"tenant": {"in": [1, 2]}}, {"deleted_at": {"exists": False}}]}
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union

from tenantcms.access.ids import normalize_tenant_id


class Operator(str, Enum):
    """Leaf comparison operators every store must support."""
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    EXISTS = "exists"


_LIST_OPERATORS = frozenset({Operator.IN, Operator.NOT_IN})


class WhereParseError(ValueError):
    """Raised when a filter dict does not have the expected shape."""
    pass


class Where(ABC):
    """Base of the filter tree: ``Condition``, ``And`` or ``Or``."""

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        ...

    @abstractmethod
    def matches(self, doc: dict[str, Any]) -> bool:
        ...

    @staticmethod
    def from_dict(data: Any) -> "Where":
        """Parse a client-supplied filter. See ``parse_where``."""
        return parse_where(data)


@dataclass(frozen=True)
class Condition(Where):
    """Single field test, e.g. ``tenant in [1, 2]``."""
    field: str
    operator: Operator
    value: Any = None

    def __post_init__(self) -> None:
        if self.operator in _LIST_OPERATORS:
            object.__setattr__(self, "value", tuple(self.value or ()))

    def to_dict(self) -> dict[str, Any]:
        value = list(self.value) if self.operator in _LIST_OPERATORS else self.value
        return {self.field: {self.operator.value: value}}

    def matches(self, doc: dict[str, Any]) -> bool:
        values = list(_resolve_path(doc, self.field.split(".")))

        if self.operator is Operator.EXISTS:
            present = any(v is not None for v in values)
            return present if self.value else not present

        if self.operator is Operator.NOT_EQUALS:
            return not any(_same(v, self.value) for v in values)

        if self.operator is Operator.NOT_IN:
            return not any(_same(v, option) for v in values for option in self.value)

        if self.operator is Operator.EQUALS:
            return any(_same(v, self.value) for v in values)

        if self.operator is Operator.IN:
            return any(_same(v, option) for v in values for option in self.value)

        # CONTAINS: membership for lists, substring for text
        for v in values:
            if isinstance(v, str) and isinstance(self.value, str):
                if self.value.lower() in v.lower():
                    return True
            elif _same(v, self.value):
                return True
        return False


@dataclass(frozen=True)
class And(Where):
    """All clauses must match. An empty conjunction matches everything."""
    clauses: tuple[Where, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"and": [clause.to_dict() for clause in self.clauses]}

    def matches(self, doc: dict[str, Any]) -> bool:
        return all(clause.matches(doc) for clause in self.clauses)


@dataclass(frozen=True)
class Or(Where):
    """At least one clause must match. An empty disjunction matches nothing."""
    clauses: tuple[Where, ...]

    def to_dict(self) -> dict[str, Any]:
        return {"or": [clause.to_dict() for clause in self.clauses]}

    def matches(self, doc: dict[str, Any]) -> bool:
        return any(clause.matches(doc) for clause in self.clauses)


# Result type of every access predicate
AccessResult = Union[bool, Where]


def _same(left: Any, right: Any) -> bool:
    if left == right:
        return True
    # Ids may arrive as "3" from cookies or query strings
    left_id = normalize_tenant_id(left)
    return left_id is not None and left_id == normalize_tenant_id(right)


def _resolve_path(value: Any, parts: list[str]) -> Iterable[Any]:
    """Yield every value at a dotted path, fanning out over lists."""
    if isinstance(value, (list, tuple)):
        for item in value:
            yield from _resolve_path(item, parts)
        return

    if not parts:
        yield value
        return

    if isinstance(value, dict):
        child = value.get(parts[0])
    else:
        child = getattr(value, parts[0], None)

    if child is None:
        return
    yield from _resolve_path(child, parts[1:])


def parse_where(data: Any) -> Where:
    """
    Parse a JSON-shaped filter into a ``Where`` tree.

    Raises:
        WhereParseError: unknown operator or malformed node
    """
    if not isinstance(data, dict) or not data:
        raise WhereParseError("Filter must be a non-empty object")

    clauses: list[Where] = []
    for key, value in data.items():
        if key in ("and", "or"):
            if not isinstance(value, list):
                raise WhereParseError(f"'{key}' expects a list")
            children = tuple(parse_where(child) for child in value)
            clauses.append(And(children) if key == "and" else Or(children))
            continue

        if not isinstance(value, dict) or not value:
            raise WhereParseError(f"Field '{key}' expects an operator object")

        for op_name, operand in value.items():
            try:
                operator = Operator(op_name)
            except ValueError:
                raise WhereParseError(f"Unknown operator '{op_name}'") from None
            if operator in _LIST_OPERATORS and not isinstance(operand, list):
                raise WhereParseError(f"Operator '{op_name}' expects a list")
            if operator is Operator.EXISTS and not isinstance(operand, bool):
                raise WhereParseError("Operator 'exists' expects a boolean")
            clauses.append(Condition(key, operator, operand))

    return clauses[0] if len(clauses) == 1 else And(tuple(clauses))


def and_where(*parts: Where | None) -> Where:
    """Conjunction of the non-empty parts."""
    clauses = tuple(part for part in parts if part is not None)
    if len(clauses) == 1:
        return clauses[0]
    return And(clauses)


def combine_access(result: AccessResult, where: Where | None = None) -> AccessResult:
    """
    AND an access result with an extra filter.

    False stays False; True becomes the filter (or True when there is none).
    """
    if result is False:
        return False
    if result is True:
        return True if where is None else where
    return and_where(result, where)


# Filter no document can satisfy: list views degrade to "no results"
where_no_access: Where = Condition("id", Operator.IN, ())


def where_tenant_scoped(tenant_ids: Iterable[Any]) -> Where:
    """Documents owned by one of the tenants and not in the trash."""
    return And((
        Condition("tenant", Operator.IN, tuple(tenant_ids)),
        Condition("deleted_at", Operator.EXISTS, False),
    ))


def where_not_deleted() -> Where:
    """Documents not in the trash."""
    return Condition("deleted_at", Operator.EXISTS, False)

