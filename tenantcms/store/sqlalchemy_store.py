"""
SQLAlchemy implementation of the access-layer ``Store``.

Provides:
- CRUD over every collection in ``MODELS`` as plain dicts
- Compilation of ``Where`` trees to SQL expressions, so access filters run
  in the database rather than in Python
- Row serialization (``tenant_id`` exposed as ``tenant``, user tenant
  assignments, post author ids; password hashes never leave the store)

Relationship paths compile to EXISTS sub-queries:
    {"tenants.tenant": {"in": [1, 2]}}  ->  EXISTS (user_tenants.tenant_id IN (1, 2))
    {"authors": {"contains": 7}}        ->  EXISTS (post_authors.user_id = 7)

The store never commits. The session owner (``get_db``) commits on success.
"""

import logging
from typing import Any

from sqlalchemy import (
    JSON,
    ColumnElement,
    Integer,
    String,
    Text,
    and_,
    false,
    func,
    inspect as sa_inspect,
    not_,
    or_,
    select,
    true,
)
from sqlalchemy.ext.asyncio import AsyncSession

from tenantcms.access.ids import normalize_tenant_id
from tenantcms.access.store import FindResult, StoreError
from tenantcms.access.where import And, Condition, Operator, Or, Where
from tenantcms.core.metrics import db_query_duration_seconds, track_time
from tenantcms.models import MODELS, BaseModel, Post, User, UserTenant

logger = logging.getLogger(__name__)

# Columns that never leave the store
HIDDEN_COLUMNS = frozenset({"hashed_password"})

_INVALID = object()

_NEGATED = {
    Operator.NOT_EQUALS: Operator.EQUALS,
    Operator.NOT_IN: Operator.IN,
}


# Where -> SQL

def _coerce(column: Any, value: Any) -> Any:
    """Coerce ids arriving as strings; values that cannot be ids never match."""
    if isinstance(column.type, Integer):
        coerced = normalize_tenant_id(value)
        return coerced if isinstance(coerced, int) else _INVALID
    return value


def _coerce_list(column: Any, values: Any) -> list[Any]:
    return [v for v in (_coerce(column, value) for value in values) if v is not _INVALID]


def _column_clause(column: Any, operator: Operator, value: Any) -> ColumnElement[bool]:
    if operator is Operator.EXISTS:
        return column.is_not(None) if value else column.is_(None)

    if operator is Operator.IN:
        return column.in_(_coerce_list(column, value))

    if operator is Operator.NOT_IN:
        return or_(column.not_in(_coerce_list(column, value)), column.is_(None))

    if operator is Operator.CONTAINS:
        if isinstance(column.type, JSON):
            raise ValueError(f"'contains' is not supported on JSON column '{column.key}'")
        if isinstance(column.type, (String, Text)) and isinstance(value, str):
            escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            return column.ilike(f"%{escaped}%", escape="\\")
        operator = Operator.EQUALS

    if value is None:
        return column.is_(None) if operator is Operator.EQUALS else column.is_not(None)

    coerced = _coerce(column, value)
    if operator is Operator.EQUALS:
        return false() if coerced is _INVALID else column == coerced

    # NOT_EQUALS
    if coerced is _INVALID:
        return true()
    return or_(column != coerced, column.is_(None))


def _resolve_column(model: type, name: str) -> Any:
    columns = sa_inspect(model).columns
    if name in columns:
        return getattr(model, columns[name].key)
    # Many-to-one references are exposed without the "_id" suffix
    if f"{name}_id" in columns:
        return getattr(model, columns[f"{name}_id"].key)
    raise ValueError(f"Unknown field '{name}' on {model.__tablename__}")


def _compile_condition(model: type, parts: list[str], operator: Operator, value: Any) -> ColumnElement[bool]:
    mapper = sa_inspect(model)
    name = parts[0]

    if name not in mapper.relationships:
        if len(parts) > 1:
            raise ValueError(f"'{name}' on {model.__tablename__} is not a relationship")
        return _column_clause(_resolve_column(model, name), operator, value)

    relationship = getattr(model, name)
    target = mapper.relationships[name].mapper.class_

    # Negative tests mean "no related row matches the positive test"
    negate = operator in _NEGATED or (operator is Operator.EXISTS and not value)
    positive = _NEGATED.get(operator, operator)
    positive_value = True if operator is Operator.EXISTS else value

    if len(parts) > 1:
        inner = _compile_condition(target, parts[1:], positive, positive_value)
    elif positive is Operator.EXISTS:
        inner = true()
    else:
        # The relationship itself compares by the related row's id
        if positive is Operator.CONTAINS:
            positive = Operator.EQUALS
        inner = _column_clause(target.id, positive, positive_value)

    clause = relationship.any(inner)
    return not_(clause) if negate else clause


def compile_where(model: type, where: Where) -> ColumnElement[bool]:
    """
    Compile a Where tree against a model.

    Raises:
        ValueError: field unknown to the model, or unsupported operator
    """
    if isinstance(where, And):
        if not where.clauses:
            return true()
        return and_(*(compile_where(model, clause) for clause in where.clauses))

    if isinstance(where, Or):
        if not where.clauses:
            return false()
        return or_(*(compile_where(model, clause) for clause in where.clauses))

    if isinstance(where, Condition):
        return _compile_condition(model, where.field.split("."), where.operator, where.value)

    raise ValueError(f"Unsupported filter node: {where!r}")


# Row <-> dict

def serialize(row: BaseModel) -> dict[str, Any]:
    """Convert a model instance to the document shape the access layer uses."""
    doc: dict[str, Any] = {}
    for attr in sa_inspect(type(row)).column_attrs:
        if attr.key in HIDDEN_COLUMNS:
            continue
        key = "tenant" if attr.key == "tenant_id" else attr.key
        doc[key] = getattr(row, attr.key)

    if isinstance(row, User):
        doc["tenants"] = [
            {"tenant": entry.tenant_id, "roles": list(entry.roles or [])}
            for entry in row.tenants
        ]
    if isinstance(row, Post):
        doc["authors"] = sorted(author.id for author in row.authors)
    return doc


class SQLAlchemyStore:
    """
    Store backed by an async SQLAlchemy session.

    Usage:
        store = SQLAlchemyStore(db)
        result = await store.find("pages", where, limit=10)
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @staticmethod
    def _model(collection: str) -> type[BaseModel]:
        try:
            return MODELS[collection]
        except KeyError:
            raise StoreError(f"Unknown collection '{collection}'") from None

    async def _get_row(self, model: type[BaseModel], id: Any) -> BaseModel | None:
        row_id = normalize_tenant_id(id)
        if not isinstance(row_id, int):
            return None
        result = await self.session.execute(
            select(model)
            .where(model.id == row_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _apply(self, row: BaseModel, data: dict[str, Any]) -> None:
        """Copy document fields onto a row."""
        model = type(row)
        columns = sa_inspect(model).columns

        for key, value in data.items():
            if key in ("id", "created_at", "updated_at"):
                continue

            if key == "tenants" and isinstance(row, User):
                row.tenants = [
                    UserTenant(
                        tenant_id=normalize_tenant_id(entry.get("tenant")),
                        roles=list(entry.get("roles") or []),
                    )
                    for entry in value or []
                ]
            elif key == "authors" and isinstance(row, Post):
                author_ids = _coerce_list(User.id, value or [])
                authors = []
                if author_ids:
                    result = await self.session.execute(select(User).where(User.id.in_(author_ids)))
                    authors = list(result.scalars().all())
                row.authors = authors
            elif key == "tenant" and "tenant_id" in columns:
                row.tenant_id = normalize_tenant_id(value)
            elif key in columns:
                setattr(row, key, value)
            else:
                logger.debug(f"Ignoring unknown field {key} for {model.__tablename__}")

    @track_time(db_query_duration_seconds, {"operation": "find_by_id"})
    async def find_by_id(self, collection: str, id: Any) -> dict[str, Any] | None:
        row = await self._get_row(self._model(collection), id)
        return serialize(row) if row is not None else None

    @track_time(db_query_duration_seconds, {"operation": "find"})
    async def find(
        self,
        collection: str,
        where: Where | None = None,
        *,
        limit: int | None = None,
        skip: int = 0,
        sort: str | None = None,
    ) -> FindResult:
        model = self._model(collection)
        condition = compile_where(model, where) if where is not None else true()

        total = await self.session.scalar(
            select(func.count()).select_from(model).where(condition)
        )

        query = select(model).where(condition)
        if sort:
            column = _resolve_column(model, sort.lstrip("-"))
            query = query.order_by(column.desc() if sort.startswith("-") else column.asc())
        query = query.order_by(model.id.asc()).offset(skip)
        if limit is not None:
            query = query.limit(limit)

        result = await self.session.execute(query.execution_options(populate_existing=True))
        return FindResult(
            docs=[serialize(row) for row in result.scalars().all()],
            total_docs=total or 0,
        )

    @track_time(db_query_duration_seconds, {"operation": "count"})
    async def count(self, collection: str, where: Where | None = None) -> int:
        model = self._model(collection)
        condition = compile_where(model, where) if where is not None else true()
        total = await self.session.scalar(select(func.count()).select_from(model).where(condition))
        return total or 0

    @track_time(db_query_duration_seconds, {"operation": "create"})
    async def create(self, collection: str, data: dict[str, Any]) -> dict[str, Any]:
        model = self._model(collection)
        row = model()
        if isinstance(row, User):
            row.tenants = []
        if isinstance(row, Post):
            row.authors = []

        await self._apply(row, data)
        self.session.add(row)
        await self.session.flush()

        # Re-select so selectin relationships are loaded
        created = await self._get_row(model, row.id)
        return serialize(created)

    @track_time(db_query_duration_seconds, {"operation": "update"})
    async def update(self, collection: str, id: Any, data: dict[str, Any]) -> dict[str, Any] | None:
        model = self._model(collection)
        row = await self._get_row(model, id)
        if row is None:
            return None

        await self._apply(row, data)
        await self.session.flush()

        updated = await self._get_row(model, row.id)
        return serialize(updated)

    @track_time(db_query_duration_seconds, {"operation": "delete"})
    async def delete(self, collection: str, id: Any) -> bool:
        row = await self._get_row(self._model(collection), id)
        if row is None:
            return False
        await self.session.delete(row)
        await self.session.flush()
        return True
