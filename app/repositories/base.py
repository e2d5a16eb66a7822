"""
Generic CRUD repository over one PostgreSQL table.

Subclasses declare the table, its columns and the domain model rows map to.
Ids are validated before any query runs.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, ClassVar, Generic, TypeVar

from psycopg import sql
from pydantic import BaseModel

from app.db.helpers import fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.utils.ids import ensure_object_id, new_object_id

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _to_db_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    return value


class EntityRepository(Generic[ModelT]):
    """create / read / read_one / update / delete for one collection."""

    table: ClassVar[str]
    columns: ClassVar[tuple[str, ...]]
    model: ClassVar[type[BaseModel]]

    def _row_to_model(self, row: dict | None) -> ModelT | None:
        if not row:
            return None
        return self.model.model_validate(row)

    def _returning(self) -> sql.Composable:
        return sql.SQL(", ").join(sql.Identifier(column) for column in self.columns)

    def _check_columns(self, keys) -> None:
        unknown = set(keys) - set(self.columns)
        if unknown:
            raise ValueError(f"Unknown {self.table} columns: {sorted(unknown)}")

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def create(self, obj: dict[str, Any]) -> ModelT:
        data = {key: _to_db_value(value) for key, value in obj.items() if value is not None}
        data["id"] = ensure_object_id(data.get("id") or new_object_id())
        now = datetime.now(UTC)
        for column in ("created_at", "updated_at"):
            if column in self.columns:
                data.setdefault(column, now)
        self._check_columns(data)

        query = sql.SQL("INSERT INTO {table} ({fields}) VALUES ({values}) RETURNING {returning}").format(
            table=sql.Identifier(self.table),
            fields=sql.SQL(", ").join(sql.Identifier(key) for key in data),
            values=sql.SQL(", ").join(sql.Placeholder() for _ in data),
            returning=self._returning(),
        )
        row = await fetch_one(query, tuple(data.values()))
        logger.debug("Row inserted", table=self.table, id=data["id"])
        return self._row_to_model(row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def read(self, filters: dict[str, Any] | None = None) -> list[ModelT]:
        filters = filters or {}
        self._check_columns(filters)

        where = sql.SQL("")
        if filters:
            where = sql.SQL(" WHERE ") + sql.SQL(" AND ").join(
                sql.SQL("{} = %s").format(sql.Identifier(key)) for key in filters
            )
        query = (
            sql.SQL("SELECT {returning} FROM {table}").format(
                returning=self._returning(), table=sql.Identifier(self.table)
            )
            + where
            + sql.SQL(" ORDER BY created_at")
        )
        rows = await fetch_all(query, tuple(_to_db_value(v) for v in filters.values()))
        return [self._row_to_model(row) for row in rows]

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def read_one(self, entity_id: str) -> ModelT | None:
        entity_id = ensure_object_id(entity_id)
        query = sql.SQL("SELECT {returning} FROM {table} WHERE id = %s").format(
            returning=self._returning(), table=sql.Identifier(self.table)
        )
        return self._row_to_model(await fetch_one(query, (entity_id,)))

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def update(self, entity_id: str, changes: dict[str, Any]) -> ModelT | None:
        entity_id = ensure_object_id(entity_id)
        data = {key: _to_db_value(value) for key, value in changes.items() if key != "id"}
        if "updated_at" in self.columns:
            data["updated_at"] = datetime.now(UTC)
        self._check_columns(data)
        if not data:
            return await self.read_one(entity_id)

        query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s RETURNING {returning}").format(
            table=sql.Identifier(self.table),
            assignments=sql.SQL(", ").join(
                sql.SQL("{} = %s").format(sql.Identifier(key)) for key in data
            ),
            returning=self._returning(),
        )
        row = await fetch_one(query, (*data.values(), entity_id))
        return self._row_to_model(row)

    @with_db_retry(max_retries=3, base_delay=0.1)
    async def delete(self, entity_id: str) -> ModelT | None:
        entity_id = ensure_object_id(entity_id)
        query = sql.SQL("DELETE FROM {table} WHERE id = %s RETURNING {returning}").format(
            table=sql.Identifier(self.table), returning=self._returning()
        )
        row = await fetch_one(query, (entity_id,))
        if row:
            logger.debug("Row deleted", table=self.table, id=entity_id)
        return self._row_to_model(row)
