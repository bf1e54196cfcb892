"""Database service for materialized view definition persistence."""

from __future__ import annotations

import json
from typing import Any

from sqlalchemy import Engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mat_views.domain import MatViewDefinition, RefreshStrategy, domain_validate_definition

from .interfaces import DefinitionRepositoryPort

_DEFINITION_COLUMNS = (
    "id, name, sql, refresh_strategy, unique_index_columns, dependencies, "
    "schedule_cron, created_at, updated_at"
)


class SQLAlchemyDefinitionService(DefinitionRepositoryPort):
    """SQLAlchemy-backed definition repository."""

    def __init__(self, engine: Engine):
        """Initialize definition persistence service.

        Args:
            engine: SQLAlchemy engine used for all persistence operations.

        Raises:
            ValueError: Raised when engine is None.
        """

        if engine is None:
            raise ValueError("engine must not be None")
        self._engine = engine

    def db_definition_create(self, definition: MatViewDefinition) -> MatViewDefinition:
        """Insert a new definition row.

        Args:
            definition: Validated definition without id.

        Returns:
            MatViewDefinition: Persisted definition.

        Raises:
            DefinitionValidationError: Raised when the definition violates definition rules.
            ValueError: Raised when the definition already has an id or the name is taken.
            RuntimeError: Raised when persistence fails.
        """

        if definition.definition_id is not None:
            raise ValueError("definition already persisted")
        domain_validate_definition(definition)

        try:
            with self._engine.begin() as connection:
                row = connection.execute(
                    text(
                        "INSERT INTO mat_view_definitions ("
                        "name, sql, refresh_strategy, unique_index_columns, dependencies, schedule_cron"
                        ") VALUES ("
                        ":name, :sql, :refresh_strategy, CAST(:unique_index_columns AS jsonb), "
                        "CAST(:dependencies AS jsonb), :schedule_cron"
                        ") "
                        f"RETURNING {_DEFINITION_COLUMNS}"
                    ),
                    self._build_write_parameters(definition),
                ).mappings().one()
                return self._map_definition(row)
        except IntegrityError as error:
            raise ValueError(f"definition name already exists: {definition.name}") from error
        except SQLAlchemyError as error:
            raise RuntimeError("failed to create materialized view definition") from error

    def db_definition_update(self, definition: MatViewDefinition) -> MatViewDefinition:
        """Replace editable attributes of an existing definition.

        Args:
            definition: Validated definition carrying its id.

        Returns:
            MatViewDefinition: Updated definition.

        Raises:
            DefinitionValidationError: Raised when the definition violates definition rules.
            ValueError: Raised when the definition has no id or the new name is taken.
            LookupError: Raised when the row does not exist.
            RuntimeError: Raised when persistence fails.
        """

        if definition.definition_id is None:
            raise ValueError("definition must be persisted before update")
        domain_validate_definition(definition)

        parameters = self._build_write_parameters(definition)
        parameters["id"] = definition.definition_id
        try:
            with self._engine.begin() as connection:
                row = connection.execute(
                    text(
                        "UPDATE mat_view_definitions SET "
                        "name = :name, "
                        "sql = :sql, "
                        "refresh_strategy = :refresh_strategy, "
                        "unique_index_columns = CAST(:unique_index_columns AS jsonb), "
                        "dependencies = CAST(:dependencies AS jsonb), "
                        "schedule_cron = :schedule_cron, "
                        "updated_at = now() "
                        "WHERE id = :id "
                        f"RETURNING {_DEFINITION_COLUMNS}"
                    ),
                    parameters,
                ).mappings().first()
                if row is None:
                    raise LookupError(f"materialized view definition not found: id={definition.definition_id}")
                return self._map_definition(row)
        except IntegrityError as error:
            raise ValueError(f"definition name already exists: {definition.name}") from error
        except SQLAlchemyError as error:
            raise RuntimeError("failed to update materialized view definition") from error

    def db_definition_get_by_id(self, definition_id: int) -> MatViewDefinition | None:
        """Fetch one definition by id.

        Args:
            definition_id: Definition identifier.

        Returns:
            MatViewDefinition | None: Matching definition or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(f"SELECT {_DEFINITION_COLUMNS} FROM mat_view_definitions WHERE id = :id"),
                    {"id": definition_id},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch materialized view definition by id") from error
        if row is None:
            return None
        return self._map_definition(row)

    def db_definition_get_by_name(self, name: str) -> MatViewDefinition | None:
        """Fetch one definition by view name.

        Args:
            name: Unqualified view name.

        Returns:
            MatViewDefinition | None: Matching definition or None.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                row = connection.execute(
                    text(f"SELECT {_DEFINITION_COLUMNS} FROM mat_view_definitions WHERE name = :name"),
                    {"name": name.strip()},
                ).mappings().first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to fetch materialized view definition by name") from error
        if row is None:
            return None
        return self._map_definition(row)

    def db_definition_list(self) -> list[MatViewDefinition]:
        """List definitions ordered by name.

        Returns:
            list[MatViewDefinition]: Definitions.

        Raises:
            RuntimeError: Raised when database read fails.
        """

        try:
            with self._engine.connect() as connection:
                rows = connection.execute(
                    text(f"SELECT {_DEFINITION_COLUMNS} FROM mat_view_definitions ORDER BY name ASC, id ASC")
                ).mappings().all()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to list materialized view definitions") from error
        return [self._map_definition(row) for row in rows]

    def db_definition_delete(self, definition_id: int) -> bool:
        """Delete one definition row.

        Args:
            definition_id: Definition identifier.

        Returns:
            bool: Whether a row was deleted.

        Raises:
            RuntimeError: Raised when persistence fails.
        """

        try:
            with self._engine.begin() as connection:
                deleted_row = connection.execute(
                    text("DELETE FROM mat_view_definitions WHERE id = :id RETURNING id"),
                    {"id": definition_id},
                ).first()
        except SQLAlchemyError as error:
            raise RuntimeError("failed to delete materialized view definition") from error
        return deleted_row is not None

    def _build_write_parameters(self, definition: MatViewDefinition) -> dict[str, Any]:
        return {
            "name": definition.name,
            "sql": definition.sql,
            "refresh_strategy": int(definition.refresh_strategy),
            "unique_index_columns": json.dumps(list(definition.unique_index_columns)),
            "dependencies": json.dumps(list(definition.dependencies)),
            "schedule_cron": definition.schedule_cron,
        }

    def _map_definition(self, row: Any) -> MatViewDefinition:
        """Map SQLAlchemy row mapping to a definition without re-validating it.

        Rows that break definition rules are still returned so jobs can
        record a failed run for them.

        Args:
            row: SQLAlchemy mapping row.

        Returns:
            MatViewDefinition: Typed definition.

        Raises:
            UnknownEnumCodeError: Raised when the strategy code is unknown.
            TypeError: Raised when JSON columns are not arrays.
        """

        unique_index_columns = row["unique_index_columns"] or []
        dependencies = row["dependencies"] or []
        if not isinstance(unique_index_columns, list):
            raise TypeError("mat_view_definitions.unique_index_columns must be a JSON array")
        if not isinstance(dependencies, list):
            raise TypeError("mat_view_definitions.dependencies must be a JSON array")

        return MatViewDefinition(
            definition_id=row["id"],
            name=row["name"],
            sql=row["sql"],
            refresh_strategy=RefreshStrategy.from_code(row["refresh_strategy"]),
            unique_index_columns=tuple(str(column) for column in unique_index_columns),
            dependencies=tuple(str(dependency) for dependency in dependencies),
            schedule_cron=row["schedule_cron"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
