"""Materialized view definition model and validation rules."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Final

from .enums import RefreshStrategy
from .errors import DefinitionValidationError

VIEW_NAME_PATTERN: Final[re.Pattern[str]] = re.compile(r"\A[A-Za-z_][A-Za-z0-9_]*\Z")
SELECT_SQL_PATTERN: Final[re.Pattern[str]] = re.compile(r"\A\s*SELECT\b", re.IGNORECASE)


@dataclass(frozen=True)
class MatViewDefinition:
    """Desired state of one materialized view.

    Construction does not validate: rows read back from storage must reach
    the services, which reject them with an error envelope and an audited
    failed run. Call `domain_validate_definition` before persisting.

    Attributes:
        name: Unqualified view name, a plain SQL identifier.
        sql: Defining `SELECT` statement without trailing semicolon.
        refresh_strategy: Strategy used by refresh jobs.
        unique_index_columns: Ordered unique index column names.
        dependencies: Advisory upstream object names.
        schedule_cron: Advisory cron expression, never executed here.
        definition_id: Primary key once persisted.
        created_at: Row creation timestamp once persisted.
        updated_at: Row update timestamp once persisted.
    """

    name: str
    sql: str
    refresh_strategy: RefreshStrategy = RefreshStrategy.REGULAR
    unique_index_columns: tuple[str, ...] = ()
    dependencies: tuple[str, ...] = ()
    schedule_cron: str | None = None
    definition_id: int | None = None
    created_at: datetime | None = field(default=None, compare=False)
    updated_at: datetime | None = field(default=None, compare=False)


def domain_validate_definition(definition: MatViewDefinition) -> None:
    """Validate definition invariants before any DDL is attempted.

    Args:
        definition: Definition to validate.

    Returns:
        None: Returns silently when the definition is valid.

    Raises:
        DefinitionValidationError: Raised when a rule is violated.
    """

    if not isinstance(definition.name, str) or not VIEW_NAME_PATTERN.match(definition.name):
        raise DefinitionValidationError(f"Invalid view name format: {definition.name!r}")

    if not isinstance(definition.sql, str) or not SELECT_SQL_PATTERN.match(definition.sql):
        raise DefinitionValidationError("sql must begin with SELECT")
    if definition.sql.rstrip().endswith(";"):
        raise DefinitionValidationError("sql must not end with a semicolon")

    if not isinstance(definition.refresh_strategy, RefreshStrategy):
        raise DefinitionValidationError("refresh_strategy must be a RefreshStrategy member")

    if not isinstance(definition.unique_index_columns, tuple):
        raise DefinitionValidationError("unique_index_columns must be a tuple of column names")
    for column_name in definition.unique_index_columns:
        if not isinstance(column_name, str) or not column_name.strip():
            raise DefinitionValidationError("unique_index_columns must contain non-blank column names")
    if len(set(definition.unique_index_columns)) != len(definition.unique_index_columns):
        raise DefinitionValidationError("unique_index_columns must not contain duplicates")

    if definition.refresh_strategy is RefreshStrategy.CONCURRENT and not definition.unique_index_columns:
        raise DefinitionValidationError("refresh_strategy=concurrent requires unique_index_columns (non-empty)")

    if not isinstance(definition.dependencies, tuple):
        raise DefinitionValidationError("dependencies must be a tuple of object names")


def domain_build_definition(
    name: str,
    sql: str,
    refresh_strategy: RefreshStrategy | str = RefreshStrategy.REGULAR,
    unique_index_columns=None,
    dependencies=None,
    schedule_cron: str | None = None,
) -> MatViewDefinition:
    """Build a validated definition from loosely typed operator input.

    Args:
        name: View name.
        sql: Defining `SELECT` statement.
        refresh_strategy: Strategy member or symbolic name.
        unique_index_columns: Iterable of column names, or None.
        dependencies: Iterable of upstream object names, or None.
        schedule_cron: Optional advisory cron expression.

    Returns:
        MatViewDefinition: Validated, not yet persisted definition.

    Raises:
        DefinitionValidationError: Raised when input violates definition rules.
    """

    try:
        resolved_strategy = RefreshStrategy.from_value(refresh_strategy)
    except ValueError as error:
        raise DefinitionValidationError(str(error)) from error

    normalized_cron = schedule_cron.strip() if schedule_cron else None
    definition = MatViewDefinition(
        name=name.strip(),
        sql=sql.strip(),
        refresh_strategy=resolved_strategy,
        unique_index_columns=tuple(str(column).strip() for column in (unique_index_columns or ())),
        dependencies=tuple(str(dependency).strip() for dependency in (dependencies or ())),
        schedule_cron=normalized_cron or None,
    )
    domain_validate_definition(definition)
    return definition
