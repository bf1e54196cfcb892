"""Shared execution scaffolding for materialized view DDL services."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, ClassVar, Iterator, Protocol

from sqlalchemy import Connection, Engine, text
from sqlalchemy.exc import DBAPIError

from mat_views.domain import (
    DefinitionValidationError,
    MatViewDefinition,
    MatViewServiceError,
    RowCountStrategy,
    ServiceResponse,
    ServiceStatus,
    domain_envelope_error,
    domain_envelope_ok,
    domain_serialize_error,
    domain_validate_definition,
)

from .catalog import (
    catalog_estimated_row_count,
    catalog_exact_row_count,
    catalog_resolve_schema,
    catalog_view_exists,
)
from .sql import sql_qualified_name

logger = logging.getLogger(__name__)


class MatViewServicePort(Protocol):
    """Port implemented by every DDL service."""

    def service_run(self) -> ServiceResponse:
        """Execute the service against its definition.

        Returns:
            ServiceResponse: Uniform result envelope.

        Raises:
            DBAPIError: Raised when the database connection itself is lost.
        """


class BaseMatViewService(MatViewServicePort):
    """Common behaviour for the DDL services.

    Subclasses implement `_service_execute` and may extend
    `_service_build_request` and `_service_prepare`. Validation failures,
    precondition failures and statement errors are folded into an `error`
    envelope; lost connections propagate.

    By default the service opens its own AUTOCOMMIT connection so every
    statement commits on its own. A caller-supplied connection is used as-is.
    """

    service_name: ClassVar[str] = "base"
    _CUTOVER_ISOLATION_LEVEL: ClassVar[str] = "READ COMMITTED"

    def __init__(
        self,
        definition: MatViewDefinition,
        engine: Engine | None = None,
        row_count_strategy: RowCountStrategy | str | None = RowCountStrategy.ESTIMATED,
        connection: Connection | None = None,
    ):
        """Initialize service dependencies.

        Args:
            definition: Definition to act on.
            engine: Engine used to open an owned connection.
            row_count_strategy: How row counts are reported.
            connection: Optional caller-owned connection used instead of the engine.

        Raises:
            ValueError: Raised when neither engine nor connection is given or the strategy is unknown.
        """

        if definition is None:
            raise ValueError("definition must not be None")
        if engine is None and connection is None:
            raise ValueError("engine or connection must be provided")

        self._definition = definition
        self._engine = engine
        self._external_connection = connection
        self._row_count_strategy = RowCountStrategy.from_value(row_count_strategy)
        self._owns_connection = connection is None
        self._schema = "public"
        self.request: dict[str, Any] = {}
        self.response: dict[str, Any] = {}

    @property
    def definition(self) -> MatViewDefinition:
        return self._definition

    @property
    def schema(self) -> str:
        return self._schema

    @property
    def qualified_name(self) -> str:
        return sql_qualified_name(self._schema, self._definition.name)

    def service_run(self) -> ServiceResponse:
        """Validate, resolve schema, check preconditions and execute.

        Returns:
            ServiceResponse: Uniform result envelope.

        Raises:
            DBAPIError: Raised when the connection was invalidated mid-call.
        """

        self.request = {"view": self._definition.name}
        self.response = {}

        try:
            domain_validate_definition(self._definition)
        except DefinitionValidationError as error:
            logger.info(
                "definition rejected before ddl",
                extra={"definition": self._definition.name, "operation": self.service_name},
            )
            return domain_envelope_error(error, self.request, self.response)

        with self._service_connection() as connection:
            try:
                self._schema = catalog_resolve_schema(connection)
                self.request = self._service_build_request()
                self._service_prepare(connection)
                return self._service_execute(connection)
            except MatViewServiceError as error:
                logger.info(
                    "service precondition failed: %s",
                    error,
                    extra={"definition": self._definition.name, "operation": self.service_name},
                )
                return domain_envelope_error(error, self.request, self.response)
            except DBAPIError as error:
                if error.connection_invalidated:
                    raise
                logger.warning(
                    "statement failed: %s",
                    service_describe_database_error(error),
                    extra={"definition": self._definition.name, "operation": self.service_name},
                )
                return self._service_database_error_envelope(error)

    def _service_build_request(self) -> dict[str, Any]:
        return {
            "view": f"{self._schema}.{self._definition.name}",
            "row_count_strategy": self._row_count_strategy.value,
        }

    def _service_prepare(self, connection: Connection) -> None:
        """Check preconditions before any DDL runs.

        Args:
            connection: Service connection.

        Raises:
            MatViewServiceError: Raised when a precondition fails.
        """

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        raise NotImplementedError

    def _service_ok(self, status: ServiceStatus) -> ServiceResponse:
        logger.info(
            "service finished with status=%s",
            status.value,
            extra={"definition": self._definition.name, "operation": self.service_name},
        )
        return domain_envelope_ok(status, self.request, self.response)

    def _service_require_existing_view(self, connection: Connection) -> None:
        if not catalog_view_exists(connection, self._schema, self._definition.name):
            raise MatViewServiceError(
                f"Materialized view {self._schema}.{self._definition.name} does not exist"
            )

    def _service_execute_ddl(self, connection: Connection, statement: str) -> None:
        """Run one DDL statement and record it on the request.

        Args:
            connection: Service connection.
            statement: Fully built SQL statement.
        """

        logger.debug(
            "executing ddl: %s",
            statement,
            extra={"definition": self._definition.name, "operation": self.service_name},
        )
        self.request.setdefault("sql", []).append(statement)
        connection.execute(text(statement))

    def _service_row_count(self, connection: Connection, view_name: str | None = None) -> int | None:
        """Return the row count of a view according to the configured strategy.

        Args:
            connection: Service connection.
            view_name: Relation to count; defaults to the definition's view.

        Returns:
            int | None: Row count, or None when the estimate is unavailable.
        """

        target_name = view_name or self._definition.name
        if self._row_count_strategy is RowCountStrategy.EXACT:
            return catalog_exact_row_count(connection, sql_qualified_name(self._schema, target_name))
        return catalog_estimated_row_count(connection, self._schema, target_name)

    def _service_attach_row_count(self, connection: Connection, key: str, view_name: str | None = None) -> None:
        if self._row_count_strategy is RowCountStrategy.NONE:
            return
        self.response[key] = self._service_row_count(connection, view_name)

    def _service_database_error_envelope(self, error: DBAPIError) -> ServiceResponse:
        error_payload = domain_serialize_error(error)
        error_payload["message"] = service_describe_database_error(error)
        if error.orig is not None:
            error_payload["kind"] = type(error.orig).__name__
        return ServiceResponse(
            status=ServiceStatus.ERROR,
            request=dict(self.request),
            response=dict(self.response),
            error=error_payload,
        )

    @contextmanager
    def _service_connection(self) -> Iterator[Connection]:
        if self._external_connection is not None:
            self._owns_connection = False
            yield self._external_connection
            return

        self._owns_connection = True
        with self._engine.connect() as connection:
            connection.execution_options(isolation_level="AUTOCOMMIT")
            yield connection

    @contextmanager
    def _service_transaction(self, connection: Connection) -> Iterator[Connection]:
        """Run a block inside one real transaction.

        On an owned AUTOCOMMIT connection the isolation level is switched for
        the duration of the block and restored afterwards. On a caller-owned
        connection a savepoint is used.

        Args:
            connection: Service connection.

        Yields:
            Connection: Same connection with an open transaction.
        """

        if not self._owns_connection:
            with connection.begin_nested():
                yield connection
            return

        connection.commit()
        connection.execution_options(isolation_level=self._CUTOVER_ISOLATION_LEVEL)
        try:
            with connection.begin():
                yield connection
        finally:
            connection.execution_options(isolation_level="AUTOCOMMIT")


def service_describe_database_error(error: DBAPIError) -> str:
    """Build a readable message from a driver error.

    Args:
        error: SQLAlchemy wrapper of the driver exception.

    Returns:
        str: Primary message followed by detail and hint when the driver exposes them.
    """

    original_error = error.orig
    diagnostics = getattr(original_error, "diag", None)
    primary_message = getattr(diagnostics, "message_primary", None)
    if not primary_message:
        return str(original_error if original_error is not None else error).strip()

    message_parts = [primary_message]
    detail_message = getattr(diagnostics, "message_detail", None)
    if detail_message:
        message_parts.append(f"DETAIL: {detail_message}")
    hint_message = getattr(diagnostics, "message_hint", None)
    if hint_message:
        message_parts.append(f"HINT: {hint_message}")
    return " ".join(message_parts)


def service_database_error_code(error: DBAPIError) -> str | None:
    original_error = error.orig
    return getattr(original_error, "sqlstate", None) or getattr(original_error, "pgcode", None)
