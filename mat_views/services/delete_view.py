"""Delete service for materialized views."""

from __future__ import annotations

from typing import Any, Final

from sqlalchemy import Connection, Engine
from sqlalchemy.exc import DBAPIError

from mat_views.domain import (
    MatViewDefinition,
    MatViewServiceError,
    RowCountStrategy,
    ServiceResponse,
    ServiceStatus,
)

from .base import BaseMatViewService, service_database_error_code, service_describe_database_error
from .catalog import catalog_view_exists
from .sql import sql_drop_view

DEPENDENT_OBJECTS_STILL_EXIST_SQLSTATE: Final[str] = "2BP01"


class DeleteViewService(BaseMatViewService):
    """Drop a materialized view, optionally with `CASCADE`."""

    service_name = "delete"

    def __init__(
        self,
        definition: MatViewDefinition,
        engine: Engine | None = None,
        row_count_strategy: RowCountStrategy | str | None = RowCountStrategy.ESTIMATED,
        connection: Connection | None = None,
        cascade: bool = False,
        if_exists: bool = True,
    ):
        super().__init__(
            definition=definition,
            engine=engine,
            row_count_strategy=row_count_strategy,
            connection=connection,
        )
        self._cascade = bool(cascade)
        self._if_exists = bool(if_exists)

    def _service_build_request(self) -> dict[str, Any]:
        request = super()._service_build_request()
        request["cascade"] = self._cascade
        request["if_exists"] = self._if_exists
        return request

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        view_name = self.definition.name
        if not catalog_view_exists(connection, self.schema, view_name):
            if not self._if_exists:
                raise MatViewServiceError(f"Materialized view {self.schema}.{view_name} does not exist")
            self.response["exists"] = False
            return self._service_ok(ServiceStatus.SKIPPED)

        self._service_attach_row_count(connection, "row_count_before")
        try:
            self._service_execute_ddl(
                connection,
                sql_drop_view(self.schema, view_name, if_exists=self._if_exists, cascade=self._cascade),
            )
        except DBAPIError as error:
            if error.connection_invalidated:
                raise
            if service_database_error_code(error) == DEPENDENT_OBJECTS_STILL_EXIST_SQLSTATE:
                raise MatViewServiceError(
                    f"{service_describe_database_error(error)} Use cascade=True to drop dependent objects."
                ) from error
            raise

        self.response["exists"] = False
        self.response["dropped"] = True
        return self._service_ok(ServiceStatus.DROPPED)
