"""Create service for materialized views."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Connection, Engine

from mat_views.domain import MatViewDefinition, RowCountStrategy, ServiceResponse, ServiceStatus

from .base import BaseMatViewService
from .catalog import catalog_view_exists
from .sql import sql_create_index, sql_create_view, sql_drop_view, sql_unique_index_name


class CreateViewService(BaseMatViewService):
    """Create a materialized view and its declared unique index.

    Idempotent: an existing view is left alone and reported as `skipped`
    unless `force` is set, in which case it is dropped and rebuilt. Partial
    state left by a failed create is not cleaned up.
    """

    service_name = "create"

    def __init__(
        self,
        definition: MatViewDefinition,
        engine: Engine | None = None,
        row_count_strategy: RowCountStrategy | str | None = RowCountStrategy.ESTIMATED,
        connection: Connection | None = None,
        force: bool = False,
    ):
        super().__init__(
            definition=definition,
            engine=engine,
            row_count_strategy=row_count_strategy,
            connection=connection,
        )
        self._force = bool(force)

    def _service_build_request(self) -> dict[str, Any]:
        request = super()._service_build_request()
        request["force"] = self._force
        request["unique_index_columns"] = list(self.definition.unique_index_columns)
        return request

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        view_name = self.definition.name
        if catalog_view_exists(connection, self.schema, view_name):
            if not self._force:
                self.response["exists"] = True
                return self._service_ok(ServiceStatus.SKIPPED)
            self._service_execute_ddl(connection, sql_drop_view(self.schema, view_name, if_exists=True))
            self.response["dropped_existing"] = True

        self._service_execute_ddl(connection, sql_create_view(self.schema, view_name, self.definition.sql))

        index_columns = self.definition.unique_index_columns
        if index_columns:
            index_name = sql_unique_index_name(view_name, index_columns)
            self._service_execute_ddl(
                connection,
                sql_create_index(self.schema, view_name, index_name, index_columns, unique=True),
            )
            self.response["index_created"] = True
            self.response["index_name"] = index_name
        else:
            self.response["index_created"] = False

        self._service_attach_row_count(connection, "row_count")
        self.response["exists"] = True
        return self._service_ok(ServiceStatus.CREATED)
