"""Non-blocking refresh service."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Connection

from mat_views.domain import MatViewServiceError, RefreshStrategy, ServiceResponse, ServiceStatus

from .base import BaseMatViewService
from .catalog import catalog_connection_is_idle
from .sql import sql_refresh_view

TRANSACTION_BLOCK_MESSAGE = "REFRESH MATERIALIZED VIEW CONCURRENTLY cannot run inside a transaction block"


class ConcurrentRefreshService(BaseMatViewService):
    """Run `REFRESH MATERIALIZED VIEW CONCURRENTLY`.

    Readers stay unblocked. PostgreSQL requires a unique index on the view
    and no open transaction block; the first is left to the server to
    enforce, the second is checked on the driver connection right before
    the refresh statement.
    """

    service_name = "concurrent_refresh"

    def _service_build_request(self) -> dict[str, Any]:
        request = super()._service_build_request()
        request["strategy"] = RefreshStrategy.CONCURRENT.label
        request["concurrent"] = True
        return request

    def _service_prepare(self, connection: Connection) -> None:
        self._service_require_existing_view(connection)

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        self._service_attach_row_count(connection, "row_count_before")
        if not catalog_connection_is_idle(connection):
            raise MatViewServiceError(TRANSACTION_BLOCK_MESSAGE)
        self._service_execute_ddl(connection, sql_refresh_view(self.schema, self.definition.name, concurrently=True))
        self._service_attach_row_count(connection, "row_count_after")
        return self._service_ok(ServiceStatus.REFRESHED)
