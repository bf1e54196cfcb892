"""Blocking refresh service."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Connection

from mat_views.domain import RefreshStrategy, ServiceResponse, ServiceStatus

from .base import BaseMatViewService
from .sql import sql_refresh_view


class RegularRefreshService(BaseMatViewService):
    """Run `REFRESH MATERIALIZED VIEW`, which blocks readers while it runs."""

    service_name = "regular_refresh"

    def _service_build_request(self) -> dict[str, Any]:
        request = super()._service_build_request()
        request["strategy"] = RefreshStrategy.REGULAR.label
        request["concurrent"] = False
        return request

    def _service_prepare(self, connection: Connection) -> None:
        self._service_require_existing_view(connection)

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        self._service_attach_row_count(connection, "row_count_before")
        self._service_execute_ddl(connection, sql_refresh_view(self.schema, self.definition.name))
        self._service_attach_row_count(connection, "row_count_after")
        return self._service_ok(ServiceStatus.REFRESHED)
