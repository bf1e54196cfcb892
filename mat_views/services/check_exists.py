"""Existence check for a definition's materialized view."""

from __future__ import annotations

from sqlalchemy import Connection

from mat_views.domain import ServiceResponse, ServiceStatus

from .base import BaseMatViewService
from .catalog import catalog_view_exists


class CheckMatViewExistsService(BaseMatViewService):
    """Report whether the view exists in `pg_matviews`. No side effects."""

    service_name = "exists"

    def _service_build_request(self) -> dict[str, object]:
        return {"view": f"{self.schema}.{self.definition.name}"}

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        self.response["exists"] = catalog_view_exists(connection, self.schema, self.definition.name)
        return self._service_ok(ServiceStatus.OK)
