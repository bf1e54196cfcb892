"""Swap refresh service: rebuild beside the live view, then rename over it."""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any
from uuid import uuid4

from sqlalchemy import Connection
from sqlalchemy.exc import DBAPIError

from mat_views.domain import RefreshStrategy, ServiceResponse, ServiceStatus

from .base import BaseMatViewService, service_describe_database_error
from .catalog import (
    MatViewGrantSpec,
    MatViewIndexSpec,
    catalog_connection_is_idle,
    catalog_list_grants,
    catalog_list_indexes,
)
from .sql import (
    sql_create_index,
    sql_create_view,
    sql_drop_view,
    sql_grant,
    sql_rename_index,
    sql_rename_view,
    sql_swap_relation_name,
    sql_unique_index_name,
)

logger = logging.getLogger(__name__)


class SwapRefreshService(BaseMatViewService):
    """Refresh without a unique index and with near-zero reader downtime.

    Steps:
        1. Build `<name>__tmp_<token>` from the definition's SQL.
        2. Mirror plain-column indexes as `<name>__tmp_<token>_<n>`, plus non-owner grants, onto it.
        3. In one transaction rename live to `<name>__old_<token>`, temp to live,
           and give mirrored indexes the live index names.
        4. After commit drop the old view; failure there is only a warning.

    Anything failing before the cutover commits leaves the live view as it was.
    """

    service_name = "swap_refresh"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self._token = ""
        self._temp_name = ""
        self._old_name = ""
        self._retired_index_renames: list[tuple[str, str]] = []
        self._promoted_index_renames: list[tuple[str, str]] = []

    def _service_build_request(self) -> dict[str, Any]:
        self._token = swap_build_token()
        self._temp_name = sql_swap_relation_name(self.definition.name, "tmp", self._token)
        self._old_name = sql_swap_relation_name(self.definition.name, "old", self._token)
        self._retired_index_renames = []
        self._promoted_index_renames = []

        request = super()._service_build_request()
        request["strategy"] = RefreshStrategy.SWAP.label
        request["temp_view"] = f"{self.schema}.{self._temp_name}"
        request["old_view"] = f"{self.schema}.{self._old_name}"
        return request

    def _service_prepare(self, connection: Connection) -> None:
        self._service_require_existing_view(connection)

    def _service_execute(self, connection: Connection) -> ServiceResponse:
        view_name = self.definition.name
        self._service_attach_row_count(connection, "row_count_before")

        live_indexes = catalog_list_indexes(connection, self.schema, view_name)
        live_grants = catalog_list_grants(connection, self.schema, view_name)

        try:
            self._swap_build_temp_view(connection, live_indexes, live_grants)
        except DBAPIError as error:
            if error.connection_invalidated:
                raise
            self._swap_discard_temp_view(connection)
            raise

        try:
            with self._service_transaction(connection):
                for statement in self._swap_cutover_statements():
                    self._service_execute_ddl(connection, statement)
        except DBAPIError as error:
            if error.connection_invalidated:
                raise
            self._swap_discard_temp_view(connection)
            raise
        self.response["cutover_committed"] = True

        self._swap_drop_old_view(connection)
        self._service_attach_row_count(connection, "row_count_after")
        return self._service_ok(ServiceStatus.SWAPPED)

    def _swap_build_temp_view(
        self,
        connection: Connection,
        live_indexes: list[MatViewIndexSpec],
        live_grants: list[MatViewGrantSpec],
    ) -> None:
        """Create the temp view with mirrored indexes and grants.

        Args:
            connection: Service connection.
            live_indexes: Indexes found on the live view.
            live_grants: Grants found on the live view.
        """

        self._service_execute_ddl(connection, sql_create_view(self.schema, self._temp_name, self.definition.sql))

        mirrored_indexes: list[str] = []
        skipped_indexes: list[str] = []
        for index_spec in live_indexes:
            if not index_spec.is_mirrorable:
                skipped_indexes.append(index_spec.index_name)
                continue
            ordinal = len(self._promoted_index_renames) + 1
            temp_index_name = sql_swap_relation_name(self.definition.name, "tmp", self._token, ordinal)
            self._service_execute_ddl(
                connection,
                sql_create_index(
                    self.schema,
                    self._temp_name,
                    temp_index_name,
                    index_spec.column_names,
                    unique=index_spec.is_unique,
                    method=index_spec.method,
                ),
            )
            retired_index_name = sql_swap_relation_name(self.definition.name, "old", self._token, ordinal)
            self._retired_index_renames.append((index_spec.index_name, retired_index_name))
            self._promoted_index_renames.append((temp_index_name, index_spec.index_name))
            mirrored_indexes.append(index_spec.index_name)

        declared_columns = self.definition.unique_index_columns
        declared_is_covered = any(
            index_spec.is_mirrorable and index_spec.is_unique and index_spec.column_names == declared_columns
            for index_spec in live_indexes
        )
        if declared_columns and not declared_is_covered:
            final_index_name = sql_unique_index_name(self.definition.name, declared_columns)
            ordinal = len(self._promoted_index_renames) + 1
            temp_index_name = sql_swap_relation_name(self.definition.name, "tmp", self._token, ordinal)
            self._service_execute_ddl(
                connection,
                sql_create_index(self.schema, self._temp_name, temp_index_name, declared_columns, unique=True),
            )
            if final_index_name in {index_spec.index_name for index_spec in live_indexes}:
                final_index_name = sql_swap_relation_name(self.definition.name, "new", self._token, ordinal)
            self._promoted_index_renames.append((temp_index_name, final_index_name))
            mirrored_indexes.append(final_index_name)

        for grant_spec in live_grants:
            self._service_execute_ddl(
                connection,
                sql_grant(
                    self.schema,
                    self._temp_name,
                    grant_spec.privilege,
                    grant_spec.grantee,
                    with_grant_option=grant_spec.is_grantable,
                ),
            )

        self.response["mirrored_indexes"] = mirrored_indexes
        self.response["skipped_indexes"] = skipped_indexes
        self.response["mirrored_grants"] = [
            {"grantee": grant_spec.grantee, "privilege": grant_spec.privilege} for grant_spec in live_grants
        ]

    def _swap_cutover_statements(self) -> list[str]:
        """Return the rename statements executed inside the cutover transaction.

        Returns:
            list[str]: Ordered statements; live index names are freed before reuse.
        """

        statements = [
            sql_rename_index(self.schema, live_index_name, retired_index_name)
            for live_index_name, retired_index_name in self._retired_index_renames
        ]
        statements.append(sql_rename_view(self.schema, self.definition.name, self._old_name))
        statements.append(sql_rename_view(self.schema, self._temp_name, self.definition.name))
        statements.extend(
            sql_rename_index(self.schema, temp_index_name, final_index_name)
            for temp_index_name, final_index_name in self._promoted_index_renames
        )
        return statements

    def _swap_discard_temp_view(self, connection: Connection) -> None:
        """Drop the temp view after a failed swap.

        A caller-owned connection inside a transaction block is left alone;
        rolling that transaction back discards the temp view.

        Args:
            connection: Service connection.
        """

        if not self._owns_connection and not catalog_connection_is_idle(connection):
            return
        statement = sql_drop_view(self.schema, self._temp_name, if_exists=True)
        try:
            self._service_execute_ddl(connection, statement)
        except DBAPIError as error:
            warning_message = service_describe_database_error(error)
            logger.warning(
                "failed to discard temp view %s: %s",
                self._temp_name,
                warning_message,
                extra={"definition": self.definition.name, "operation": self.service_name},
            )
            self.response["cleanup_warning"] = warning_message

    def _swap_drop_old_view(self, connection: Connection) -> None:
        """Drop the retired view after the cutover committed.

        Failures are reported as `cleanup_warning` because the new content is
        already live.

        Args:
            connection: Service connection.
        """

        statement = sql_drop_view(self.schema, self._old_name, if_exists=True)
        try:
            if self._owns_connection:
                self._service_execute_ddl(connection, statement)
            else:
                with self._service_transaction(connection):
                    self._service_execute_ddl(connection, statement)
        except DBAPIError as error:
            warning_message = service_describe_database_error(error)
            logger.warning(
                "swap committed but old view cleanup failed: %s",
                warning_message,
                extra={"definition": self.definition.name, "operation": self.service_name},
            )
            self.response["old_view_dropped"] = False
            self.response["cleanup_warning"] = warning_message
            return
        self.response["old_view_dropped"] = True


def swap_build_token() -> str:
    """Return a timestamp-based token that keeps swap relation names unique.

    Returns:
        str: `YYYYMMDDHHMMSS_<6 hex chars>` in UTC.
    """

    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{timestamp}_{uuid4().hex[:6]}"
