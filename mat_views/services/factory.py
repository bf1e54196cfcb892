"""Factory building DDL services for orchestration jobs."""

from __future__ import annotations

from sqlalchemy import Connection, Engine

from mat_views.domain import MatViewDefinition, RowCountStrategy

from .check_exists import CheckMatViewExistsService
from .concurrent_refresh import ConcurrentRefreshService
from .create_view import CreateViewService
from .delete_view import DeleteViewService
from .regular_refresh import RegularRefreshService
from .swap_refresh import SwapRefreshService


class MatViewServiceFactory:
    """Build services bound to one engine, or to one caller-owned connection."""

    def __init__(self, engine: Engine | None = None, connection: Connection | None = None):
        if engine is None and connection is None:
            raise ValueError("engine or connection must be provided")
        self._engine = engine
        self._connection = connection

    def service_exists(self, definition: MatViewDefinition) -> CheckMatViewExistsService:
        return CheckMatViewExistsService(definition=definition, engine=self._engine, connection=self._connection)

    def service_create(
        self,
        definition: MatViewDefinition,
        force: bool,
        row_count_strategy: RowCountStrategy,
    ) -> CreateViewService:
        return CreateViewService(
            definition=definition,
            engine=self._engine,
            row_count_strategy=row_count_strategy,
            connection=self._connection,
            force=force,
        )

    def service_regular_refresh(
        self,
        definition: MatViewDefinition,
        row_count_strategy: RowCountStrategy,
    ) -> RegularRefreshService:
        return RegularRefreshService(
            definition=definition,
            engine=self._engine,
            row_count_strategy=row_count_strategy,
            connection=self._connection,
        )

    def service_concurrent_refresh(
        self,
        definition: MatViewDefinition,
        row_count_strategy: RowCountStrategy,
    ) -> ConcurrentRefreshService:
        return ConcurrentRefreshService(
            definition=definition,
            engine=self._engine,
            row_count_strategy=row_count_strategy,
            connection=self._connection,
        )

    def service_swap_refresh(
        self,
        definition: MatViewDefinition,
        row_count_strategy: RowCountStrategy,
    ) -> SwapRefreshService:
        return SwapRefreshService(
            definition=definition,
            engine=self._engine,
            row_count_strategy=row_count_strategy,
            connection=self._connection,
        )

    def service_delete(
        self,
        definition: MatViewDefinition,
        cascade: bool,
        row_count_strategy: RowCountStrategy,
        if_exists: bool = True,
    ) -> DeleteViewService:
        return DeleteViewService(
            definition=definition,
            engine=self._engine,
            row_count_strategy=row_count_strategy,
            connection=self._connection,
            cascade=cascade,
            if_exists=if_exists,
        )
