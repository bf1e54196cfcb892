"""Orchestration job refreshing a materialized view with its definition's strategy."""

from __future__ import annotations

from mat_views.domain import MatViewDefinition, RefreshStrategy, RunOperation
from mat_views.services import MatViewServicePort

from .interfaces import JobKind, JobOptions
from .lifecycle import BaseMatViewJob


class RefreshViewJob(BaseMatViewJob):
    """Refresh the view with the service matching `definition.refresh_strategy`."""

    job_kind = JobKind.REFRESH_VIEW
    run_operation = RunOperation.REFRESH

    def _job_build_service(self, definition: MatViewDefinition, options: JobOptions) -> MatViewServicePort:
        strategy = definition.refresh_strategy
        if strategy is RefreshStrategy.REGULAR:
            return self._service_factory.service_regular_refresh(
                definition=definition,
                row_count_strategy=options.row_count_strategy,
            )
        if strategy is RefreshStrategy.CONCURRENT:
            return self._service_factory.service_concurrent_refresh(
                definition=definition,
                row_count_strategy=options.row_count_strategy,
            )
        if strategy is RefreshStrategy.SWAP:
            return self._service_factory.service_swap_refresh(
                definition=definition,
                row_count_strategy=options.row_count_strategy,
            )
        raise ValueError(f"unsupported refresh_strategy={strategy!r}")
