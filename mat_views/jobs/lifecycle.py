"""Shared run lifecycle wrapper for orchestration jobs."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, ClassVar

from mat_views.db import DefinitionRepositoryPort, RunRepositoryPort
from mat_views.domain import (
    DefinitionNotFoundError,
    MatViewDefinition,
    RowCountStrategy,
    RunOperation,
    RunStatus,
    ServiceResponse,
    domain_run_duration_ms,
    domain_serialize_error,
)
from mat_views.services import MatViewServiceFactory, MatViewServicePort

from .interfaces import JobKind, JobOptions, MatViewJobPort
from .options import job_normalize_options

logger = logging.getLogger(__name__)


class BaseMatViewJob(MatViewJobPort):
    """Bind a definition to a service and record the attempt as a run.

    Lifecycle of one `perform` call:
        1. Normalize options and load the definition; a missing definition
           raises without creating a run.
        2. Create a `running` run.
        3. Invoke the service, timing it with a monotonic clock.
        4. Finalize `success` or `failed` from the envelope status, or
           `failed` with the serialized exception which is then re-raised.

    Run persistence errors are never swallowed.
    """

    job_kind: ClassVar[JobKind]
    run_operation: ClassVar[RunOperation]

    def __init__(
        self,
        definition_repository: DefinitionRepositoryPort,
        run_repository: RunRepositoryPort,
        service_factory: MatViewServiceFactory,
        default_row_count_strategy: RowCountStrategy = RowCountStrategy.ESTIMATED,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize job dependencies.

        Args:
            definition_repository: Definition persistence port.
            run_repository: Run persistence port.
            service_factory: Builder for DDL services.
            default_row_count_strategy: Strategy used when a call gives none.
            clock: Monotonic clock in seconds.

        Raises:
            ValueError: Raised when a dependency is None.
        """

        if definition_repository is None:
            raise ValueError("definition_repository must not be None")
        if run_repository is None:
            raise ValueError("run_repository must not be None")
        if service_factory is None:
            raise ValueError("service_factory must not be None")

        self._definition_repository = definition_repository
        self._run_repository = run_repository
        self._service_factory = service_factory
        self._default_row_count_strategy = default_row_count_strategy
        self._clock = clock

    def perform(self, definition_id: int, **options: Any) -> ServiceResponse:
        """Run the job's operation for one definition.

        Args:
            definition_id: Definition identifier.
            **options: Raw job options.

        Returns:
            ServiceResponse: Envelope returned by the service.

        Raises:
            ValueError: Raised when options are invalid; no run is created.
            DefinitionNotFoundError: Raised when the definition does not exist; no run is created.
            RuntimeError: Raised when run persistence fails.
            Exception: Service exceptions are re-raised after the run is marked failed.
        """

        job_options = job_normalize_options(options, self._default_row_count_strategy)
        definition = self._definition_repository.db_definition_get_by_id(definition_id)
        if definition is None:
            raise DefinitionNotFoundError(definition_id)

        run_record = self._run_repository.db_run_create_running(
            definition_id=definition_id,
            operation=self.run_operation,
        )
        log_extra = {
            "definition": definition.name,
            "run_id": run_record.run_id,
            "operation": self.run_operation.label,
            "job_kind": self.job_kind.value,
        }
        logger.info("materialized view run started", extra=log_extra)

        started_at = self._clock()
        try:
            service = self._job_build_service(definition, job_options)
            envelope = service.service_run()
        except Exception as error:
            duration_ms = domain_run_duration_ms(started_at, self._clock())
            logger.exception("materialized view run raised", extra=log_extra)
            self._run_repository.db_run_finalize(
                run_id=run_record.run_id,
                status=RunStatus.FAILED,
                duration_ms=duration_ms,
                error=domain_serialize_error(error),
                meta={"request": {"options": job_options.to_dict()}, "response": {}},
            )
            raise

        duration_ms = domain_run_duration_ms(started_at, self._clock())
        run_meta = {"request": dict(envelope.request), "response": dict(envelope.response)}
        if envelope.is_success:
            self._run_repository.db_run_finalize(
                run_id=run_record.run_id,
                status=RunStatus.SUCCESS,
                duration_ms=duration_ms,
                error=None,
                meta=run_meta,
            )
            logger.info(
                "materialized view run succeeded with status=%s in %sms",
                envelope.status.value,
                duration_ms,
                extra=log_extra,
            )
        else:
            self._run_repository.db_run_finalize(
                run_id=run_record.run_id,
                status=RunStatus.FAILED,
                duration_ms=duration_ms,
                error=dict(envelope.error or {}),
                meta=run_meta,
            )
            logger.warning(
                "materialized view run failed: %s",
                (envelope.error or {}).get("message"),
                extra=log_extra,
            )
        return envelope

    def _job_build_service(self, definition: MatViewDefinition, options: JobOptions) -> MatViewServicePort:
        raise NotImplementedError
