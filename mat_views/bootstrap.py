"""Runtime wiring for repositories, services, jobs and the enqueue adapter."""

from __future__ import annotations

from dataclasses import dataclass

from redis import Redis
from sqlalchemy import Engine

from mat_views.config import AppSettings, config_build_job_runtime, config_load_settings
from mat_views.db import (
    SQLAlchemyDefinitionService,
    SQLAlchemyJobQueueService,
    SQLAlchemyRunService,
    db_create_engine,
)
from mat_views.domain import RowCountStrategy
from mat_views.jobs import (
    CreateViewJob,
    DeleteViewJob,
    JobEnqueueAdapter,
    JobRegistry,
    RefreshViewJob,
    job_build_enqueue_backend,
)
from mat_views.services import MatViewServiceFactory


@dataclass(frozen=True)
class MatViewsRuntime:
    """Fully wired runtime collaborators.

    Attributes:
        settings: Validated settings.
        engine: Shared SQLAlchemy engine.
        definition_repository: Definition persistence.
        run_repository: Run persistence.
        service_factory: DDL service builder.
        registry: Job registry used by task runtimes.
        enqueue_adapter: Adapter bound to the configured backend.
    """

    settings: AppSettings
    engine: Engine
    definition_repository: SQLAlchemyDefinitionService
    run_repository: SQLAlchemyRunService
    service_factory: MatViewServiceFactory
    registry: JobRegistry
    enqueue_adapter: JobEnqueueAdapter


def bootstrap_create_runtime(settings: AppSettings | None = None) -> MatViewsRuntime:
    """Assemble the runtime after validating configuration.

    Args:
        settings: Optional preloaded settings; loaded from the environment when None.

    Returns:
        MatViewsRuntime: Wired collaborators.

    Raises:
        SettingsLoadError: Raised when startup configuration validation fails.
        EnqueueConfigurationError: Raised when the configured backend cannot be built.
    """

    resolved_settings = settings or config_load_settings()
    engine = db_create_engine(database_url=resolved_settings.database_url)
    definition_repository = SQLAlchemyDefinitionService(engine=engine)
    run_repository = SQLAlchemyRunService(engine=engine)
    service_factory = MatViewServiceFactory(engine=engine)
    default_row_count_strategy = RowCountStrategy.from_value(resolved_settings.default_row_count_strategy)

    registry = JobRegistry(
        jobs=[
            job_class(
                definition_repository=definition_repository,
                run_repository=run_repository,
                service_factory=service_factory,
                default_row_count_strategy=default_row_count_strategy,
            )
            for job_class in (CreateViewJob, RefreshViewJob, DeleteViewJob)
        ]
    )

    runtime_config = config_build_job_runtime(resolved_settings)
    redis_client = None
    if runtime_config.job_adapter == "redis":
        redis_client = Redis.from_url(resolved_settings.redis_url, decode_responses=True)
    queue_repository = None
    if runtime_config.job_adapter == "postgres":
        queue_repository = SQLAlchemyJobQueueService(engine=engine)

    backend = job_build_enqueue_backend(
        runtime_config=runtime_config,
        registry=registry,
        redis_client=redis_client,
        redis_key_prefix=resolved_settings.redis_queue_prefix,
        queue_repository=queue_repository,
    )
    return MatViewsRuntime(
        settings=resolved_settings,
        engine=engine,
        definition_repository=definition_repository,
        run_repository=run_repository,
        service_factory=service_factory,
        registry=registry,
        enqueue_adapter=JobEnqueueAdapter(backend=backend, default_queue=runtime_config.job_queue),
    )
