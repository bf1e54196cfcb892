"""Enqueue adapter routing jobs to exactly one configured task runtime."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from typing import Any, Final, Sequence

from redis import Redis

from mat_views.config import JobRuntimeConfig
from mat_views.db import JobQueueRepositoryPort
from mat_views.domain import EnqueueConfigurationError

from .interfaces import EnqueueBackendPort, JobKind
from .registry import JobRegistry, job_unpack_args

logger = logging.getLogger(__name__)

SUPPORTED_BACKEND_NAMES: Final[tuple[str, ...]] = ("inline", "redis", "postgres")


def job_build_payload(job_kind: JobKind, queue: str, args: list[Any]) -> dict[str, Any]:
    """Build the queued job payload shared by out-of-process backends.

    Args:
        job_kind: Job to run.
        queue: Target queue name.
        args: JSON-compatible positional job arguments.

    Returns:
        dict[str, Any]: `{job_kind, queue, args, enqueued_at}`.
    """

    return {
        "job_kind": job_kind.value,
        "queue": queue,
        "args": list(args),
        "enqueued_at": datetime.now(timezone.utc).isoformat(),
    }


class InlineEnqueueBackend(EnqueueBackendPort):
    """Perform jobs immediately in the calling process."""

    backend_name = "inline"

    def __init__(self, registry: JobRegistry):
        if registry is None:
            raise ValueError("registry must not be None")
        self._registry = registry

    def job_enqueue(self, job_kind: JobKind, queue: str, args: list[Any]) -> None:
        self._registry.job_perform(job_kind, args)


class RedisEnqueueBackend(EnqueueBackendPort):
    """Push JSON payloads onto a Redis list per queue (`LPUSH <prefix>:<queue>`)."""

    backend_name = "redis"

    def __init__(self, client: Redis, key_prefix: str):
        if client is None:
            raise ValueError("client must not be None")
        if not key_prefix.strip():
            raise ValueError("key_prefix must not be blank")
        self._client = client
        self._key_prefix = key_prefix.strip()

    def job_queue_key(self, queue: str) -> str:
        return f"{self._key_prefix}:{queue}"

    def job_enqueue(self, job_kind: JobKind, queue: str, args: list[Any]) -> None:
        payload = job_build_payload(job_kind, queue, args)
        self._client.lpush(self.job_queue_key(queue), json.dumps(payload))


class PostgresEnqueueBackend(EnqueueBackendPort):
    """Insert one row per job into `mat_view_job_queue`."""

    backend_name = "postgres"

    def __init__(self, repository: JobQueueRepositoryPort):
        if repository is None:
            raise ValueError("repository must not be None")
        self._repository = repository

    def job_enqueue(self, job_kind: JobKind, queue: str, args: list[Any]) -> None:
        self._repository.db_job_queue_insert(job_kind=job_kind.value, queue_name=queue, args=list(args))


class JobEnqueueAdapter:
    """Route `enqueue(job_kind, queue, args)` to the backend chosen at construction.

    The backend is never re-detected per call. Without a backend every
    enqueue fails with `EnqueueConfigurationError`.
    """

    def __init__(self, backend: EnqueueBackendPort | None, default_queue: str = "default"):
        if not default_queue.strip():
            raise ValueError("default_queue must not be blank")
        self._backend = backend
        self._default_queue = default_queue.strip()

    @property
    def backend_name(self) -> str | None:
        return self._backend.backend_name if self._backend is not None else None

    def enqueue(self, job_kind: JobKind | str, queue: str | None = None, args: Sequence[Any] = ()) -> None:
        """Hand one job to the configured task runtime.

        Args:
            job_kind: Job to run.
            queue: Target queue; the configured default when None.
            args: `[definition_id]` or `[definition_id, options]`.

        Raises:
            EnqueueConfigurationError: Raised when no backend is configured.
            ValueError: Raised when the job kind, queue or arguments are invalid.
        """

        if self._backend is None:
            raise EnqueueConfigurationError(
                "no job adapter configured; set job_adapter to one of: " + ", ".join(SUPPORTED_BACKEND_NAMES)
            )

        resolved_kind = JobKind.from_value(job_kind)
        resolved_queue = (queue or self._default_queue).strip()
        if not resolved_queue:
            raise ValueError("queue must not be blank")
        job_args = list(args)
        job_unpack_args(job_args)
        try:
            json.dumps(job_args)
        except (TypeError, ValueError) as error:
            raise ValueError("job args must be JSON serializable") from error

        logger.info(
            "enqueueing materialized view job via %s",
            self._backend.backend_name,
            extra={"job_kind": resolved_kind.value, "queue": resolved_queue},
        )
        self._backend.job_enqueue(resolved_kind, resolved_queue, job_args)


def job_build_enqueue_backend(
    runtime_config: JobRuntimeConfig,
    registry: JobRegistry | None = None,
    redis_client: Redis | None = None,
    redis_key_prefix: str = "mat_views:queue",
    queue_repository: JobQueueRepositoryPort | None = None,
) -> EnqueueBackendPort | None:
    """Select the enqueue backend named by configuration.

    Args:
        runtime_config: Explicit job runtime configuration.
        registry: Job registry for the inline backend.
        redis_client: Redis client for the redis backend.
        redis_key_prefix: List key prefix for the redis backend.
        queue_repository: Queue table repository for the postgres backend.

    Returns:
        EnqueueBackendPort | None: Backend, or None when no adapter is configured.

    Raises:
        EnqueueConfigurationError: Raised when the adapter name is unknown or its dependency is missing.
    """

    adapter_name = runtime_config.job_adapter
    if adapter_name is None:
        return None
    if adapter_name == "inline":
        if registry is None:
            raise EnqueueConfigurationError("inline job adapter requires a job registry")
        return InlineEnqueueBackend(registry=registry)
    if adapter_name == "redis":
        if redis_client is None:
            raise EnqueueConfigurationError("redis job adapter requires a redis client")
        return RedisEnqueueBackend(client=redis_client, key_prefix=redis_key_prefix)
    if adapter_name == "postgres":
        if queue_repository is None:
            raise EnqueueConfigurationError("postgres job adapter requires a queue repository")
        return PostgresEnqueueBackend(repository=queue_repository)
    raise EnqueueConfigurationError(f"unsupported job_adapter={adapter_name!r}")
