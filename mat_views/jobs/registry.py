"""Dispatch of job kinds to orchestration job instances."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping

from mat_views.domain import ServiceResponse

from .interfaces import JobKind, MatViewJobPort


class JobRegistry:
    """Closed mapping from `JobKind` to job instance.

    Task runtimes that pull queued payloads call `job_perform_payload`.
    """

    def __init__(self, jobs: Iterable[MatViewJobPort]):
        """Register jobs by kind.

        Args:
            jobs: One job per kind.

        Raises:
            ValueError: Raised when a kind is registered twice.
        """

        self._jobs: dict[JobKind, MatViewJobPort] = {}
        for job in jobs:
            if job.job_kind in self._jobs:
                raise ValueError(f"duplicate job registration for job_kind={job.job_kind.value}")
            self._jobs[job.job_kind] = job

    def job_supported_kinds(self) -> tuple[JobKind, ...]:
        return tuple(self._jobs)

    def job_get(self, job_kind: JobKind | str) -> MatViewJobPort:
        resolved_kind = JobKind.from_value(job_kind)
        job = self._jobs.get(resolved_kind)
        if job is None:
            raise LookupError(f"no job registered for job_kind={resolved_kind.value}")
        return job

    def job_perform(self, job_kind: JobKind | str, args: list[Any]) -> ServiceResponse:
        """Run a job with queued positional arguments.

        Args:
            job_kind: Job to run.
            args: `[definition_id]` or `[definition_id, options]`.

        Returns:
            ServiceResponse: Envelope returned by the job.

        Raises:
            ValueError: Raised when the arguments do not match the job contract.
        """

        definition_id, options = job_unpack_args(args)
        return self.job_get(job_kind).perform(definition_id, **options)

    def job_perform_payload(self, raw_payload: str | bytes | Mapping[str, Any]) -> ServiceResponse:
        """Decode a queued payload and run the job it names.

        Args:
            raw_payload: JSON text or decoded mapping with `job_kind` and `args`.

        Returns:
            ServiceResponse: Envelope returned by the job.

        Raises:
            ValueError: Raised when the payload is malformed.
        """

        if isinstance(raw_payload, (str, bytes)):
            try:
                payload = json.loads(raw_payload)
            except json.JSONDecodeError as error:
                raise ValueError("queued job payload is not valid JSON") from error
        else:
            payload = dict(raw_payload)

        if not isinstance(payload, dict):
            raise ValueError("queued job payload must be a JSON object")
        if "job_kind" not in payload:
            raise ValueError("queued job payload is missing job_kind")
        args = payload.get("args", [])
        if not isinstance(args, list):
            raise ValueError("queued job payload args must be a list")
        return self.job_perform(payload["job_kind"], args)


def job_unpack_args(args: list[Any]) -> tuple[int, dict[str, Any]]:
    """Split queued arguments into definition id and options.

    Args:
        args: `[definition_id]` or `[definition_id, options]`.

    Returns:
        tuple[int, dict[str, Any]]: Definition id and option mapping.

    Raises:
        ValueError: Raised when the arguments do not match the job contract.
    """

    if not args or len(args) > 2:
        raise ValueError("job args must be [definition_id] or [definition_id, options]")
    definition_id = args[0]
    if isinstance(definition_id, bool) or not isinstance(definition_id, int):
        raise ValueError("definition_id must be an integer")
    options = args[1] if len(args) == 2 else {}
    if options is None:
        options = {}
    if not isinstance(options, dict):
        raise ValueError("job options must be a mapping")
    return definition_id, dict(options)
