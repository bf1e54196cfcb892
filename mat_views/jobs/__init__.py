"""Job layer: run lifecycle wrapper, concrete jobs and enqueue adapter."""

from .adapter import (
	SUPPORTED_BACKEND_NAMES,
	InlineEnqueueBackend,
	JobEnqueueAdapter,
	PostgresEnqueueBackend,
	RedisEnqueueBackend,
	job_build_enqueue_backend,
	job_build_payload,
)
from .create_view_job import CreateViewJob
from .delete_view_job import DeleteViewJob
from .interfaces import EnqueueBackendPort, JobKind, JobOptions, MatViewJobPort
from .lifecycle import BaseMatViewJob
from .options import job_normalize_options, job_parse_bool
from .refresh_view_job import RefreshViewJob
from .registry import JobRegistry, job_unpack_args

__all__ = [
	"SUPPORTED_BACKEND_NAMES",
	"InlineEnqueueBackend",
	"JobEnqueueAdapter",
	"PostgresEnqueueBackend",
	"RedisEnqueueBackend",
	"job_build_enqueue_backend",
	"job_build_payload",
	"CreateViewJob",
	"DeleteViewJob",
	"EnqueueBackendPort",
	"JobKind",
	"JobOptions",
	"MatViewJobPort",
	"BaseMatViewJob",
	"job_normalize_options",
	"job_parse_bool",
	"RefreshViewJob",
	"JobRegistry",
	"job_unpack_args",
]
