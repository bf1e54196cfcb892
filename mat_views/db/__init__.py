"""Database layer package for definition, run and job queue persistence."""

from .definitions import SQLAlchemyDefinitionService
from .interfaces import (
	DefinitionRepositoryPort,
	JobQueueRepositoryPort,
	MatViewRunRecord,
	MatViewRunState,
	QueuedJobRecord,
	RunRepositoryPort,
)
from .job_queue import SQLAlchemyJobQueueService
from .runs import SQLAlchemyRunService
from .session import db_create_engine

__all__ = [
	"DefinitionRepositoryPort",
	"RunRepositoryPort",
	"JobQueueRepositoryPort",
	"MatViewRunRecord",
	"MatViewRunState",
	"QueuedJobRecord",
	"SQLAlchemyDefinitionService",
	"SQLAlchemyRunService",
	"SQLAlchemyJobQueueService",
	"db_create_engine",
]
