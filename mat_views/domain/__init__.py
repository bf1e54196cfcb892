"""Domain models used across application layer boundaries."""

from .definition import MatViewDefinition, domain_build_definition, domain_validate_definition
from .envelope import ServiceResponse, domain_envelope_error, domain_envelope_ok
from .enums import (
	RUN_TERMINAL_STATUSES,
	RefreshStrategy,
	RowCountStrategy,
	RunOperation,
	RunStatus,
	ServiceStatus,
)
from .errors import (
	DefinitionNotFoundError,
	DefinitionValidationError,
	EnqueueConfigurationError,
	MatViewServiceError,
	MatViewsError,
	RunStateTransitionError,
	UnknownEnumCodeError,
	domain_serialize_error,
)
from .run_state import domain_run_duration_ms, domain_run_validate_transition

__all__ = [
	"MatViewDefinition",
	"domain_build_definition",
	"domain_validate_definition",
	"ServiceResponse",
	"domain_envelope_ok",
	"domain_envelope_error",
	"RUN_TERMINAL_STATUSES",
	"RefreshStrategy",
	"RowCountStrategy",
	"RunOperation",
	"RunStatus",
	"ServiceStatus",
	"MatViewsError",
	"DefinitionNotFoundError",
	"DefinitionValidationError",
	"EnqueueConfigurationError",
	"MatViewServiceError",
	"RunStateTransitionError",
	"UnknownEnumCodeError",
	"domain_serialize_error",
	"domain_run_duration_ms",
	"domain_run_validate_transition",
]
