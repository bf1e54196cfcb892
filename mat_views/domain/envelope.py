"""Uniform result envelope returned by every DDL service call."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .enums import SERVICE_SUCCESS_STATUSES, ServiceStatus
from .errors import domain_serialize_error


@dataclass(frozen=True)
class ServiceResponse:
    """Outcome of one service operation.

    Attributes:
        status: Symbolic outcome.
        request: What was attempted (view, SQL, strategy, options).
        response: What happened (row counts, index details, warnings).
        error: Serialized error payload, present only for `error` status.
    """

    status: ServiceStatus
    request: dict[str, Any] = field(default_factory=dict)
    response: dict[str, Any] = field(default_factory=dict)
    error: dict[str, Any] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ServiceStatus):
            raise ValueError("status must be a ServiceStatus member")
        if self.status is ServiceStatus.ERROR and self.error is None:
            raise ValueError("error status requires an error payload")
        if self.status is not ServiceStatus.ERROR and self.error is not None:
            raise ValueError("error payload is only allowed with error status")

    @property
    def is_success(self) -> bool:
        return self.status in SERVICE_SUCCESS_STATUSES

    @property
    def is_error(self) -> bool:
        return self.status is ServiceStatus.ERROR

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible representation, omitting an absent error.

        Returns:
            dict[str, Any]: Serialized envelope.
        """

        payload: dict[str, Any] = {
            "status": self.status.value,
            "request": dict(self.request),
            "response": dict(self.response),
        }
        if self.error is not None:
            payload["error"] = dict(self.error)
        return payload


def domain_envelope_ok(
    status: ServiceStatus,
    request: dict[str, Any],
    response: dict[str, Any],
) -> ServiceResponse:
    """Build a normal-outcome envelope.

    Args:
        status: Non-error outcome status.
        request: Request details.
        response: Response details.

    Returns:
        ServiceResponse: Envelope without error payload.
    """

    return ServiceResponse(status=status, request=dict(request), response=dict(response))


def domain_envelope_error(
    error: BaseException,
    request: dict[str, Any],
    response: dict[str, Any] | None = None,
) -> ServiceResponse:
    """Build an error envelope from an exception.

    Args:
        error: Captured exception.
        request: Request details assembled before the failure.
        response: Partial response details, if any.

    Returns:
        ServiceResponse: Envelope with `error` status and serialized error.
    """

    return ServiceResponse(
        status=ServiceStatus.ERROR,
        request=dict(request),
        response=dict(response or {}),
        error=domain_serialize_error(error),
    )
