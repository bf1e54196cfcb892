"""Regression tests for job option normalization and payload dispatch."""

from __future__ import annotations

import json
from typing import Any

import pytest

from mat_views.domain import RowCountStrategy, ServiceStatus, domain_envelope_ok
from mat_views.jobs import JobKind, JobRegistry, job_normalize_options, job_parse_bool, job_unpack_args


@pytest.mark.parametrize("value", [True, 1, "true", "TRUE", "1", "yes", "Y", " y "])
def test_parse_bool_truthy(value: object) -> None:
    assert job_parse_bool(value) is True


@pytest.mark.parametrize("value", [False, 0, 2, "false", "no", "", None, "on"])
def test_parse_bool_falsy(value: object) -> None:
    assert job_parse_bool(value) is False


def test_normalize_options_defaults_and_overrides() -> None:
    assert job_normalize_options(None).row_count_strategy is RowCountStrategy.ESTIMATED
    assert job_normalize_options({}, RowCountStrategy.EXACT).row_count_strategy is RowCountStrategy.EXACT
    assert job_normalize_options({"row_count_strategy": None}).row_count_strategy is RowCountStrategy.ESTIMATED

    options = job_normalize_options({"force": "1", "cascade": 0, "row_count_strategy": "none"})
    assert options.force is True
    assert options.cascade is False
    assert options.row_count_strategy is RowCountStrategy.NONE
    assert options.to_dict() == {"force": True, "cascade": False, "row_count_strategy": "none"}


def test_unpack_args() -> None:
    assert job_unpack_args([3]) == (3, {})
    assert job_unpack_args([3, None]) == (3, {})
    assert job_unpack_args([3, {"force": True}]) == (3, {"force": True})
    for invalid_args in ([], ["3"], [True], [3, "force"], [1, {}, 2]):
        with pytest.raises(ValueError):
            job_unpack_args(invalid_args)


class _JobStub:
    """Job stub capturing perform calls."""

    def __init__(self, job_kind: JobKind):
        self.job_kind = job_kind
        self.calls: list[tuple[int, dict[str, Any]]] = []

    def perform(self, definition_id: int, **options: Any):
        self.calls.append((definition_id, options))
        return domain_envelope_ok(ServiceStatus.OK, {}, {"job": self.job_kind.value})


def test_registry_dispatches_payloads() -> None:
    """Decode queued payloads and dispatch them to registered jobs.

    Returns:
        None: Assertions validate dispatch.

    Raises:
        AssertionError: Raised when dispatch differs.
    """

    refresh_job = _JobStub(JobKind.REFRESH_VIEW)
    registry = JobRegistry(jobs=[_JobStub(JobKind.CREATE_VIEW), refresh_job])
    payload = {
        "job_kind": "refresh_view",
        "queue": "default",
        "args": [5, {"row_count_strategy": "exact"}],
        "enqueued_at": "2026-10-17T00:00:00+00:00",
    }

    envelope = registry.job_perform_payload(json.dumps(payload))

    assert envelope.response == {"job": "refresh_view"}
    assert refresh_job.calls == [(5, {"row_count_strategy": "exact"})]
    assert registry.job_supported_kinds() == (JobKind.CREATE_VIEW, JobKind.REFRESH_VIEW)


def test_registry_rejects_bad_payloads_and_unknown_kinds() -> None:
    registry = JobRegistry(jobs=[_JobStub(JobKind.CREATE_VIEW)])

    with pytest.raises(ValueError, match="not valid JSON"):
        registry.job_perform_payload("{not json")
    with pytest.raises(ValueError, match="JSON object"):
        registry.job_perform_payload("[1, 2]")
    with pytest.raises(ValueError, match="missing job_kind"):
        registry.job_perform_payload({"args": [1]})
    with pytest.raises(ValueError, match="job_kind must be one of"):
        registry.job_perform("vacuum_view", [1])
    with pytest.raises(LookupError, match="no job registered"):
        registry.job_perform(JobKind.DELETE_VIEW, [1])


def test_registry_rejects_duplicate_kinds() -> None:
    with pytest.raises(ValueError, match="duplicate job registration"):
        JobRegistry(jobs=[_JobStub(JobKind.CREATE_VIEW), _JobStub(JobKind.CREATE_VIEW)])
