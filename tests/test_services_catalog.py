"""Unit tests for catalog row count estimates."""

from __future__ import annotations

import pytest

from mat_views.services.catalog import catalog_estimated_row_count


class _ScalarResultStub:
    def __init__(self, value):
        self._value = value

    def scalar(self):
        return self._value


class _ScalarConnectionStub:
    """Connection stub returning one scalar and recording bind parameters."""

    def __init__(self, value):
        self._value = value
        self.parameters: list[dict[str, str]] = []

    def execute(self, statement, parameters=None):
        _ = statement
        self.parameters.append(parameters)
        return _ScalarResultStub(self._value)


@pytest.mark.parametrize(
    ("reltuples", "expected"),
    [(-1.0, None), (None, None), (0.0, 0), (3.0, 3), (1234.9, 1234)],
)
def test_estimated_row_count_maps_reltuples(reltuples, expected) -> None:
    connection = _ScalarConnectionStub(reltuples)

    assert catalog_estimated_row_count(connection, "public", "mv_orders") == expected
    assert connection.parameters == [{"schema": "public", "name": "mv_orders"}]
