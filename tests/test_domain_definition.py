"""Regression tests for materialized view definition validation."""

from __future__ import annotations

import pytest

from mat_views.domain import (
    DefinitionValidationError,
    MatViewDefinition,
    RefreshStrategy,
    domain_build_definition,
    domain_validate_definition,
)


def test_definition_accepts_plain_select() -> None:
    """Accept a minimal regular definition with defaults.

    Returns:
        None: Assertions validate defaults.

    Raises:
        AssertionError: Raised when defaults differ.
    """

    definition = MatViewDefinition(name="mv_orders_daily", sql="SELECT id FROM orders")
    domain_validate_definition(definition)

    assert definition.refresh_strategy is RefreshStrategy.REGULAR
    assert definition.unique_index_columns == ()
    assert definition.definition_id is None


@pytest.mark.parametrize("name", ["1orders", "orders-daily", "public.orders", "", "orders daily", 'or"ders'])
def test_definition_rejects_invalid_names(name: str) -> None:
    with pytest.raises(DefinitionValidationError, match="Invalid view name format"):
        domain_validate_definition(MatViewDefinition(name=name, sql="SELECT 1"))


@pytest.mark.parametrize("sql", ["WITH x AS (SELECT 1) SELECT * FROM x", "DELETE FROM orders", "", "SELECTED"])
def test_definition_requires_select_prefix(sql: str) -> None:
    with pytest.raises(DefinitionValidationError, match="SELECT"):
        domain_validate_definition(MatViewDefinition(name="mv_orders", sql=sql))


def test_definition_select_prefix_is_case_insensitive() -> None:
    definition = MatViewDefinition(name="mv_orders", sql="  select id from orders")
    domain_validate_definition(definition)

    assert definition.sql.strip().startswith("select")


def test_definition_rejects_trailing_semicolon() -> None:
    with pytest.raises(DefinitionValidationError, match="semicolon"):
        domain_validate_definition(MatViewDefinition(name="mv_orders", sql="SELECT id FROM orders;"))


def test_concurrent_definition_requires_unique_columns() -> None:
    """Reject concurrent strategy without unique index columns.

    Returns:
        None: Assertions validate rejection.

    Raises:
        AssertionError: Raised when an invalid definition is accepted.
    """

    invalid_definition = MatViewDefinition(
        name="mv_orders",
        sql="SELECT id FROM orders",
        refresh_strategy=RefreshStrategy.CONCURRENT,
    )
    with pytest.raises(DefinitionValidationError, match="concurrent requires unique_index_columns"):
        domain_validate_definition(invalid_definition)

    definition = MatViewDefinition(
        name="mv_orders",
        sql="SELECT id FROM orders",
        refresh_strategy=RefreshStrategy.CONCURRENT,
        unique_index_columns=("id",),
    )
    domain_validate_definition(definition)
    assert definition.unique_index_columns == ("id",)


@pytest.mark.parametrize(
    ("unique_index_columns", "message"),
    [(("id", "id"), "duplicates"), ((" ",), "non-blank"), (["id"], "tuple")],
)
def test_definition_rejects_malformed_columns(unique_index_columns, message: str) -> None:
    definition = MatViewDefinition(name="mv_orders", sql="SELECT id FROM orders", unique_index_columns=unique_index_columns)

    with pytest.raises(DefinitionValidationError, match=message):
        domain_validate_definition(definition)


def test_definition_construction_does_not_validate() -> None:
    definition = MatViewDefinition(name="mv_orders", sql="SELECT id FROM orders;")

    assert definition.sql.endswith(";")
    with pytest.raises(DefinitionValidationError, match="semicolon"):
        domain_validate_definition(definition)


def test_build_definition_validates_operator_input() -> None:
    with pytest.raises(DefinitionValidationError, match="semicolon"):
        domain_build_definition(name="mv_orders", sql="SELECT 1;")


def test_build_definition_normalizes_loose_input() -> None:
    """Normalize operator input into a validated definition.

    Returns:
        None: Assertions validate normalization.

    Raises:
        AssertionError: Raised when normalization differs.
    """

    definition = domain_build_definition(
        name=" mv_orders ",
        sql=" SELECT id, day FROM orders ",
        refresh_strategy="Swap",
        unique_index_columns=["id", " day "],
        dependencies=["orders"],
        schedule_cron="  ",
    )

    assert definition.name == "mv_orders"
    assert definition.sql == "SELECT id, day FROM orders"
    assert definition.refresh_strategy is RefreshStrategy.SWAP
    assert definition.unique_index_columns == ("id", "day")
    assert definition.dependencies == ("orders",)
    assert definition.schedule_cron is None


def test_build_definition_rejects_unknown_strategy() -> None:
    with pytest.raises(DefinitionValidationError, match="RefreshStrategy must be one of"):
        domain_build_definition(name="mv_orders", sql="SELECT 1", refresh_strategy="eventually")


def test_definition_equality_ignores_timestamps() -> None:
    from datetime import datetime, timezone

    first = MatViewDefinition(name="mv_a", sql="SELECT 1", definition_id=1, created_at=datetime.now(timezone.utc))
    second = MatViewDefinition(name="mv_a", sql="SELECT 1", definition_id=1)

    assert first == second
