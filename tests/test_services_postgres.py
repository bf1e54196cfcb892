"""Integration tests for the DDL services against PostgreSQL."""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, text

from mat_views.domain import MatViewDefinition, RefreshStrategy, ServiceStatus
from mat_views.services import (
    TRANSACTION_BLOCK_MESSAGE,
    CheckMatViewExistsService,
    ConcurrentRefreshService,
    CreateViewService,
    DeleteViewService,
    MatViewServiceFactory,
    RegularRefreshService,
    SwapRefreshService,
)
from mat_views.services.catalog import catalog_list_grants
from mat_views.services.sql import sql_rename_view


def _service_definition(
    name: str = "mv_orders",
    refresh_strategy: RefreshStrategy = RefreshStrategy.REGULAR,
    unique_index_columns: tuple[str, ...] = (),
) -> MatViewDefinition:
    return MatViewDefinition(
        name=name,
        sql="SELECT id, region FROM orders",
        refresh_strategy=refresh_strategy,
        unique_index_columns=unique_index_columns,
    )


def _service_count(engine: Engine, relation: str) -> int:
    with engine.connect() as connection:
        return connection.execute(text(f'SELECT COUNT(*) FROM "{relation}"')).scalar_one()


def _service_insert_orders(engine: Engine, *rows: tuple[int, str]) -> None:
    with engine.begin() as connection:
        for order_id, region in rows:
            connection.execute(
                text("INSERT INTO orders (id, region) VALUES (:id, :region)"),
                {"id": order_id, "region": region},
            )


def _service_matview_names(engine: Engine) -> set[str]:
    with engine.connect() as connection:
        rows = connection.execute(text("SELECT matviewname FROM pg_matviews WHERE schemaname = 'public'")).fetchall()
    return {row[0] for row in rows}


def test_create_is_idempotent(pg_orders: Engine) -> None:
    """Create once, then skip on the second call without force.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate idempotent create.

    Raises:
        AssertionError: Raised when create behaviour differs.
    """

    definition = _service_definition(unique_index_columns=("id",))
    factory = MatViewServiceFactory(engine=pg_orders)

    assert factory.service_exists(definition).service_run().response == {"exists": False}

    created = factory.service_create(definition, force=False, row_count_strategy="exact").service_run()
    assert created.status is ServiceStatus.CREATED
    assert created.response["row_count"] == 3
    assert created.response["index_created"] is True
    assert created.response["index_name"] == "mv_orders_uniq_id"
    assert created.request["view"] == "public.mv_orders"
    assert created.request["sql"][0].startswith('CREATE MATERIALIZED VIEW "public"."mv_orders" AS SELECT')

    _service_insert_orders(pg_orders, (4, "us"))
    skipped = factory.service_create(definition, force=False, row_count_strategy="exact").service_run()
    assert skipped.status is ServiceStatus.SKIPPED
    assert skipped.response == {"exists": True}
    assert _service_count(pg_orders, "mv_orders") == 3

    assert CheckMatViewExistsService(definition=definition, engine=pg_orders).service_run().response == {"exists": True}


def test_create_with_force_rebuilds(pg_orders: Engine) -> None:
    definition = _service_definition()
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    _service_insert_orders(pg_orders, (4, "us"), (5, "apac"))

    rebuilt = CreateViewService(
        definition=definition,
        engine=pg_orders,
        row_count_strategy="exact",
        force=True,
    ).service_run()

    assert rebuilt.status is ServiceStatus.CREATED
    assert rebuilt.response["dropped_existing"] is True
    assert rebuilt.response["index_created"] is False
    assert rebuilt.response["row_count"] == _service_count(pg_orders, "orders") == 5


def test_estimated_counts_follow_planner_statistics(pg_orders: Engine) -> None:
    """Report `reltuples` after ANALYZE and omit counts for the `none` strategy.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate estimated and skipped counts.

    Raises:
        AssertionError: Raised when row count reporting differs.
    """

    definition = _service_definition("mv_estimated")
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    uncounted = CreateViewService(
        definition=_service_definition("mv_uncounted"),
        engine=pg_orders,
        row_count_strategy="none",
    ).service_run()
    with pg_orders.begin() as connection:
        connection.execute(text('ANALYZE "public"."mv_estimated"'))

    refreshed = RegularRefreshService(definition=definition, engine=pg_orders).service_run()

    assert refreshed.request["row_count_strategy"] == "estimated"
    assert refreshed.response["row_count_before"] == 3
    assert "row_count" not in uncounted.response
    assert uncounted.request["row_count_strategy"] == "none"


def test_create_with_invalid_sql_returns_error_envelope(pg_orders: Engine) -> None:
    definition = MatViewDefinition(name="mv_broken", sql="SELECT id FROM missing_table")

    envelope = CreateViewService(definition=definition, engine=pg_orders).service_run()

    assert envelope.status is ServiceStatus.ERROR
    assert envelope.error["kind"] == "UndefinedTable"
    assert "missing_table" in envelope.error["message"]
    assert envelope.request["sql"]


def test_regular_refresh_updates_content(pg_orders: Engine) -> None:
    definition = _service_definition()
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    _service_insert_orders(pg_orders, (4, "us"))

    refreshed = RegularRefreshService(definition=definition, engine=pg_orders, row_count_strategy="exact").service_run()

    assert refreshed.status is ServiceStatus.REFRESHED
    assert refreshed.response == {"row_count_before": 3, "row_count_after": 4}
    assert refreshed.request["concurrent"] is False


def test_refresh_of_missing_view_is_an_error(pg_orders: Engine) -> None:
    envelope = RegularRefreshService(definition=_service_definition("mv_absent"), engine=pg_orders).service_run()

    assert envelope.status is ServiceStatus.ERROR
    assert envelope.error["message"] == "Materialized view public.mv_absent does not exist"
    assert envelope.error["kind"] == "MatViewServiceError"


def test_concurrent_refresh_inside_transaction_is_refused(pg_orders: Engine) -> None:
    """Refuse a concurrent refresh on a connection with an open transaction block.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate the transaction guard.

    Raises:
        AssertionError: Raised when the guard does not trigger.
    """

    definition = _service_definition(refresh_strategy=RefreshStrategy.CONCURRENT, unique_index_columns=("id",))
    CreateViewService(definition=definition, engine=pg_orders).service_run()

    with pg_orders.connect() as connection:
        envelope = ConcurrentRefreshService(
            definition=definition,
            connection=connection,
            row_count_strategy="exact",
        ).service_run()
        connection.rollback()

    assert envelope.status is ServiceStatus.ERROR
    assert envelope.error["message"] == TRANSACTION_BLOCK_MESSAGE
    assert "transaction block" in envelope.error["message"]


def test_concurrent_refresh_outside_transaction_succeeds(pg_orders: Engine) -> None:
    definition = _service_definition(refresh_strategy=RefreshStrategy.CONCURRENT, unique_index_columns=("id",))
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    _service_insert_orders(pg_orders, (4, "us"), (5, "eu"))

    envelope = ConcurrentRefreshService(definition=definition, engine=pg_orders, row_count_strategy="exact").service_run()

    assert envelope.status is ServiceStatus.REFRESHED
    assert envelope.response["row_count_after"] == _service_count(pg_orders, "orders") == 5
    assert envelope.request["sql"] == ['REFRESH MATERIALIZED VIEW CONCURRENTLY "public"."mv_orders"']


def test_concurrent_refresh_without_unique_index_surfaces_server_error(pg_orders: Engine) -> None:
    CreateViewService(definition=_service_definition(), engine=pg_orders).service_run()
    concurrent_definition = _service_definition(
        refresh_strategy=RefreshStrategy.CONCURRENT,
        unique_index_columns=("id",),
    )

    envelope = ConcurrentRefreshService(definition=concurrent_definition, engine=pg_orders).service_run()

    assert envelope.status is ServiceStatus.ERROR
    assert "concurrently" in envelope.error["message"].lower()
    assert "unique index" in envelope.error["message"].lower()


def test_swap_refresh_replaces_content_and_keeps_indexes_and_grants(pg_orders: Engine) -> None:
    """Swap in fresh content while keeping index names and grants.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate the swap outcome.

    Raises:
        AssertionError: Raised when swap behaviour differs.
    """

    definition = _service_definition(refresh_strategy=RefreshStrategy.SWAP)
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    with pg_orders.begin() as connection:
        connection.execute(text('CREATE INDEX mv_orders_region_idx ON "public"."mv_orders" (region)'))
        connection.execute(text('CREATE INDEX mv_orders_lower_idx ON "public"."mv_orders" (lower(region))'))
        connection.execute(text('GRANT SELECT ON "public"."mv_orders" TO PUBLIC'))
    _service_insert_orders(pg_orders, (4, "us"))

    envelope = SwapRefreshService(definition=definition, engine=pg_orders, row_count_strategy="exact").service_run()

    assert envelope.status is ServiceStatus.SWAPPED, envelope.error
    assert envelope.response["row_count_before"] == 3
    assert envelope.response["row_count_after"] == 4
    assert envelope.response["cutover_committed"] is True
    assert envelope.response["old_view_dropped"] is True
    assert envelope.response["mirrored_indexes"] == ["mv_orders_region_idx"]
    assert envelope.response["skipped_indexes"] == ["mv_orders_lower_idx"]
    assert _service_count(pg_orders, "mv_orders") == 4
    assert _service_matview_names(pg_orders) == {"mv_orders"}

    with pg_orders.connect() as connection:
        index_names = {
            row[0]
            for row in connection.execute(
                text("SELECT indexname FROM pg_indexes WHERE schemaname = 'public' AND tablename = 'mv_orders'")
            ).fetchall()
        }
        grants = catalog_list_grants(connection, "public", "mv_orders")
    assert "mv_orders_region_idx" in index_names
    assert ("PUBLIC", "SELECT") in {(grant.grantee, grant.privilege) for grant in grants}


class _FailingCutoverSwapService(SwapRefreshService):
    """Swap service whose cutover transaction fails on its last statement."""

    def _swap_cutover_statements(self) -> list[str]:
        statements = super()._swap_cutover_statements()
        statements.append(sql_rename_view(self.schema, "mv_missing_for_cutover", "mv_never"))
        return statements


def test_failed_swap_cutover_leaves_live_view_untouched(pg_orders: Engine) -> None:
    definition = _service_definition(refresh_strategy=RefreshStrategy.SWAP)
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    _service_insert_orders(pg_orders, (4, "us"), (5, "us"))

    envelope = _FailingCutoverSwapService(definition=definition, engine=pg_orders).service_run()

    assert envelope.status is ServiceStatus.ERROR
    assert envelope.error["kind"] == "UndefinedTable"
    assert "cutover_committed" not in envelope.response
    assert _service_count(pg_orders, "mv_orders") == 3
    assert _service_matview_names(pg_orders) == {"mv_orders"}


def test_delete_requires_cascade_for_dependents(pg_orders: Engine) -> None:
    """Refuse to drop a view with dependents unless cascade is set.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate restrict and cascade drops.

    Raises:
        AssertionError: Raised when drop behaviour differs.
    """

    definition = _service_definition()
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    with pg_orders.begin() as connection:
        connection.execute(text('CREATE VIEW orders_eu AS SELECT * FROM "public"."mv_orders" WHERE region = \'eu\''))

    restricted = DeleteViewService(definition=definition, engine=pg_orders).service_run()
    assert restricted.status is ServiceStatus.ERROR
    assert "orders_eu" in restricted.error["message"]
    assert "cascade=True" in restricted.error["message"]

    dropped = DeleteViewService(definition=definition, engine=pg_orders, cascade=True, row_count_strategy="exact").service_run()
    assert dropped.status is ServiceStatus.DROPPED
    assert dropped.response["row_count_before"] == 3
    assert CheckMatViewExistsService(definition=definition, engine=pg_orders).service_run().response == {"exists": False}


@pytest.mark.parametrize(("if_exists", "expected_status"), [(True, ServiceStatus.SKIPPED), (False, ServiceStatus.ERROR)])
def test_delete_of_missing_view(pg_orders: Engine, if_exists: bool, expected_status: ServiceStatus) -> None:
    envelope = DeleteViewService(
        definition=_service_definition("mv_absent"),
        engine=pg_orders,
        if_exists=if_exists,
    ).service_run()

    assert envelope.status is expected_status


def test_swap_cleanup_failure_after_commit_is_a_warning(pg_orders: Engine) -> None:
    """Report a failed old-view drop as a warning once the cutover committed.

    A plain view reading the live materialized view follows it to the retired
    name, so dropping the retired view without cascade fails.

    Args:
        pg_orders: Engine with the `orders` source table.

    Returns:
        None: Assertions validate the soft cleanup failure.

    Raises:
        AssertionError: Raised when the cleanup failure becomes an error.
    """

    definition = _service_definition(refresh_strategy=RefreshStrategy.SWAP)
    CreateViewService(definition=definition, engine=pg_orders).service_run()
    with pg_orders.begin() as connection:
        connection.execute(text('CREATE VIEW orders_us AS SELECT * FROM "public"."mv_orders" WHERE region = \'us\''))
    _service_insert_orders(pg_orders, (4, "us"))

    envelope = SwapRefreshService(definition=definition, engine=pg_orders, row_count_strategy="exact").service_run()

    assert envelope.status is ServiceStatus.SWAPPED
    assert envelope.error is None
    assert envelope.response["cutover_committed"] is True
    assert envelope.response["old_view_dropped"] is False
    assert "orders_us" in envelope.response["cleanup_warning"]
    assert envelope.response["row_count_after"] == 4
    old_view_name = envelope.request["old_view"].split(".", 1)[1]
    assert _service_matview_names(pg_orders) == {"mv_orders", old_view_name}
    assert _service_count(pg_orders, "mv_orders") == 4
