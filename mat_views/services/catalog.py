"""PostgreSQL catalog lookups used by the DDL services."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Connection, text


@dataclass(frozen=True)
class MatViewIndexSpec:
    """Index found on a live materialized view.

    Attributes:
        index_name: Unqualified index name.
        is_unique: Whether the index is unique.
        method: Access method name (`btree`, `hash`, ...).
        column_names: Ordered key columns; empty for pure expression indexes.
        has_expression: Whether the index uses expressions or a predicate.
    """

    index_name: str
    is_unique: bool
    method: str
    column_names: tuple[str, ...]
    has_expression: bool

    @property
    def is_mirrorable(self) -> bool:
        return bool(self.column_names) and not self.has_expression


@dataclass(frozen=True)
class MatViewGrantSpec:
    """Privilege granted on a live materialized view to a non-owner role.

    Attributes:
        grantee: Role name or `PUBLIC`.
        privilege: Privilege keyword.
        is_grantable: Whether the grant carries `WITH GRANT OPTION`.
    """

    grantee: str
    privilege: str
    is_grantable: bool


def catalog_resolve_schema(connection: Connection) -> str:
    """Return the first existing schema on the connection search path.

    Args:
        connection: Active SQLAlchemy connection.

    Returns:
        str: Schema name, `public` when the search path resolves to nothing.
    """

    schema_name = connection.execute(text("SELECT current_schema()")).scalar()
    return schema_name or "public"


def catalog_view_exists(connection: Connection, schema: str, name: str) -> bool:
    row_count = connection.execute(
        text("SELECT COUNT(*) FROM pg_matviews WHERE schemaname = :schema AND matviewname = :name"),
        {"schema": schema, "name": name},
    ).scalar()
    return int(row_count or 0) > 0


def catalog_estimated_row_count(connection: Connection, schema: str, name: str) -> int | None:
    """Return the planner estimate for a relation's row count.

    Args:
        connection: Active SQLAlchemy connection.
        schema: Schema name.
        name: Relation name.

    Returns:
        int | None: `reltuples` estimate, or None when never analysed or missing.
    """

    estimate = connection.execute(
        text(
            "SELECT c.reltuples "
            "FROM pg_class c "
            "JOIN pg_namespace n ON n.oid = c.relnamespace "
            "WHERE c.relkind IN ('m', 'r', 'p') AND n.nspname = :schema AND c.relname = :name "
            "LIMIT 1"
        ),
        {"schema": schema, "name": name},
    ).scalar()
    if estimate is None or estimate < 0:
        return None
    return int(estimate)


def catalog_exact_row_count(connection: Connection, qualified_name: str) -> int:
    return int(connection.execute(text(f"SELECT COUNT(*) FROM {qualified_name}")).scalar() or 0)


def catalog_list_indexes(connection: Connection, schema: str, name: str) -> list[MatViewIndexSpec]:
    """List indexes of a relation with their key columns.

    Args:
        connection: Active SQLAlchemy connection.
        schema: Schema name.
        name: Relation name.

    Returns:
        list[MatViewIndexSpec]: Indexes ordered by name.
    """

    rows = connection.execute(
        text(
            "SELECT "
            "ic.relname AS index_name, "
            "i.indisunique AS is_unique, "
            "am.amname AS method, "
            "(i.indexprs IS NOT NULL OR i.indpred IS NOT NULL OR 0 = ANY(CAST(i.indkey AS int2[]))) "
            "AS has_expression, "
            "ARRAY("
            "SELECT a.attname "
            "FROM unnest(CAST(i.indkey AS int2[])) WITH ORDINALITY AS k(attnum, ord) "
            "JOIN pg_attribute a ON a.attrelid = i.indrelid AND a.attnum = k.attnum "
            "WHERE k.ord <= i.indnkeyatts "
            "ORDER BY k.ord"
            ") AS column_names "
            "FROM pg_index i "
            "JOIN pg_class c ON c.oid = i.indrelid "
            "JOIN pg_namespace n ON n.oid = c.relnamespace "
            "JOIN pg_class ic ON ic.oid = i.indexrelid "
            "JOIN pg_am am ON am.oid = ic.relam "
            "WHERE n.nspname = :schema AND c.relname = :name "
            "ORDER BY ic.relname"
        ),
        {"schema": schema, "name": name},
    ).mappings().all()
    return [
        MatViewIndexSpec(
            index_name=row["index_name"],
            is_unique=bool(row["is_unique"]),
            method=row["method"],
            column_names=tuple(row["column_names"] or ()),
            has_expression=bool(row["has_expression"]),
        )
        for row in rows
    ]


def catalog_list_grants(connection: Connection, schema: str, name: str) -> list[MatViewGrantSpec]:
    """List privileges granted on a relation to roles other than its owner.

    Args:
        connection: Active SQLAlchemy connection.
        schema: Schema name.
        name: Relation name.

    Returns:
        list[MatViewGrantSpec]: Grants ordered by grantee and privilege.
    """

    rows = connection.execute(
        text(
            "SELECT "
            "COALESCE(r.rolname, 'PUBLIC') AS grantee, "
            "acl.privilege_type AS privilege, "
            "acl.is_grantable AS is_grantable "
            "FROM pg_class c "
            "JOIN pg_namespace n ON n.oid = c.relnamespace "
            "CROSS JOIN LATERAL aclexplode(c.relacl) AS acl "
            "LEFT JOIN pg_roles r ON r.oid = acl.grantee "
            "WHERE n.nspname = :schema AND c.relname = :name AND acl.grantee <> c.relowner "
            "ORDER BY 1, 2"
        ),
        {"schema": schema, "name": name},
    ).mappings().all()
    return [
        MatViewGrantSpec(
            grantee=row["grantee"],
            privilege=row["privilege"],
            is_grantable=bool(row["is_grantable"]),
        )
        for row in rows
    ]


def catalog_connection_is_idle(connection: Connection) -> bool:
    """Report whether the driver connection has no open transaction block.

    Args:
        connection: Active SQLAlchemy connection.

    Returns:
        bool: True when the libpq transaction status is idle.
    """

    driver_connection = connection.connection.driver_connection
    connection_info = getattr(driver_connection, "info", None)
    transaction_status = getattr(connection_info, "transaction_status", None)
    if transaction_status is None:
        return True
    return int(transaction_status) == 0
