"""Pure builders for materialized view DDL statements.

Identifiers are always double-quote escaped. The defining `SELECT` of a
definition is inserted verbatim.
"""

from __future__ import annotations

from typing import Final, Sequence

POSTGRES_IDENTIFIER_MAX_LENGTH: Final[int] = 63
_SWAP_NAME_STEM_LENGTH: Final[int] = 40


def sql_quote_ident(name: str) -> str:
    """Quote one SQL identifier.

    Args:
        name: Raw identifier.

    Returns:
        str: Double-quoted identifier with embedded quotes doubled.

    Raises:
        ValueError: Raised when the identifier is blank.
    """

    if not name or not name.strip():
        raise ValueError("identifier must not be blank")
    escaped_name = name.replace('"', '""')
    return f'"{escaped_name}"'


def sql_qualified_name(schema: str, name: str) -> str:
    return f"{sql_quote_ident(schema)}.{sql_quote_ident(name)}"


def sql_create_view(schema: str, name: str, select_sql: str) -> str:
    return f"CREATE MATERIALIZED VIEW {sql_qualified_name(schema, name)} AS {select_sql} WITH DATA"


def sql_refresh_view(schema: str, name: str, concurrently: bool = False) -> str:
    concurrently_clause = "CONCURRENTLY " if concurrently else ""
    return f"REFRESH MATERIALIZED VIEW {concurrently_clause}{sql_qualified_name(schema, name)}"


def sql_drop_view(schema: str, name: str, if_exists: bool = True, cascade: bool = False) -> str:
    """Build a `DROP MATERIALIZED VIEW` statement.

    Args:
        schema: Schema name.
        name: View name.
        if_exists: Whether to add `IF EXISTS`.
        cascade: Whether to add `CASCADE`.

    Returns:
        str: Drop statement.
    """

    if_exists_clause = "IF EXISTS " if if_exists else ""
    cascade_clause = " CASCADE" if cascade else ""
    return f"DROP MATERIALIZED VIEW {if_exists_clause}{sql_qualified_name(schema, name)}{cascade_clause}"


def sql_unique_index_name(view_name: str, columns: Sequence[str]) -> str:
    """Return the conventional unique index name for declared columns.

    Args:
        view_name: View name.
        columns: Ordered index columns.

    Returns:
        str: `<view>_uniq_<col1>_<col2>...`, truncated to the PostgreSQL identifier limit.
    """

    return "_".join([view_name, "uniq", *columns])[:POSTGRES_IDENTIFIER_MAX_LENGTH]


def sql_create_index(
    schema: str,
    view_name: str,
    index_name: str,
    columns: Sequence[str],
    unique: bool = False,
    method: str = "btree",
) -> str:
    """Build a non-concurrent `CREATE INDEX` statement on plain columns.

    Args:
        schema: Schema name.
        view_name: Indexed materialized view.
        index_name: Unqualified index name.
        columns: Ordered key columns.
        unique: Whether the index is unique.
        method: Index access method.

    Returns:
        str: Index statement.

    Raises:
        ValueError: Raised when no columns are given.
    """

    if not columns:
        raise ValueError("index requires at least one column")
    unique_clause = "UNIQUE " if unique else ""
    column_list = ", ".join(sql_quote_ident(column) for column in columns)
    return (
        f"CREATE {unique_clause}INDEX {sql_quote_ident(index_name)} "
        f"ON {sql_qualified_name(schema, view_name)} USING {sql_quote_ident(method)} ({column_list})"
    )


def sql_rename_view(schema: str, name: str, new_name: str) -> str:
    return f"ALTER MATERIALIZED VIEW {sql_qualified_name(schema, name)} RENAME TO {sql_quote_ident(new_name)}"


def sql_rename_index(schema: str, index_name: str, new_name: str) -> str:
    return f"ALTER INDEX {sql_qualified_name(schema, index_name)} RENAME TO {sql_quote_ident(new_name)}"


def sql_grant(schema: str, view_name: str, privilege: str, grantee: str, with_grant_option: bool = False) -> str:
    """Build a `GRANT` statement on a materialized view.

    Args:
        schema: Schema name.
        view_name: Target view.
        privilege: Privilege keyword such as `SELECT`.
        grantee: Role name, or `PUBLIC`.
        with_grant_option: Whether to add `WITH GRANT OPTION`.

    Returns:
        str: Grant statement.

    Raises:
        ValueError: Raised when the privilege is not a plain keyword.
    """

    normalized_privilege = privilege.strip().upper()
    if not normalized_privilege.replace(" ", "").isalpha():
        raise ValueError(f"unsupported privilege: {privilege!r}")
    grantee_clause = "PUBLIC" if grantee == "PUBLIC" else sql_quote_ident(grantee)
    grant_option_clause = " WITH GRANT OPTION" if with_grant_option else ""
    return (
        f"GRANT {normalized_privilege} ON {sql_qualified_name(schema, view_name)} "
        f"TO {grantee_clause}{grant_option_clause}"
    )


def sql_swap_relation_name(name: str, role: str, token: str, ordinal: int | None = None) -> str:
    """Build a temporary or retired relation name for swap refreshes.

    The role and token are always kept whole; only the stem is shortened, so
    names built with different tokens or ordinals never collide.

    Args:
        name: Stem, usually the live view name.
        role: `tmp`, `old` or `new`.
        token: Timestamp-based uniqueness token.
        ordinal: Optional index position that separates several objects of one swap.

    Returns:
        str: Name that fits in the PostgreSQL identifier limit.

    Raises:
        ValueError: Raised when role and token alone exceed the identifier limit.
    """

    suffix = f"__{role}_{token}" if ordinal is None else f"__{role}_{token}_{ordinal}"
    stem_length = min(_SWAP_NAME_STEM_LENGTH, POSTGRES_IDENTIFIER_MAX_LENGTH - len(suffix))
    if stem_length < 1:
        raise ValueError("swap token too long for a PostgreSQL identifier")
    return f"{name[:stem_length]}{suffix}"
