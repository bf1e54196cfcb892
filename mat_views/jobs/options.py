"""Normalization of loosely typed job options."""

from __future__ import annotations

from typing import Any, Final, Mapping

from mat_views.domain import RowCountStrategy

from .interfaces import JobOptions

TRUTHY_OPTION_STRINGS: Final[frozenset[str]] = frozenset({"true", "1", "yes", "y"})
SUPPORTED_OPTION_NAMES: Final[frozenset[str]] = frozenset({"force", "cascade", "row_count_strategy"})


def job_parse_bool(value: Any) -> bool:
    """Interpret a task-runtime supplied flag.

    Args:
        value: Boolean, integer or string flag.

    Returns:
        bool: True for `True`, `1`, and `true`/`1`/`yes`/`y` in any case.
    """

    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value == 1
    if isinstance(value, str):
        return value.strip().lower() in TRUTHY_OPTION_STRINGS
    return False


def job_normalize_options(
    options: Mapping[str, Any] | None,
    default_row_count_strategy: RowCountStrategy = RowCountStrategy.ESTIMATED,
) -> JobOptions:
    """Normalize raw job options.

    Args:
        options: Raw options, possibly decoded from a queue payload.
        default_row_count_strategy: Strategy used when none is given.

    Returns:
        JobOptions: Normalized options.

    Raises:
        ValueError: Raised for unknown option names or row count strategies.
    """

    raw_options = dict(options or {})
    unknown_names = sorted(set(raw_options) - SUPPORTED_OPTION_NAMES)
    if unknown_names:
        raise ValueError(f"unsupported job options: {', '.join(unknown_names)}")

    raw_strategy = raw_options.get("row_count_strategy")
    row_count_strategy = (
        default_row_count_strategy if raw_strategy is None else RowCountStrategy.from_value(raw_strategy)
    )
    return JobOptions(
        force=job_parse_bool(raw_options.get("force", False)),
        cascade=job_parse_bool(raw_options.get("cascade", False)),
        row_count_strategy=row_count_strategy,
    )
