"""Command line entrypoint for materialized view lifecycle operations.

Lifecycle commands go through the configured enqueue adapter. With the
`inline` adapter they run immediately in this process.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Sequence

from mat_views.bootstrap import MatViewsRuntime, bootstrap_create_runtime
from mat_views.config import config_load_settings
from mat_views.db import DefinitionRepositoryPort, MatViewRunRecord
from mat_views.domain import MatViewDefinition, MatViewsError, domain_build_definition
from mat_views.jobs import JobKind
from mat_views.logging_setup import configure_logging

_ROW_COUNT_CHOICES = ("estimated", "exact", "none")


def main(argv: Sequence[str] | None = None) -> None:
    """Run one CLI command.

    Args:
        argv: Optional argument list; `sys.argv[1:]` when None.

    Raises:
        SystemExit: Raised with status 1 when the command fails.
    """

    parsed_arguments = main_build_parser().parse_args(argv)
    settings = config_load_settings()
    configure_logging(settings.log_level)
    runtime = bootstrap_create_runtime(settings=settings)

    try:
        main_dispatch(runtime, parsed_arguments)
    except (MatViewsError, LookupError, ValueError) as error:
        print(f"error: {error}", file=sys.stderr)
        raise SystemExit(1) from error


def main_build_parser() -> argparse.ArgumentParser:
    argument_parser = argparse.ArgumentParser(description="Materialized view lifecycle commands")
    subparsers = argument_parser.add_subparsers(dest="command", required=True)

    define_parser = subparsers.add_parser("define", help="Create or update a definition")
    define_parser.add_argument("name", type=str)
    define_parser.add_argument("--sql", required=True, type=str, help="Defining SELECT statement")
    define_parser.add_argument(
        "--strategy",
        default="regular",
        choices=("regular", "concurrent", "swap"),
        help="Refresh strategy",
    )
    define_parser.add_argument("--unique-columns", dest="unique_columns", default="", type=str)
    define_parser.add_argument("--dependencies", default="", type=str)
    define_parser.add_argument("--cron", default=None, type=str, help="Advisory schedule, not executed")

    for command_name, help_text in (
        ("create", "Create the view"),
        ("refresh", "Refresh the view with its strategy"),
        ("delete", "Drop the view"),
    ):
        lifecycle_parser = subparsers.add_parser(command_name, help=help_text)
        lifecycle_parser.add_argument("name", type=str, help="View name, `schema.name` accepted")
        lifecycle_parser.add_argument("--queue", default=None, type=str)
        lifecycle_parser.add_argument(
            "--row-count-strategy",
            dest="row_count_strategy",
            default=None,
            choices=_ROW_COUNT_CHOICES,
        )
        if command_name == "create":
            lifecycle_parser.add_argument("--force", action="store_true")
        if command_name == "delete":
            lifecycle_parser.add_argument("--cascade", action="store_true")

    exists_parser = subparsers.add_parser("exists", help="Check whether the view exists")
    exists_parser.add_argument("name", type=str)

    runs_parser = subparsers.add_parser("runs", help="List recent runs")
    runs_parser.add_argument("--name", default=None, type=str)
    runs_parser.add_argument("--limit", default=20, type=int)
    return argument_parser


def main_dispatch(runtime: MatViewsRuntime, parsed_arguments: argparse.Namespace) -> None:
    """Execute a parsed command against a wired runtime.

    Args:
        runtime: Wired collaborators.
        parsed_arguments: Parsed CLI arguments.

    Raises:
        DefinitionNotFoundError: Raised when a named definition does not exist.
    """

    command = parsed_arguments.command
    if command == "define":
        definition = main_define(runtime.definition_repository, parsed_arguments)
        main_print_json(main_definition_to_dict(definition))
        return

    if command == "runs":
        definition_id = None
        if parsed_arguments.name:
            definition_id = main_resolve_definition(runtime.definition_repository, parsed_arguments.name).definition_id
        runs = runtime.run_repository.db_run_list(limit=parsed_arguments.limit, offset=0, definition_id=definition_id)
        for run_record in runs:
            main_print_json(main_run_to_dict(run_record))
        return

    definition = main_resolve_definition(runtime.definition_repository, parsed_arguments.name)
    if command == "exists":
        envelope = runtime.service_factory.service_exists(definition).service_run()
        main_print_json(envelope.to_dict())
        if envelope.is_error:
            raise SystemExit(1)
        return

    job_kind = {
        "create": JobKind.CREATE_VIEW,
        "refresh": JobKind.REFRESH_VIEW,
        "delete": JobKind.DELETE_VIEW,
    }[command]
    options: dict[str, Any] = {}
    if parsed_arguments.row_count_strategy:
        options["row_count_strategy"] = parsed_arguments.row_count_strategy
    if getattr(parsed_arguments, "force", False):
        options["force"] = True
    if getattr(parsed_arguments, "cascade", False):
        options["cascade"] = True

    runtime.enqueue_adapter.enqueue(job_kind, parsed_arguments.queue, [definition.definition_id, options])
    main_print_json(
        {
            "enqueued": job_kind.value,
            "definition": definition.name,
            "adapter": runtime.enqueue_adapter.backend_name,
        }
    )


def main_define(repository: DefinitionRepositoryPort, parsed_arguments: argparse.Namespace) -> MatViewDefinition:
    """Create a definition, or replace the one with the same name.

    Args:
        repository: Definition persistence port.
        parsed_arguments: Parsed `define` arguments.

    Returns:
        MatViewDefinition: Persisted definition.
    """

    definition = domain_build_definition(
        name=parsed_arguments.name,
        sql=parsed_arguments.sql,
        refresh_strategy=parsed_arguments.strategy,
        unique_index_columns=main_split_list(parsed_arguments.unique_columns),
        dependencies=main_split_list(parsed_arguments.dependencies),
        schedule_cron=parsed_arguments.cron,
    )
    existing_definition = repository.db_definition_get_by_name(definition.name)
    if existing_definition is None:
        return repository.db_definition_create(definition)
    return repository.db_definition_update(
        MatViewDefinition(
            name=definition.name,
            sql=definition.sql,
            refresh_strategy=definition.refresh_strategy,
            unique_index_columns=definition.unique_index_columns,
            dependencies=definition.dependencies,
            schedule_cron=definition.schedule_cron,
            definition_id=existing_definition.definition_id,
        )
    )


def main_resolve_definition(repository: DefinitionRepositoryPort, raw_name: str) -> MatViewDefinition:
    """Look a definition up by view name; a `schema.` prefix is ignored.

    Args:
        repository: Definition persistence port.
        raw_name: `name` or `schema.name`.

    Returns:
        MatViewDefinition: Matching definition.

    Raises:
        LookupError: Raised when no definition has that name.
    """

    view_name = raw_name.strip().split(".")[-1]
    definition = repository.db_definition_get_by_name(view_name)
    if definition is None:
        raise LookupError(f"no materialized view definition named {view_name!r}")
    return definition


def main_split_list(raw_value: str) -> list[str]:
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def main_definition_to_dict(definition: MatViewDefinition) -> dict[str, Any]:
    return {
        "id": definition.definition_id,
        "name": definition.name,
        "sql": definition.sql,
        "refresh_strategy": definition.refresh_strategy.label,
        "unique_index_columns": list(definition.unique_index_columns),
        "dependencies": list(definition.dependencies),
        "schedule_cron": definition.schedule_cron,
    }


def main_run_to_dict(run_record: MatViewRunRecord) -> dict[str, Any]:
    return {
        "id": run_record.run_id,
        "definition_id": run_record.definition_id,
        "operation": run_record.operation.label,
        "status": run_record.state.status.label,
        "started_at": run_record.state.started_at,
        "finished_at": run_record.state.finished_at,
        "duration_ms": run_record.state.duration_ms,
        "error": run_record.state.error,
        "meta": run_record.state.meta,
    }


def main_print_json(payload: dict[str, Any]) -> None:
    print(json.dumps(payload, default=str, sort_keys=True))


if __name__ == "__main__":
    main()
