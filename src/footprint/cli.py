"""
Footprint CLI.

Runs footprint operations against the store configured in footprint.toml:

    footprint models
    footprint create User '{"name": "ada"}'
    footprint find User '{"name": "ada"}' --limit 10
    footprint assoc-create User <id> roles '{"name": "admin"}'
    footprint assoc-destroy User <id> roles '{"name": "admin"}'

JSON arguments are parsed as JSON; criteria and ids that are not valid JSON
are taken as literal string ids.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from footprint.config import load_config
from footprint.errors import FootprintError
from footprint.runtime.criteria import QueryOptions
from footprint.runtime.logging import setup_logging
from footprint.runtime.service import FootprintService
from footprint.runtime.store import ConstraintViolationError

app = typer.Typer(
    help="Model-agnostic CRUD and association commands",
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)

_state: dict[str, Any] = {"config_path": None}


@app.callback()
def main(
    config: Path = typer.Option(
        Path("footprint.toml"),
        "--config",
        "-c",
        help="Path to footprint.toml",
    ),
) -> None:
    """Footprint data access commands."""
    _state["config_path"] = config


def _service() -> FootprintService:
    try:
        config = load_config(_state["config_path"])
    except FootprintError as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    setup_logging(config.logging.level, config.logging.dir)
    return FootprintService.from_config(config)


def _parse_json(value: str, what: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        err_console.print(f"[red]Invalid JSON for {what}: {e}[/red]")
        raise typer.Exit(1)


def _parse_loose(value: str | None) -> Any:
    """JSON if it parses, else the raw string (an id)."""
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _options(limit: int | None, find_one: bool) -> QueryOptions:
    data: dict[str, Any] = {}
    if limit is not None:
        data["default_limit"] = limit
    if find_one:
        data["find_one"] = True
    return QueryOptions(**data)


def _run(operation: Coroutine[Any, Any, Any]) -> None:
    try:
        result = asyncio.run(operation)
    except (FootprintError, ConstraintViolationError, ValueError, TypeError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print_json(json.dumps(result, default=str))


LimitOption = typer.Option(None, "--limit", "-l", min=1, help="Cap on matched records")
FindOneOption = typer.Option(False, "--find-one", help="Force single-record semantics")


@app.command(name="models")
def models_command() -> None:
    """List configured models and their reference fields."""
    service = _service()
    table = Table(title="Models")
    table.add_column("Model", style="cyan")
    table.add_column("Collection")
    table.add_column("References")
    for name in service.registry.models:
        handle = service.registry.resolve(name)
        refs = ", ".join(
            f"{f.name} -> {f.ref_model} ({f.cardinality})" for f in handle.references.values()
        )
        table.add_row(name, handle.spec.collection_name, refs or "-")
    console.print(table)


@app.command(name="create")
def create_command(
    model: str = typer.Argument(..., help="Model name"),
    values: str = typer.Argument(..., help="JSON object, or JSON array for a batch"),
) -> None:
    """Create one or more records."""
    service = _service()
    _run(service.create(model, _parse_json(values, "values")))


@app.command(name="find")
def find_command(
    model: str = typer.Argument(..., help="Model name"),
    criteria: str = typer.Argument("{}", help="Id or JSON filter"),
    limit: int | None = LimitOption,
    find_one: bool = FindOneOption,
) -> None:
    """Find records by id or filter."""
    service = _service()
    _run(service.find(model, _parse_loose(criteria), _options(limit, find_one)))


@app.command(name="update")
def update_command(
    model: str = typer.Argument(..., help="Model name"),
    criteria: str = typer.Argument(..., help="Id or JSON filter"),
    values: str = typer.Argument(..., help="JSON object of values"),
    limit: int | None = LimitOption,
    find_one: bool = FindOneOption,
) -> None:
    """Update records by id or filter."""
    service = _service()
    _run(
        service.update(
            model,
            _parse_loose(criteria),
            _parse_json(values, "values"),
            _options(limit, find_one),
        )
    )


@app.command(name="destroy")
def destroy_command(
    model: str = typer.Argument(..., help="Model name"),
    criteria: str = typer.Argument(..., help="Id or JSON filter"),
) -> None:
    """Destroy records by id or filter."""
    service = _service()
    _run(service.destroy(model, _parse_loose(criteria)))


@app.command(name="assoc-create")
def assoc_create_command(
    model: str = typer.Argument(..., help="Parent model name"),
    parent_id: str = typer.Argument(..., help="Parent id"),
    field: str = typer.Argument(..., help="Reference field on the parent"),
    values: str = typer.Argument(..., help="JSON object of child values"),
) -> None:
    """Create a child record and link it from the parent."""
    service = _service()
    _run(
        service.create_association(
            model, _parse_loose(parent_id), field, _parse_json(values, "values")
        )
    )


@app.command(name="assoc-find")
def assoc_find_command(
    model: str = typer.Argument(..., help="Parent model name"),
    parent_id: str = typer.Argument(..., help="Parent id"),
    field: str = typer.Argument(..., help="Reference field on the parent"),
    criteria: str | None = typer.Argument(None, help="JSON filter"),
    limit: int | None = LimitOption,
) -> None:
    """Find children linked from the parent."""
    service = _service()
    _run(
        service.find_association(
            model, _parse_loose(parent_id), field, _parse_loose(criteria), _options(limit, False)
        )
    )


@app.command(name="assoc-update")
def assoc_update_command(
    model: str = typer.Argument(..., help="Parent model name"),
    parent_id: str = typer.Argument(..., help="Parent id"),
    field: str = typer.Argument(..., help="Reference field on the parent"),
    criteria: str = typer.Argument(..., help="JSON filter ({} for all linked children)"),
    values: str = typer.Argument(..., help="JSON object of values"),
) -> None:
    """Update children linked from the parent."""
    service = _service()
    _run(
        service.update_association(
            model,
            _parse_loose(parent_id),
            field,
            _parse_loose(criteria),
            _parse_json(values, "values"),
        )
    )


@app.command(name="assoc-destroy")
def assoc_destroy_command(
    model: str = typer.Argument(..., help="Parent model name"),
    parent_id: str = typer.Argument(..., help="Parent id"),
    field: str = typer.Argument(..., help="Reference field on the parent"),
    criteria: str | None = typer.Argument(None, help="Id or JSON filter"),
) -> None:
    """Destroy children and unlink them from the parent."""
    service = _service()
    _run(
        service.destroy_association(
            model, _parse_loose(parent_id), field, _parse_loose(criteria)
        )
    )


if __name__ == "__main__":
    app()
