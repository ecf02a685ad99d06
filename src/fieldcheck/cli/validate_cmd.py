"""Validation CLI commands: validate, check, kinds."""

import asyncio
import dataclasses
import json
from pathlib import Path

import click

from fieldcheck.config import EngineConfig, FaultMode
from fieldcheck.engine import ValidationEngine
from fieldcheck.exceptions import FieldCheckError
from fieldcheck.loader import load_schemas, load_values, validate_schema_file
from fieldcheck.results import all_errors, all_warnings, is_valid, to_dict
from fieldcheck.rules import describe_catalog


def _build_config(fault_mode: str | None, strict_kinds: bool) -> EngineConfig:
    config = EngineConfig.from_env()
    if fault_mode:
        config = dataclasses.replace(config, fault_mode=FaultMode(fault_mode))
    if strict_kinds:
        config = dataclasses.replace(config, strict_kinds=True)
    return config


@click.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("values_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print results as JSON.")
@click.option(
    "--fault-mode",
    type=click.Choice([m.value for m in FaultMode]),
    default=None,
    help="Override FIELDCHECK_FAULT_MODE.",
)
@click.option(
    "--strict-kinds",
    is_flag=True,
    default=False,
    help="Reject rule kinds outside the built-in catalog.",
)
def validate(
    schema_file: Path,
    values_file: Path,
    as_json: bool,
    fault_mode: str | None,
    strict_kinds: bool,
):
    """Validate VALUES_FILE against the field schemas in SCHEMA_FILE."""
    try:
        config = _build_config(fault_mode, strict_kinds)
        schemas = load_schemas(schema_file, strict_kinds=config.strict_kinds)
        values = load_values(values_file)
        results = asyncio.run(ValidationEngine(config=config).validate_fields(values, schemas))
    except (FieldCheckError, ValueError) as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(2)

    if as_json:
        click.echo(json.dumps(to_dict(results), indent=2, default=str))
    else:
        for name, result in results.items():
            mark = click.style("✓", fg="green") if result.valid else click.style("✗", fg="red")
            click.echo(f"{mark} {name}")
            for error in result.errors:
                click.echo(click.style(f"    error [{error.code}]: {error.message}", fg="red"))
            for warning in result.warnings:
                click.echo(
                    click.style(f"    warning [{warning.code}]: {warning.message}", fg="yellow")
                )

        errors = all_errors(results)
        warnings = all_warnings(results)
        summary = f"\n{len(errors)} error(s), {len(warnings)} warning(s) in {len(results)} field(s)"
        colour = "green" if is_valid(results) else "red"
        click.echo(click.style(summary, fg=colour, bold=True))

    if not is_valid(results):
        raise SystemExit(1)


@click.command()
@click.argument("schema_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Treat unknown rule kinds as errors.",
)
def check(schema_file: Path, strict: bool):
    """Check a schema document without validating any values."""
    issues = validate_schema_file(schema_file, strict_kinds=strict)

    errors = [i for i in issues if i.severity == "error"]
    warnings = [i for i in issues if i.severity == "warning"]

    for issue in issues:
        colour = "red" if issue.severity == "error" else "yellow"
        click.echo(click.style(str(issue), fg=colour))

    if errors:
        click.echo(
            click.style(
                f"\n{len(errors)} schema error(s) found"
                + (f", {len(warnings)} warning(s)" if warnings else ""),
                fg="red",
                bold=True,
            )
        )
        raise SystemExit(1)

    click.echo(click.style("Schema is valid.", fg="green", bold=True))


@click.command()
def kinds():
    """List the built-in rule kinds."""
    for kind, description in describe_catalog():
        click.echo(f"{kind:<14} {description}")
