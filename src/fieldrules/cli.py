"""CLI interface for fieldrules using Typer framework."""

import asyncio
import importlib
import importlib.util
import json as jsonlib
import logging
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from fieldrules import __description__, __version__
from fieldrules.config import FieldRulesConfig, LogLevel, OutputFormat, load_config
from fieldrules.errors import ConfigurationError, FieldRulesError
from fieldrules.validation import ValidationResult, Validator

app = typer.Typer(
    name="fieldrules",
    help=__description__,
    add_completion=False,
    rich_markup_mode="rich"
)

console = Console()
err_console = Console(stderr=True)

_LOG_LEVELS = {
    LogLevel.ERROR.value: logging.ERROR,
    LogLevel.WARN.value: logging.WARNING,
    LogLevel.INFO.value: logging.INFO,
    LogLevel.DEBUG.value: logging.DEBUG,
}


def version_callback(value: bool) -> None:
    """Show version information and exit."""
    if value:
        console.print(f"fieldrules version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", "-v", callback=version_callback, help="Show version and exit")
    ] = False,
) -> None:
    """fieldrules - run rule-chain validators against JSON documents."""


def _configure_logging(config: FieldRulesConfig) -> None:
    level = _LOG_LEVELS.get(config.logging.level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _import_target_module(module_ref: str) -> Any:
    if module_ref.endswith(".py") or Path(module_ref).is_file():
        path = Path(module_ref)
        if not path.is_file():
            raise ConfigurationError(f"Validator module not found: {path}")
        spec = importlib.util.spec_from_file_location(path.stem, path)
        if spec is None or spec.loader is None:
            raise ConfigurationError(f"Cannot load validator module: {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    try:
        return importlib.import_module(module_ref)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import validator module '{module_ref}': {e}") from e


def load_validator(target: str, config: FieldRulesConfig) -> Validator:
    """Load a validator from 'package.module:Name' or 'path/to/file.py:Name'.

    Name may be a Validator subclass (instantiated with config) or an
    existing Validator instance.
    """
    module_ref, separator, attribute = target.rpartition(":")
    if not separator or not module_ref or not attribute:
        raise ConfigurationError(f"Invalid target '{target}'. Expected MODULE:NAME")

    module = _import_target_module(module_ref)
    try:
        candidate = getattr(module, attribute)
    except AttributeError:
        raise ConfigurationError(f"'{module_ref}' has no attribute '{attribute}'") from None

    if isinstance(candidate, type) and issubclass(candidate, Validator):
        return candidate(config)
    if isinstance(candidate, Validator):
        return candidate
    raise ConfigurationError(f"Not a Validator subclass or instance: {target}")


def _run(validator: Validator, instance: Any) -> ValidationResult:
    if validator.has_async_rules:
        return asyncio.run(validator.validate_async(instance))
    return validator.validate(instance)


def _output_table(result: ValidationResult) -> None:
    status_color = "green" if result.is_valid else "red"
    status = "VALID" if result.is_valid else "INVALID"
    console.print(f"[{status_color}]Validation Status: {status}[/{status_color}]")
    console.print(f"Exit Code: {result.exit_code}")

    if result.failures:
        console.print("\n[blue]Failures:[/blue]")
        table = Table()
        table.add_column("#", style="dim", justify="right")
        table.add_column("Property", style="cyan")
        table.add_column("Message", style="white")

        for index, failure in enumerate(result.failures, 1):
            table.add_row(str(index), escape(failure.property_path), escape(failure.message))

        console.print(table)
    else:
        console.print("\n[green]No failures found![/green]")


def _output_markdown(result: ValidationResult) -> None:
    console.print("# Validation Report")
    console.print(f"**Valid:** {'yes' if result.is_valid else 'no'}")
    console.print(f"**Exit Code:** {result.exit_code}")
    console.print()

    if result.failures:
        console.print("## Failures")
        for failure in result.failures:
            console.print(f"- `{failure.property_path}`: {failure.message}", markup=False)


@app.command()
def validate(
    target: Annotated[
        str,
        typer.Argument(help="Validator to run: package.module:Name or path/to/rules.py:Name")
    ],
    data: Annotated[
        Path,
        typer.Argument(help="JSON document to validate")
    ],
    format: Annotated[
        Optional[OutputFormat],
        typer.Option("--format", "-f", help="Output format: table, json, markdown (default: from config)")
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file path (default: search for .fieldrules.json)")
    ] = None,
) -> None:
    """Validate a JSON document with a rule-chain validator."""
    try:
        fieldrules_config = load_config(config)
        _configure_logging(fieldrules_config)

        if not data.exists():
            raise FileNotFoundError(f"Data file not found: {data}")
        with open(data, encoding="utf-8") as f:
            try:
                instance = jsonlib.load(f)
            except jsonlib.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON in {data}: {e}") from e

        validator = load_validator(target, fieldrules_config)
        result = _run(validator, instance)

        output_format = OutputFormat(format or fieldrules_config.output.format)
        if output_format == OutputFormat.JSON:
            console.print(jsonlib.dumps(result.to_dict(), indent=2), markup=False, highlight=False, soft_wrap=True)
        elif output_format == OutputFormat.MARKDOWN:
            _output_markdown(result)
        else:
            _output_table(result)

    except (FileNotFoundError, ValueError, FieldRulesError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        raise typer.Exit(1)

    raise typer.Exit(result.exit_code)


if __name__ == "__main__":
    app()
