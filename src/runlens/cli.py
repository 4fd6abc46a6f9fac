# src/runlens/cli.py
"""runlens Command Line Interface.

Offline tools over runlens artifacts: readable JSON schema text, source
path sanitizing, serialized registry overviews and resolved settings.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from dynaconf.vendor.ruamel.yaml.parser import ParserError as YamlParserError
from dynaconf.vendor.ruamel.yaml.scanner import ScannerError as YamlScannerError
from pydantic import ValidationError

from runlens import __version__
from runlens.core.config import RunlensSettings, dump_settings, load_settings
from runlens.core.paths import PathRoot, PathSanitizer
from runlens.core.schema_text import json_schema_to_readable_text

__all__ = [
    "app",
]

app = typer.Typer(
    name="runlens",
    help="runlens: live introspection of application graphs.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"runlens version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose/debug logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Output structured JSON logs (for machine processing).",
    ),
) -> None:
    """runlens: live introspection of application graphs."""
    from runlens.core.logging import configure_logging

    configure_logging(json_output=json_logs, level="DEBUG" if verbose else "INFO")
    ctx.obj = {"verbose": verbose, "json_logs": json_logs}


def _format_error(title: str, message: str, hint: str | None = None, details: list[str] | None = None) -> None:
    """Display a formatted error with optional hint and details."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.text import Text

    content = Text()
    content.append(message, style="white")
    if details:
        content.append("\n\n")
        for detail in details:
            content.append(f"  • {detail}\n", style="dim")
    if hint:
        content.append("\n")
        content.append("Hint: ", style="yellow bold")
        content.append(hint, style="yellow")

    Console(stderr=True).print(Panel(content, title=f"[red bold]{title}[/]", border_style="red", padding=(0, 1)))


def _resolve_settings(ctx: typer.Context, settings: Path | None) -> RunlensSettings:
    """Load settings (or defaults) and apply the configured log level.

    Raises:
        typer.Exit: With code 1 if the settings file is missing or invalid
    """
    if settings is None:
        return RunlensSettings()

    settings_path = settings.expanduser()
    try:
        config = load_settings(settings_path)
    except (YamlParserError, YamlScannerError) as e:
        _format_error(
            title="YAML Syntax Error",
            message=f"Failed to parse {settings_path.name}",
            details=[str(e.problem)] if hasattr(e, "problem") else None,
            hint="Check for unclosed brackets, incorrect indentation, or invalid characters.",
        )
        raise typer.Exit(1) from None
    except FileNotFoundError:
        _format_error(
            title="File Not Found",
            message=f"Settings file does not exist: {settings}",
            hint="Check the path and ensure the file exists.",
        )
        raise typer.Exit(1) from None
    except ValidationError as e:
        details = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            details.append(f"{loc}: {error['msg']}")
        _format_error(
            title="Configuration Validation Failed",
            message=f"Invalid settings in {settings_path.name}",
            details=details,
            hint="Check field names, types, and allowed values.",
        )
        raise typer.Exit(1) from None

    options = ctx.obj or {}
    if not options.get("verbose"):
        from runlens.core.logging import configure_from_settings

        logging_settings = config.logging
        if options.get("json_logs"):
            logging_settings = logging_settings.model_copy(update={"json_output": True})
        configure_from_settings(logging_settings)
    return config


def _parse_root(value: str) -> PathRoot:
    name, sep, path = value.partition("=")
    if not sep or not name or not path:
        raise typer.BadParameter(f"expected NAME=PATH, got {value!r}")
    if ":" in name:
        raise typer.BadParameter(f"root name must not contain ':' (got {name!r})")
    return PathRoot(name, path)


@app.command()
def schema(
    file: Path = typer.Argument(..., help="JSON schema file to render."),
) -> None:
    """Render a JSON schema file as readable text."""
    try:
        text = file.expanduser().read_text(encoding="utf-8")
    except OSError as e:
        _format_error(title="File Not Readable", message=f"Cannot read {file}: {e}")
        raise typer.Exit(1) from None
    typer.echo(json_schema_to_readable_text(text))


@app.command()
def sanitize(
    ctx: typer.Context,
    paths: list[str] = typer.Argument(..., help="Absolute source paths to sanitize."),
    root: list[str] = typer.Option(
        [],
        "--root",
        "-r",
        help="Extra root as NAME=PATH (repeatable; later roots replace same-named ones).",
    ),
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Print the sanitized label of each path, one per line.

    Examples:

        runlens sanitize "$PWD/src/app.py"

        runlens sanitize /opt/vendor/lib/x.py --root vendor=/opt/vendor/lib
    """
    config = _resolve_settings(ctx, settings)
    extra_roots = [_parse_root(value) for value in root]
    base = PathSanitizer.from_settings(config.paths)
    sanitizer = PathSanitizer([*base.roots, *extra_roots])
    for path in paths:
        label = sanitizer.sanitize(path)
        typer.echo(label if label is not None else "-")


@app.command()
def overview(
    snapshot: Path = typer.Argument(..., help="Serialized registry snapshot (JSON)."),
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output diagnostics as JSON.",
    ),
) -> None:
    """Summarize a serialized registry: element counts and diagnostics."""
    from runlens.introspection.introspector import Introspector

    try:
        data = json.loads(snapshot.expanduser().read_text(encoding="utf-8"))
    except OSError as e:
        _format_error(title="File Not Readable", message=f"Cannot read {snapshot}: {e}")
        raise typer.Exit(1) from None
    except json.JSONDecodeError as e:
        _format_error(title="Invalid JSON", message=f"{snapshot.name} is not valid JSON: {e}")
        raise typer.Exit(1) from None

    if not isinstance(data, dict):
        _format_error(title="Invalid Snapshot", message=f"{snapshot.name} does not hold a serialized registry object")
        raise typer.Exit(1)
    try:
        introspector = Introspector.from_serialized(data)
    except ValidationError as e:
        details = [f"{'.'.join(str(x) for x in error['loc'])}: {error['msg']}" for error in e.errors()[:10]]
        _format_error(title="Invalid Snapshot", message=f"{snapshot.name} is not a serialized registry", details=details)
        raise typer.Exit(1) from None

    diagnostics = introspector.get_diagnostics()
    if json_output:
        payload = [
            {
                "severity": str(d.severity),
                "code": str(d.code),
                "message": d.message,
                "node_id": d.node_id,
                "node_kind": str(d.node_kind) if d.node_kind else None,
            }
            for d in diagnostics
        ]
        typer.echo(json.dumps(payload, indent=2))
        return

    root = introspector.get_root()
    typer.echo(f"Root: {root.id if root else '-'}")
    typer.echo(f"  Tasks: {len(introspector.get_tasks())}")
    typer.echo(f"  Hooks: {len(introspector.get_hooks())}")
    typer.echo(f"  Resources: {len(introspector.get_resources())}")
    typer.echo(f"  Middleware: {len(introspector.get_middlewares())}")
    typer.echo(f"  Events: {len(introspector.get_events())}")
    typer.echo(f"  Tags: {len(introspector.get_tags())}")
    typer.echo(f"  Errors: {len(introspector.get_errors())}")
    typer.echo(f"  Async contexts: {len(introspector.get_async_contexts())}")
    typer.echo(f"  Durable tasks: {len(introspector.get_durable_tasks())}")
    typer.echo(f"Diagnostics: {len(diagnostics)}")
    for d in diagnostics:
        typer.echo(f"  [{d.severity}] {d.code}: {d.message}")


@app.command()
def config(
    ctx: typer.Context,
    settings: Path | None = typer.Option(
        None,
        "--settings",
        "-s",
        help="Path to settings YAML file.",
    ),
) -> None:
    """Print resolved settings (defaults and environment overrides applied) as YAML."""
    typer.echo(dump_settings(_resolve_settings(ctx, settings)), nl=False)


if __name__ == "__main__":
    app()
