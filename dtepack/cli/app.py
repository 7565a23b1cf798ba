import json
from importlib.metadata import PackageNotFoundError, version as package_version
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Any, NoReturn

import typer

from dtepack.config import DecoderConfig
from dtepack.core.models import Node, Tree
from dtepack.decode import DecodeError, load_tree
from dtepack.diff import diff_trees, render_diff_patch, render_diff_report
from dtepack.export import EXPORT_FORMATS, export_text
from dtepack.validation import validate

app = typer.Typer(help="Device tree explorer CLI")

_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass(slots=True)
class _OutputOptions:
    quiet: bool = False
    no_color: bool = False
    stable_json: bool = True


_OUTPUT_OPTIONS = _OutputOptions()


def _resolve_cli_version() -> str:
    try:
        return package_version("devicetree-explorer")
    except PackageNotFoundError:
        from dtepack import __version__ as local_version

        return local_version


def _version_callback(value: bool) -> None:
    if not value:
        return
    typer.echo(_resolve_cli_version(), color=False)
    raise typer.Exit()


@app.callback()
def app_options(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        help="Suppress non-error text output.",
    ),
    no_color: bool = typer.Option(
        False,
        "--no-color",
        help="Disable ANSI color output.",
    ),
    stable_json: bool = typer.Option(
        True,
        "--stable-json/--pretty-json",
        help="Emit stable compact JSON (or pretty JSON).",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        help="Log decoder and diff progress to stderr.",
    ),
) -> None:
    """Global output controls for all CLI commands."""
    _OUTPUT_OPTIONS.quiet = quiet
    _OUTPUT_OPTIONS.no_color = no_color
    _OUTPUT_OPTIONS.stable_json = stable_json
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=_LOG_FORMAT,
    )


def _echo(message: str, *, err: bool = False, force: bool = False) -> None:
    if _OUTPUT_OPTIONS.quiet and not err and not force:
        return
    typer.echo(message, err=err, color=not _OUTPUT_OPTIONS.no_color)


def _echo_json(payload: dict[str, Any], *, err: bool = False) -> None:
    if _OUTPUT_OPTIONS.stable_json:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            separators=(",", ":"),
        )
    else:
        rendered = json.dumps(
            payload,
            ensure_ascii=True,
            sort_keys=True,
            indent=2,
        )
    typer.echo(rendered, err=err, color=not _OUTPUT_OPTIONS.no_color)


def _style(text: str, color: str) -> str:
    if _OUTPUT_OPTIONS.no_color:
        return text
    return typer.style(text, fg=color)


def _fail(command: str, error: Exception, *, json_output: bool, **extra: Any) -> NoReturn:
    message = f"{command} failed: {error}"
    if json_output:
        _echo_json({"status": "error", "exit_code": 1, "message": message, **extra})
    else:
        _echo(message, err=True)
    raise typer.Exit(code=1) from error


def _load(command: str, path: Path, *, json_output: bool) -> Tree:
    try:
        return load_tree(path, config=DecoderConfig.from_env())
    except (DecodeError, OSError) as error:
        _fail(command, error, json_output=json_output, path=str(path))


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024 or unit == "MB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def _render_tree(node: Node, prefix: str = "") -> list[str]:
    lines = [prefix + _style(node.name, "green")]
    for prop in node.properties:
        lines.append(
            f"{prefix}  {_style(prop.name, 'cyan')} = {_style(prop.value.render(), 'yellow')}"
        )
    for child in node.children:
        lines.extend(_render_tree(child, prefix + "  "))
    return lines


@app.command()
def info(
    path: Path = typer.Argument(..., help="Path to .dtb/.dts file."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable tree information.",
    ),
) -> None:
    """Display information about a device tree file."""
    tree = _load("info", path, json_output=json_output)

    payload: dict[str, Any] = {
        "status": "ok",
        "exit_code": 0,
        "path": str(path),
        "format": tree.format,
        "root": tree.root.name,
        "nodes": tree.node_count(),
        "properties": tree.property_count(),
        "file_size": path.stat().st_size,
        "header": tree.header.to_dict() if tree.header is not None else None,
        "diagnostics": [diagnostic.to_dict() for diagnostic in tree.diagnostics],
    }
    if json_output:
        _echo_json(payload)
        return

    _echo("Device Tree Information:")
    _echo(f"Source file: {path}")
    _echo(f"Format: {tree.format}")
    _echo(f"Root node: {tree.root.name}")
    _echo(f"Total nodes: {payload['nodes']}")
    _echo(f"Total properties: {payload['properties']}")
    _echo(f"File size: {_format_bytes(payload['file_size'])}")
    if tree.header is not None:
        _echo(f"Blob version: {tree.header.version} ({tree.header.byte_order}-endian)")
    for diagnostic in tree.diagnostics:
        location = f"line {diagnostic.line}: " if diagnostic.line is not None else ""
        _echo(f"warning: {location}{diagnostic.message}", err=True)


@app.command(name="validate")
def validate_command(
    path: Path = typer.Argument(..., help="Path to .dtb/.dts file."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable validation output.",
    ),
) -> None:
    """Validate a device tree file."""
    tree = _load("validate", path, json_output=json_output)
    result = validate(tree)

    if json_output:
        _echo_json(
            {
                **result.to_dict(),
                "status": "pass" if result.valid else "fail",
                "exit_code": 0 if result.valid else 1,
                "path": str(path),
            }
        )
    elif result.valid:
        _echo(f"validate passed: {path}")
    else:
        _echo(f"validate failed: {path}", err=True)
        for reason in result.reasons:
            _echo(f"  - {reason}", err=True)

    if not result.valid:
        raise typer.Exit(code=1)


@app.command()
def diff(
    base: Path = typer.Argument(..., help="Path to base .dtb/.dts file."),
    overlay: Path = typer.Argument(..., help="Path to overlay .dtb/.dts file."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable diff output.",
    ),
    patch: bool = typer.Option(
        False,
        "--patch",
        help="Emit patch-style text instead of the report.",
    ),
    max_changes: int | None = typer.Option(
        None,
        "--max-changes",
        help="Maximum number of changes to print in report mode.",
    ),
) -> None:
    """Compare two device tree files."""
    base_tree = _load("diff", base, json_output=json_output)
    overlay_tree = _load("diff", overlay, json_output=json_output)

    result = diff_trees(base_tree, overlay_tree)

    if json_output:
        _echo_json(
            {
                **result.to_dict(),
                "status": "ok",
                "exit_code": 0,
                "message": "diff completed",
                "base_path": str(base),
                "overlay_path": str(overlay),
            }
        )
        return

    if patch:
        _echo(render_diff_patch(result))
        return

    _echo(render_diff_report(result, max_changes=max_changes))


@app.command()
def export(
    path: Path = typer.Argument(..., help="Path to .dtb/.dts file."),
    fmt: str = typer.Option(
        "json",
        "--format",
        help=f"Output format: {', '.join(EXPORT_FORMATS)}.",
    ),
    out: Path | None = typer.Option(
        None,
        "--out",
        help="Write output to this path instead of stdout.",
    ),
) -> None:
    """Export a device tree to JSON or YAML."""
    tree = _load("export", path, json_output=False)
    try:
        content = export_text(tree, fmt)
    except ValueError as error:
        _fail("export", error, json_output=False)

    if out is None:
        typer.echo(content, nl=False)
        return

    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(content, encoding="utf-8")
    _echo(f"exported {path} -> {out} ({fmt.strip().lower()})")


@app.command()
def search(
    path: Path = typer.Argument(..., help="Path to .dtb/.dts file."),
    pattern: str = typer.Argument(..., help="Case-sensitive node name substring."),
    json_output: bool = typer.Option(
        False,
        "--json",
        help="Emit machine-readable search results.",
    ),
) -> None:
    """Search for nodes whose name contains a pattern."""
    tree = _load("search", path, json_output=json_output)
    matches = [node.full_path() for node in tree.find_by_pattern(pattern)]

    if json_output:
        _echo_json(
            {
                "status": "ok" if matches else "no_match",
                "exit_code": 0 if matches else 1,
                "path": str(path),
                "pattern": pattern,
                "matches": matches,
            }
        )
    else:
        _echo(f"Found {len(matches)} nodes matching '{pattern}':")
        for match in matches:
            _echo(f"  {_style(match, 'green')}")

    if not matches:
        raise typer.Exit(code=1)


@app.command(name="list")
def list_nodes(
    path: Path = typer.Argument(..., help="Path to .dtb/.dts file."),
    node_path: str = typer.Argument("/", help="Node path to list from."),
) -> None:
    """List nodes and properties below a node path."""
    tree = _load("list", path, json_output=False)
    node = tree.find_by_path(node_path)
    if node is None:
        _echo(f"list failed: node not found: {node_path}", err=True)
        raise typer.Exit(code=1)

    _echo("\n".join(_render_tree(node)))


def main() -> None:
    app()
