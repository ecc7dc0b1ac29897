"""viewc CLI

Usage:
    viewc compile page.html              # print compiled template
    viewc compile page.html -o out.txt   # write compiled template to a file
    viewc compile page.html --strict     # fail on the first compile problem
    viewc render page --var name=Ada     # render through the view layer
    viewc clear-cache                    # delete cached compiled templates
    viewc --version
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from viewc._version import __version__
from viewc.config import ErrorMode, ViewcConfig, find_config_file
from viewc.exceptions import CompileError, ViewcError
from viewc.template import TemplateCompiler
from viewc.view import View

console = Console(stderr=True)

app = typer.Typer(help="Compile and render {{ }} / {% %} templates.")


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the viewc CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level - shows compile diagnostics and cache use
    - Debug (VIEWC_DEBUG=1): DEBUG level - shows everything
    """
    debug = bool(os.environ.get("VIEWC_DEBUG"))
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("viewc")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False


def load_config(config_path: Optional[Path]) -> ViewcConfig:
    """Load the given config file, or viewc.yaml from cwd or its parents."""
    path = config_path or find_config_file()
    if path is None:
        return ViewcConfig()
    return ViewcConfig.load(path)


def fail(message: str) -> NoReturn:
    typer.secho(f"Error: {message}", err=True, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def parse_vars(pairs: List[str]) -> dict[str, str]:
    """Parse repeated `--var key=value` options."""
    variables: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--var")
        variables[key.strip()] = value
    return variables


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"viewc {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Show info logs."),
) -> None:
    setup_logging(verbose)


@app.command("compile")
def compile_command(
    template: Path = typer.Argument(..., help="Template file to compile."),
    output: Optional[Path] = typer.Option(
        None, "-o", "--output", help="Write compiled text to file instead of stdout."
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail on the first compile problem."),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Path to viewc.yaml."),
) -> None:
    """Compile a template and print the result."""
    try:
        config = load_config(config_path)
        settings = config.compiler
        if strict:
            settings = settings.model_copy(update={"error_mode": ErrorMode.STRICT})

        if not template.is_file():
            fail(f"File not found: {template}")

        compiler = TemplateCompiler(settings)
        result = compiler.compile_string_with_report(template.read_text(encoding="utf-8"))
    except CompileError as e:
        fail(f"{template}: {e}")
    except ViewcError as e:
        fail(str(e))

    for diagnostic in result.diagnostics:
        typer.secho(
            f"{template}:{diagnostic.line or '?'}: {diagnostic.message}",
            err=True,
            fg=typer.colors.YELLOW,
        )

    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.output, encoding="utf-8")
        typer.echo(f"Wrote compiled template to {output}")
    else:
        typer.echo(result.output, nl=False)


@app.command("render")
def render_command(
    template: str = typer.Argument(..., help="Template name, relative to the templates directory."),
    var: List[str] = typer.Option([], "--var", help="Template variable as key=value."),
    templates: Optional[Path] = typer.Option(None, "--templates", help="Templates directory."),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Path to viewc.yaml."),
) -> None:
    """Render a template with string variables and print the HTML."""
    variables = parse_vars(var)
    try:
        config = load_config(config_path)
        view = View(
            templates_dir=templates or config.view.templates_dir,
            settings=config.view,
            compiler_settings=config.compiler,
        )
        html = view.render(template, **variables)
    except ViewcError as e:
        fail(str(e))

    typer.echo(html, nl=False)


@app.command("clear-cache")
def clear_cache_command(
    config_path: Optional[Path] = typer.Option(None, "-c", "--config", help="Path to viewc.yaml."),
) -> None:
    """Delete cached compiled templates."""
    try:
        config = load_config(config_path)
    except ViewcError as e:
        fail(str(e))

    compiler = TemplateCompiler(config.compiler, cache_dir=config.view.cache_dir)
    removed = compiler.clear_cache()
    typer.echo(f"Removed {removed} compiled template(s) from {compiler.cache_dir}")


if __name__ == "__main__":
    app()
