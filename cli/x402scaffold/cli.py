"""x402-scaffold CLI.

Discover x402 templates on GitHub and create projects from them.
"""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.logging import RichHandler

from cli.x402scaffold.output import (
    console,
    error_console,
    print_error,
    print_info,
    print_manifest,
    print_next_steps,
    print_success,
    print_templates,
    print_warning,
)
from cli.x402scaffold.prompts import PromptValueSource, prompt_project_name, select_template
from scaffolding import (
    Cancelled,
    Config,
    DefaultValueSource,
    ProjectGenerator,
    ScaffoldError,
    __version__,
    load_and_validate,
    load_config,
)

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="x402-scaffold",
    help="Create x402 payment projects from community templates.",
    invoke_without_command=True,
)


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )


def _get_config(ctx: typer.Context) -> Config:
    if ctx.obj is None:
        ctx.obj = {"config": load_config()}
    return ctx.obj["config"]


def parse_set_values(items: Optional[list[str]]) -> dict[str, str]:
    """Parse repeated KEY=VALUE options into a mapping."""
    values: dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got '{item}'", param_hint="--set")
        values[key] = value
    return values


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging",
    ),
    config_path: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to a config file (default: x402-scaffold.toml or ~/.x402/config.toml)",
    ),
) -> None:
    """Create x402 payment projects from community templates."""
    try:
        config = load_config(config_path)
    except ScaffoldError as e:
        _configure_logging("WARNING")
        print_error(str(e))
        raise typer.Exit(1)

    _configure_logging("DEBUG" if verbose else config.logging.level)
    ctx.obj = {"config": config}

    if ctx.invoked_subcommand is None:
        create(
            ctx,
            template=None,
            name=None,
            output=None,
            set_values=None,
            defaults=False,
            no_git=False,
            strict=False,
        )


@app.command("list")
def list_templates(
    ctx: typer.Context,
    refresh: bool = typer.Option(
        False,
        "--refresh",
        help="Ignore the cache and query GitHub",
    ),
    tags: Optional[str] = typer.Option(
        None,
        "--tags",
        help="Comma-separated tags; show templates with any of them",
    ),
) -> None:
    """List available templates.

    Examples:
        x402-scaffold list
        x402-scaffold list --tags axum,server
    """
    config = _get_config(ctx)
    generator = ProjectGenerator(config, DefaultValueSource(), console=console)
    tag_filter = [tag.strip() for tag in (tags or "").split(",") if tag.strip()]

    try:
        with console.status("Fetching templates..."):
            templates = generator.list_templates(refresh=refresh)
    except ScaffoldError as e:
        print_error(str(e))
        raise typer.Exit(1)

    templates = [t for t in templates if t.matches_tags(tag_filter)]
    print_templates(templates)


app.command("ls", hidden=True)(list_templates)


@app.command()
def create(
    ctx: typer.Context,
    template: Optional[str] = typer.Option(
        None,
        "--template",
        "-t",
        help="Template: owner/repo, GitHub URL, name, or local directory",
    ),
    name: Optional[str] = typer.Option(
        None,
        "--name",
        "-n",
        help="Project name (also the directory name)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Parent directory for the project (default: current dir)",
    ),
    set_values: Optional[list[str]] = typer.Option(
        None,
        "--set",
        help="Parameter value as KEY=VALUE (repeatable)",
    ),
    defaults: bool = typer.Option(
        False,
        "--defaults",
        "-y",
        help="Use default values without prompting",
    ),
    no_git: bool = typer.Option(
        False,
        "--no-git",
        help="Skip git repository initialization",
    ),
    strict: bool = typer.Option(
        False,
        "--strict",
        help="Fail on undefined template variables",
    ),
) -> None:
    """Create a new project from a template.

    Examples:
        x402-scaffold create
        x402-scaffold create -t x402/axum-starter -n my-app
        x402-scaffold create -t ./my-template -n my-app --set use_docker=false -y
    """
    config = _get_config(ctx)
    values = parse_set_values(set_values)

    if defaults:
        value_source = DefaultValueSource()
    else:
        value_source = PromptValueSource(console)

    generator = ProjectGenerator(config, value_source, console=console, strict=strict)

    try:
        if template:
            resolved = generator.resolve_template(template)
        elif defaults:
            print_error("--template is required with --defaults")
            raise typer.Exit(1)
        else:
            with console.status("Fetching templates..."):
                templates = generator.list_templates()
            if not templates:
                print_error("No templates found")
                raise typer.Exit(1)
            resolved = select_template(console, templates)

        if name is None:
            if defaults:
                print_error("--name is required with --defaults")
                raise typer.Exit(1)
            name = prompt_project_name(console)

        project_dir = generator.create(
            resolved,
            name,
            output_dir=output,
            init_git=not no_git,
            values=values,
        )
    except (Cancelled, KeyboardInterrupt):
        print_warning("Operation cancelled by user")
        raise typer.Exit(130)
    except ScaffoldError as e:
        logger.debug("Create failed", exc_info=True)
        print_error(str(e))
        raise typer.Exit(1)

    print_next_steps(project_dir)


app.command("new", hidden=True)(create)


@app.command()
def validate(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="Template directory or x402.toml file"),
) -> None:
    """Validate a template manifest."""
    config = _get_config(ctx)
    manifest_path = path / config.templates.manifest_name if path.is_dir() else path

    if not manifest_path.exists():
        print_error(f"Manifest not found: {manifest_path}")
        raise typer.Exit(1)

    try:
        manifest = load_and_validate(manifest_path, config.templates.repository_prefix)
    except ScaffoldError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Valid template: {manifest.metadata.name}")
    print_manifest(manifest)
    if not manifest.parameters:
        print_info("Template declares no parameters")


@app.command()
def version() -> None:
    """Show x402-scaffold version."""
    console.print(f"x402-scaffold v{__version__}")


app.command("v", hidden=True)(version)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
