"""Rich console output utilities for x402-scaffold."""

from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from scaffolding import TemplateInfo, TemplateManifest

console = Console()
error_console = Console(stderr=True)

MAX_DESCRIPTION_WIDTH = 60


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def truncate(text: str, width: int = MAX_DESCRIPTION_WIDTH) -> str:
    if len(text) <= width:
        return text
    return text[: width - 3] + "..."


def print_templates(templates: list[TemplateInfo]) -> None:
    """Print discovered templates as a table."""
    if not templates:
        print_info("No templates found.")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("NAME", style="cyan")
    table.add_column("DESCRIPTION")
    table.add_column("STARS", justify="right")
    table.add_column("LANGUAGE")

    for t in templates:
        table.add_row(
            t.shorthand,
            truncate(t.description) or "-",
            str(t.stars),
            t.language or "-",
        )

    console.print(table)
    console.print(f"\n[dim]{len(templates)} templates[/dim]")
    console.print("\n[bold]Tips:[/bold]")
    console.print("  x402-scaffold create --template <owner/repo>")
    console.print("  x402-scaffold list --tags axum,server")
    console.print("  x402-scaffold list --refresh")


def print_manifest(manifest: TemplateManifest) -> None:
    """Print a manifest summary with its parameters."""
    meta = manifest.metadata
    console.print(f"\n[bold]{meta.name}[/bold] v{meta.version}")
    console.print(f"[dim]{meta.description}[/dim]")
    console.print(f"Authors: {', '.join(meta.authors)}")
    console.print(f"Repository: {meta.repository}")
    if meta.tags:
        console.print(f"Tags: {', '.join(meta.tags)}")

    if not manifest.parameters:
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Parameter", style="cyan")
    table.add_column("Type")
    table.add_column("Default")
    table.add_column("Description")

    for name, parameter in manifest.parameters.items():
        table.add_row(name, parameter.kind, parameter.default_text, parameter.description or "")

    console.print(table)


def print_next_steps(project_dir: Path) -> None:
    """Print what to do after a project is created."""
    console.print("\n[bold green]Project created successfully![/bold green]")
    console.print("\n[bold]Next steps:[/bold]")
    console.print(f"  cd {project_dir.name}")
    console.print("  cat README.md")
