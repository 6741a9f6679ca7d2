"""Interactive prompts for x402-scaffold."""

from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from scaffolding import (
    BooleanParameter,
    Cancelled,
    EnumParameter,
    Parameter,
    ParameterValueError,
    TemplateInfo,
    ValidationError,
    validate_project_name,
)


def format_prompt(name: str, description: Optional[str] = None) -> str:
    """Turn a parameter name into a prompt label.

    Example:
        format_prompt("database_type", "Primary store") -> "Database type (Primary store)"
    """
    label = name.replace("_", " ").replace("-", " ").strip()
    label = label[:1].upper() + label[1:]
    if description:
        return f"{label} ({description})"
    return label


class PromptValueSource:
    """Asks the user for each parameter value on the terminal."""

    interactive = True

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def request(self, name: str, parameter: Parameter) -> str:
        label = escape(format_prompt(name, parameter.description))
        try:
            if isinstance(parameter, BooleanParameter):
                answer = Confirm.ask(label, default=parameter.default, console=self.console)
                return "true" if answer else "false"
            if isinstance(parameter, EnumParameter):
                return Prompt.ask(
                    label,
                    choices=list(parameter.choices),
                    default=parameter.default,
                    console=self.console,
                )
            return Prompt.ask(label, default=parameter.default, console=self.console)
        except (KeyboardInterrupt, EOFError) as e:
            raise Cancelled() from e

    def reject(self, name: str, parameter: Parameter, error: ParameterValueError) -> None:
        self.console.print(f"[red]✗[/red] {escape(str(error))}")


def prompt_project_name(console: Console, default: str = "my-x402-app") -> str:
    """Ask for a project name until a valid one is given."""
    while True:
        try:
            name = Prompt.ask("Project name", default=default, console=console)
        except (KeyboardInterrupt, EOFError) as e:
            raise Cancelled() from e
        try:
            validate_project_name(name)
            return name
        except ValidationError as e:
            console.print(f"[red]✗[/red] {escape(e.message)}")


def select_template(console: Console, templates: list[TemplateInfo]) -> TemplateInfo:
    """Show a numbered template menu and return the chosen entry."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Repository")
    table.add_column("Stars", justify="right")

    for index, template in enumerate(templates, start=1):
        table.add_row(str(index), template.name, template.shorthand, str(template.stars))

    console.print(table)

    choices = [str(index) for index in range(1, len(templates) + 1)]
    try:
        choice = IntPrompt.ask(
            "Select a template",
            choices=choices,
            default=1,
            show_choices=False,
            console=console,
        )
    except (KeyboardInterrupt, EOFError) as e:
        raise Cancelled() from e
    return templates[choice - 1]
