"""Error types raised by the scaffolding pipeline.

Every error derives from ScaffoldError so the CLI can report any failure
with a single handler. The core never retries; errors surface immediately.
"""

from __future__ import annotations

from pathlib import Path


class ScaffoldError(Exception):
    """Base class for all scaffolding errors."""

    pass


class MalformedManifest(ScaffoldError):
    """Raised when x402.toml is missing from a template or cannot be parsed."""

    pass


class ValidationError(ScaffoldError):
    """A manifest field or user value violates a documented constraint.

    Attributes:
        field: Dotted path of the offending field (e.g. "parameters.port.default").
        message: Human-readable description of the violation.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"Validation error in '{field}': {message}")


class ParameterValueError(ScaffoldError, ValueError):
    """A value does not satisfy a parameter's constraint."""

    pass


class InvalidPattern(ParameterValueError):
    """The parameter's own regex pattern does not compile."""

    def __init__(self, pattern: str, reason: str) -> None:
        self.pattern = pattern
        self.reason = reason
        super().__init__(f"Invalid pattern '{pattern}': {reason}")


class PatternMismatch(ParameterValueError):
    """The value does not match the parameter's regex pattern."""

    def __init__(self, value: str, pattern: str) -> None:
        self.value = value
        self.pattern = pattern
        super().__init__(f"Value '{value}' does not match pattern '{pattern}'")


class InvalidBoolean(ParameterValueError):
    """The value is not one of the accepted boolean literals."""

    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Expected boolean value, got '{value}'")


class NotInChoices(ParameterValueError):
    """The value is not one of the enum's choices."""

    def __init__(self, value: str, choices: tuple[str, ...]) -> None:
        self.value = value
        self.choices = choices
        super().__init__(
            f"Value '{value}' not in allowed options: {', '.join(choices)}"
        )


class RenderError(ScaffoldError):
    """Template syntax or substitution failure, or a file that is not valid text."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        self.message = message
        super().__init__(f"Template rendering error in {path}: {message}")


class FileSystemError(ScaffoldError):
    """A local I/O operation failed."""

    def __init__(self, message: str, path: Path | str | None = None) -> None:
        self.path = Path(path) if path is not None else None
        self.message = message
        text = f"File system error: {message}"
        if path is not None:
            text += f" ({path})"
        super().__init__(text)


class Cancelled(ScaffoldError):
    """The user aborted an interactive prompt."""

    def __init__(self) -> None:
        super().__init__("Operation cancelled by user")


class NetworkError(ScaffoldError):
    """A download or other network operation failed."""

    pass


class DiscoveryError(ScaffoldError):
    """The GitHub API returned an error or an unusable payload."""

    pass


class TemplateNotFound(ScaffoldError):
    """A template reference did not match any known template."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(
            f"Template '{reference}' not found. "
            "Run 'x402-scaffold list' to see available templates"
        )


class CacheError(ScaffoldError):
    """The discovery cache could not be read or written."""

    pass


class ConfigError(ScaffoldError):
    """The configuration file is invalid."""

    pass
