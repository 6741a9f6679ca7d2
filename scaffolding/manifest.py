"""Template manifest (x402.toml) schema and validation.

A template repository carries an ``x402.toml`` at its root:

    [template]
    name = "Axum starter"
    description = "An x402 payment server built on axum"
    version = "0.1.0"
    authors = ["x402 Community"]
    repository = "https://github.com/x402/axum-starter"
    tags = ["axum", "server"]

    [parameters.use_docker]
    type = "boolean"
    default = true

    [files]
    exclude = ["target/**"]

Loading happens in two stages. ``parse_manifest`` turns TOML text into a
TemplateManifest and fails with MalformedManifest when the document has the
wrong shape. ``validate_manifest`` then enforces the semantic rules and raises
ValidationError naming the first offending field. ``load_and_validate`` runs
both, so any manifest it returns satisfies every rule.
"""

from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import FileSystemError, MalformedManifest, ParameterValueError, ValidationError
from .parameters import BooleanParameter, EnumParameter, Parameter, StringParameter, parse_parameter

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "x402.toml"
DEFAULT_REPOSITORY_PREFIX = "https://github.com/"

MAX_NAME_LENGTH = 100
MIN_DESCRIPTION_LENGTH = 10
MAX_DESCRIPTION_LENGTH = 200

# SemVer 2.0: MAJOR.MINOR.PATCH with optional pre-release and build metadata.
SEMVER_PATTERN = re.compile(
    r"(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?"
)


def is_semver(value: str) -> bool:
    """Check whether a string is a valid semantic version."""
    return SEMVER_PATTERN.fullmatch(value) is not None


@dataclass(frozen=True)
class TemplateMetadata:
    """The ``[template]`` table.

    Attributes:
        name: Human-readable template name.
        description: One-line description.
        version: Semantic version of the template.
        authors: Template authors/maintainers.
        repository: HTTPS URL of the template repository.
        tags: Searchable tags.
        min_rust_version: Minimum Rust toolchain the generated project needs.
        min_x402_cli_version: Minimum scaffolder version the template needs.
    """

    name: str
    description: str
    version: str
    authors: tuple[str, ...]
    repository: str
    tags: tuple[str, ...] = ()
    min_rust_version: str | None = None
    min_x402_cli_version: str | None = None


@dataclass(frozen=True)
class FileRules:
    """The ``[files]`` table: glob patterns to include or exclude."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateManifest:
    """A parsed x402.toml. Parameters keep their declaration order."""

    metadata: TemplateMetadata
    parameters: dict[str, Parameter] = field(default_factory=dict)
    files: FileRules | None = None


def parse_manifest(text: str) -> TemplateManifest:
    """Parse x402.toml content without semantic validation.

    Raises:
        MalformedManifest: If the text is not TOML or has the wrong shape.
    """
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise MalformedManifest(f"Invalid TOML: {e}") from e

    template = data.get("template")
    if not isinstance(template, dict):
        raise MalformedManifest("Missing [template] table")

    metadata = TemplateMetadata(
        name=_expect(template, "name", str),
        description=_expect(template, "description", str),
        version=_expect(template, "version", str),
        authors=tuple(_expect_str_list(template, "authors", required=True)),
        repository=_expect(template, "repository", str),
        tags=tuple(_expect_str_list(template, "tags")),
        min_rust_version=_expect(template, "min_rust_version", str, required=False),
        min_x402_cli_version=_expect(template, "min_x402_cli_version", str, required=False),
    )

    raw_parameters = data.get("parameters", {})
    if not isinstance(raw_parameters, dict):
        raise MalformedManifest("'parameters' must be a table")
    parameters = {
        name: parse_parameter(name, definition)
        for name, definition in raw_parameters.items()
    }

    files = None
    if "files" in data:
        raw_files = data["files"]
        if not isinstance(raw_files, dict):
            raise MalformedManifest("'files' must be a table")
        files = FileRules(
            include=tuple(_expect_str_list(raw_files, "include", section="files")),
            exclude=tuple(_expect_str_list(raw_files, "exclude", section="files")),
        )

    return TemplateManifest(metadata=metadata, parameters=parameters, files=files)


def validate_manifest(
    manifest: TemplateManifest,
    repository_prefix: str = DEFAULT_REPOSITORY_PREFIX,
) -> None:
    """Enforce the semantic rules on a parsed manifest.

    Checks stop at the first failure.

    Raises:
        ValidationError: Naming the offending dotted field.
    """
    meta = manifest.metadata

    if not meta.name:
        raise ValidationError("template.name", "Template name is required")
    if len(meta.name) > MAX_NAME_LENGTH:
        raise ValidationError(
            "template.name",
            f"Template name must be {MAX_NAME_LENGTH} characters or less",
        )

    if not meta.description:
        raise ValidationError("template.description", "Template description is required")
    if not MIN_DESCRIPTION_LENGTH <= len(meta.description) <= MAX_DESCRIPTION_LENGTH:
        raise ValidationError(
            "template.description",
            f"Description must be {MIN_DESCRIPTION_LENGTH}-{MAX_DESCRIPTION_LENGTH} characters",
        )

    if not is_semver(meta.version):
        raise ValidationError(
            "template.version",
            f"Invalid semantic version: {meta.version!r}",
        )

    if not meta.authors:
        raise ValidationError("template.authors", "At least one author is required")

    if not meta.repository.startswith(repository_prefix):
        raise ValidationError(
            "template.repository",
            f"Repository must be an HTTPS URL starting with {repository_prefix}",
        )

    for key in ("min_rust_version", "min_x402_cli_version"):
        value = getattr(meta, key)
        if value is not None and not is_semver(value):
            raise ValidationError(f"template.{key}", f"Invalid semantic version: {value}")

    for name, parameter in manifest.parameters.items():
        _validate_parameter(name, parameter)

    if manifest.files is not None:
        for context, patterns in (
            ("include", manifest.files.include),
            ("exclude", manifest.files.exclude),
        ):
            for pattern in patterns:
                # Shallow check only; glob syntax itself is not validated.
                if not pattern:
                    raise ValidationError(f"files.{context}", "Glob pattern cannot be empty")


def load_and_validate(
    path: Path | str,
    repository_prefix: str = DEFAULT_REPOSITORY_PREFIX,
) -> TemplateManifest:
    """Load x402.toml from disk and validate it.

    Args:
        path: Path to the manifest file.
        repository_prefix: Required prefix of ``template.repository``.

    Returns:
        A fully validated TemplateManifest.

    Raises:
        FileSystemError: If the file cannot be read.
        MalformedManifest: If the file is not a well-formed manifest.
        ValidationError: If a field violates a constraint.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise FileSystemError(f"Cannot read {path.name}: {e}", path) from e

    manifest = parse_manifest(text)
    validate_manifest(manifest, repository_prefix)
    logger.info(
        f"Validated manifest {path} ({manifest.metadata.name} {manifest.metadata.version}, "
        f"{len(manifest.parameters)} parameters)"
    )
    return manifest


def _validate_parameter(name: str, parameter: Parameter) -> None:
    match parameter:
        case StringParameter(default=default, pattern=pattern) if pattern is not None:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ValidationError(f"parameters.{name}.pattern", f"Invalid regex: {e}") from e
            try:
                parameter.validate(default)
            except ParameterValueError as e:
                raise ValidationError(f"parameters.{name}.default", str(e)) from e

        case EnumParameter(choices=choices, default=default):
            if not choices:
                raise ValidationError(
                    f"parameters.{name}.enum", "Enum must have at least one choice"
                )
            if default not in choices:
                raise ValidationError(
                    f"parameters.{name}.default",
                    f"Default value '{default}' not in enum choices",
                )

        case StringParameter() | BooleanParameter():
            pass


def _expect(
    table: dict[str, Any],
    key: str,
    expected: type,
    required: bool = True,
    section: str = "template",
) -> Any:
    if key not in table:
        if required:
            raise MalformedManifest(f"'{section}.{key}' is required")
        return None
    value = table[key]
    if not isinstance(value, expected):
        raise MalformedManifest(f"'{section}.{key}' must be of type {expected.__name__}")
    return value


def _expect_str_list(
    table: dict[str, Any],
    key: str,
    required: bool = False,
    section: str = "template",
) -> list[str]:
    value = _expect(table, key, list, required=required, section=section)
    if value is None:
        return []
    if not all(isinstance(item, str) for item in value):
        raise MalformedManifest(f"'{section}.{key}' must be a list of strings")
    return value
