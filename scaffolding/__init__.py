"""x402 project scaffolding.

Creates new projects from x402 templates with:
- Manifest (x402.toml) parsing and validation
- Typed parameters collected from a pluggable value source
- Jinja2 rendering of the template tree
- GitHub template discovery, caching and download
"""

from ._version import __version__
from .cache import TemplateCache
from .collector import (
    BUILTIN_PARAMETERS,
    DefaultValueSource,
    PresetValueSource,
    ScriptedValueSource,
    ValueSource,
    builtin_parameters,
    collect_parameters,
)
from .config import Config, load_config
from .discovery import GitHubDiscovery, TemplateInfo, parse_template_reference
from .downloader import Downloader
from .errors import (
    Cancelled,
    CacheError,
    ConfigError,
    DiscoveryError,
    FileSystemError,
    MalformedManifest,
    NetworkError,
    ParameterValueError,
    RenderError,
    ScaffoldError,
    TemplateNotFound,
    ValidationError,
)
from .generator import ProjectGenerator, validate_project_name
from .manifest import (
    MANIFEST_FILENAME,
    FileRules,
    TemplateManifest,
    TemplateMetadata,
    load_and_validate,
    parse_manifest,
    validate_manifest,
)
from .parameters import BooleanParameter, EnumParameter, Parameter, StringParameter
from .renderer import Renderer, RenderResult

__all__ = [
    "__version__",
    # Manifest
    "MANIFEST_FILENAME",
    "TemplateManifest",
    "TemplateMetadata",
    "FileRules",
    "parse_manifest",
    "validate_manifest",
    "load_and_validate",
    # Parameters
    "Parameter",
    "StringParameter",
    "BooleanParameter",
    "EnumParameter",
    # Collection
    "BUILTIN_PARAMETERS",
    "ValueSource",
    "DefaultValueSource",
    "ScriptedValueSource",
    "PresetValueSource",
    "builtin_parameters",
    "collect_parameters",
    # Rendering
    "Renderer",
    "RenderResult",
    # Discovery
    "Config",
    "load_config",
    "GitHubDiscovery",
    "TemplateInfo",
    "TemplateCache",
    "Downloader",
    "parse_template_reference",
    # Generator
    "ProjectGenerator",
    "validate_project_name",
    # Errors
    "ScaffoldError",
    "MalformedManifest",
    "ValidationError",
    "ParameterValueError",
    "RenderError",
    "FileSystemError",
    "Cancelled",
    "NetworkError",
    "DiscoveryError",
    "TemplateNotFound",
    "CacheError",
    "ConfigError",
]
