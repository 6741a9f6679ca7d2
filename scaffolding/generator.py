"""Project generator: turns a template into a new project directory."""

import logging
import re
import shutil
import subprocess
import tempfile
from collections.abc import Mapping
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.markup import escape

from .cache import TemplateCache
from .collector import PresetValueSource, ValueSource, builtin_parameters, collect_parameters
from .config import Config
from .discovery import GitHubDiscovery, TemplateInfo, parse_template_reference
from .downloader import Downloader
from .errors import FileSystemError, MalformedManifest, ScaffoldError, TemplateNotFound, ValidationError
from .manifest import TemplateManifest, load_and_validate
from .renderer import Renderer, RenderResult

logger = logging.getLogger(__name__)

PROJECT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
INITIAL_COMMIT_MESSAGE = "Initial commit from x402 template"

TemplateSource = Union[TemplateInfo, Path]


def validate_project_name(name: str) -> None:
    """Project names become directory names: letters, digits, '-' and '_' only.

    Raises:
        ValidationError: If the name is empty or has other characters.
    """
    if not name:
        raise ValidationError("project_name", "Project name cannot be empty")
    if not PROJECT_NAME_PATTERN.match(name):
        raise ValidationError(
            "project_name",
            "Project name can only contain letters, numbers, hyphens, and underscores",
        )


class ProjectGenerator:
    """Generates new projects from x402 templates.

    Steps:
    - Obtain the template (local directory or GitHub download)
    - Load and validate x402.toml
    - Collect parameter values
    - Render the template tree
    - Initialize a git repository

    Usage:
        generator = ProjectGenerator(load_config(), DefaultValueSource())
        template = generator.resolve_template("x402/axum-starter")
        generator.create(template, "my-app", Path.cwd())
    """

    def __init__(
        self,
        config: Config,
        value_source: ValueSource,
        console: Optional[Console] = None,
        strict: bool = False,
        discovery: Optional[GitHubDiscovery] = None,
        downloader: Optional[Downloader] = None,
        cache: Optional[TemplateCache] = None,
    ):
        """Initialize project generator.

        Args:
            config: Loaded configuration
            value_source: Where parameter values come from
            console: Console for progress output
            strict: Fail on undefined template variables
            discovery: GitHub client (created from config if omitted)
            downloader: Archive downloader (created if omitted)
            cache: Template list cache (created from config if omitted)
        """
        self.config = config
        self.value_source = value_source
        self.console = console or Console()
        self.renderer = Renderer(
            strict=strict,
            excluded_names=frozenset({".git", config.templates.manifest_name}),
        )
        self.discovery = discovery or GitHubDiscovery(config.discovery)
        self.downloader = downloader or Downloader(timeout=config.discovery.timeout * 2)
        self.cache = cache or TemplateCache(config.cache.path, config.cache.ttl_hours)

    def list_templates(self, refresh: bool = False) -> list[TemplateInfo]:
        """Discovered templates, from the cache unless stale or refresh is set."""
        if not refresh:
            cached = self.cache.load()
            if cached is not None:
                return cached

        templates = self.discovery.discover()
        try:
            self.cache.save(templates)
        except ScaffoldError as e:
            logger.warning(f"Could not update template cache: {e}")
        return templates

    def resolve_template(self, reference: str) -> TemplateSource:
        """Resolve a template reference.

        Accepts a local directory, ``owner/repo``, a GitHub URL, or a template
        name matched case-insensitively against discovered templates.

        Raises:
            TemplateNotFound: If nothing matches.
            ValidationError: If the reference is a malformed URL.
        """
        local = Path(reference).expanduser()
        if local.is_dir():
            logger.debug(f"Using local template directory {local}")
            return local

        parts = parse_template_reference(reference)
        if parts is not None:
            return self.discovery.get_template(*parts)

        wanted = reference.lower()
        for template in self.list_templates():
            if wanted in (template.name.lower(), template.repo.lower()):
                return template

        raise TemplateNotFound(reference)

    def create(
        self,
        template: TemplateSource,
        project_name: str,
        output_dir: Optional[Path] = None,
        init_git: bool = True,
        values: Optional[Mapping[str, str]] = None,
    ) -> Path:
        """Create a project from a template.

        Args:
            template: Resolved template (see resolve_template)
            project_name: Name of the new project and its directory
            output_dir: Parent directory (default: current dir)
            init_git: Initialize a git repository
            values: Preset parameter values (e.g. from --set)

        Returns:
            Path to the created project directory.
        """
        validate_project_name(project_name)
        project_dir = (output_dir or Path.cwd()) / project_name

        if project_dir.exists():
            raise FileSystemError("Directory already exists", project_dir)

        self.console.print(f"\n[bold blue]Creating project:[/bold blue] {project_name}")

        if isinstance(template, Path):
            self.console.print(f"[dim]Template: {template}[/dim]")
            self._generate(template, project_dir, project_name, values)
        else:
            self.console.print(f"[dim]Template: {template.shorthand}[/dim]")
            with tempfile.TemporaryDirectory(prefix="x402-template-") as tmp_dir:
                with self.console.status(f"Downloading {template.url}..."):
                    source = self.downloader.download(
                        template.url, Path(tmp_dir), branch=template.default_branch
                    )
                self.console.print("[green]Downloaded:[/green] template")
                self._generate(source, project_dir, project_name, values)

        if init_git:
            self._init_git(project_dir)

        return project_dir

    def load_manifest(self, template_dir: Path) -> TemplateManifest:
        """Load and validate the manifest at the template root."""
        manifest_path = template_dir / self.config.templates.manifest_name
        if not manifest_path.is_file():
            raise MalformedManifest(
                f"Template is missing {self.config.templates.manifest_name}"
            )
        return load_and_validate(manifest_path, self.config.templates.repository_prefix)

    def _generate(
        self,
        template_dir: Path,
        project_dir: Path,
        project_name: str,
        values: Optional[Mapping[str, str]],
    ) -> RenderResult:
        manifest = self.load_manifest(template_dir)
        self.console.print(
            f"[green]Validated:[/green] {manifest.metadata.name} v{manifest.metadata.version}"
        )

        presets = dict(values or {})
        builtins = builtin_parameters(project_name)
        for name in list(presets):
            if name in builtins and name not in manifest.parameters:
                builtins[name] = presets.pop(name)
            elif name not in manifest.parameters:
                logger.warning(f"Ignoring value for unknown parameter '{name}'")

        source = PresetValueSource(presets, self.value_source) if presets else self.value_source
        context = collect_parameters(manifest.parameters, source, builtins)

        try:
            result = self.renderer.render(template_dir, project_dir, context, manifest.files)
        except BaseException:
            self._cleanup(project_dir)
            raise

        self.console.print(
            f"[green]Created:[/green] {project_dir}/ ({result.file_count} files)"
        )
        return result

    def _cleanup(self, project_dir: Path) -> None:
        """Remove a partially generated project."""
        if project_dir.exists():
            logger.info(f"Removing partially generated project {project_dir}")
            shutil.rmtree(project_dir, ignore_errors=True)

    def _init_git(self, project_dir: Path) -> None:
        """Initialize git repository."""
        try:
            subprocess.run(
                ["git", "init"],
                cwd=project_dir,
                capture_output=True,
                check=True,
            )
            self.console.print("[green]Initialized:[/green] git repository")

            subprocess.run(
                ["git", "add", "."],
                cwd=project_dir,
                capture_output=True,
                check=True,
            )
            subprocess.run(
                ["git", "commit", "-m", INITIAL_COMMIT_MESSAGE],
                cwd=project_dir,
                capture_output=True,
                check=True,
            )
            self.console.print("[green]Created:[/green] initial commit")

        except subprocess.CalledProcessError as e:
            logger.debug(f"git stderr: {e.stderr!r}")
            self.console.print(f"[yellow]Warning:[/yellow] Git initialization failed: {escape(str(e))}")
        except FileNotFoundError:
            self.console.print("[yellow]Warning:[/yellow] Git not found, skipping initialization")
