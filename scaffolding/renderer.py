"""Render a template directory into a new project tree.

Every entry under the source root is classified as one of:

- excluded: ``.git`` and the manifest itself, skipped with everything below them
- directory: recreated at the mirrored path
- binary: copied byte-for-byte (decided by file extension only)
- text: rendered with Jinja2 against the parameter values

Output always goes to a separate destination tree; the source is never
modified. A failure aborts the render and leaves already-written files in
place. Cleaning up the destination is the caller's job.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from jinja2 import Environment, StrictUndefined, TemplateError, Undefined

from .errors import FileSystemError, RenderError
from .manifest import MANIFEST_FILENAME, FileRules

logger = logging.getLogger(__name__)

BINARY_EXTENSIONS = frozenset({"png", "jpg", "jpeg", "gif", "ico", "bin", "zip", "tar", "gz"})
EXCLUDED_NAMES = frozenset({".git", MANIFEST_FILENAME})


class EntryKind(str, Enum):
    """Classification of a source tree entry."""

    DIRECTORY = "directory"
    EXCLUDED = "excluded"
    BINARY = "binary"
    TEXT = "text"


class TemplateValue(str):
    """A parameter value as seen by templates.

    Behaves like the plain string, except that the canonical boolean text
    "false" is falsy, so ``{% if use_docker %}`` follows boolean parameters.
    """

    def __bool__(self) -> bool:
        return len(self) > 0 and self.lower() != "false"


@dataclass
class RenderResult:
    """Relative paths (POSIX style) handled during a render."""

    rendered: list[str] = field(default_factory=list)
    copied: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.rendered) + len(self.copied)


def is_excluded(name: str, excluded_names: frozenset[str] = EXCLUDED_NAMES) -> bool:
    """Name-based exclusion predicate applied to every entry of the walk."""
    return name in excluded_names


def is_binary_file(path: Path | str) -> bool:
    """Check if a file is binary, based on its extension alone."""
    suffix = Path(path).suffix
    return suffix[1:].lower() in BINARY_EXTENSIONS if suffix else False


def classify(path: Path, excluded_names: frozenset[str] = EXCLUDED_NAMES) -> EntryKind:
    """Classify a single source entry."""
    if is_excluded(path.name, excluded_names):
        return EntryKind.EXCLUDED
    if path.is_dir():
        return EntryKind.DIRECTORY
    if is_binary_file(path):
        return EntryKind.BINARY
    return EntryKind.TEXT


def matches_rules(rel_path: str, rules: FileRules | None, directory: bool = False) -> bool:
    """Check a relative path against the manifest's include/exclude globs.

    Patterns without a slash also match the entry's basename. For a
    directory only the exclude globs apply: an include list selects files,
    and a directory may hold included files whatever its own name.
    """
    if rules is None:
        return True

    def matches(pattern: str) -> bool:
        pattern = pattern.rstrip("/")
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        # A directory pattern like "docs" or "target/**" covers everything under it.
        prefix = pattern[:-3] if pattern.endswith("/**") else pattern
        if rel_path == prefix or rel_path.startswith(prefix + "/"):
            return True
        return "/" not in pattern and fnmatch.fnmatchcase(PurePosixPath(rel_path).name, pattern)

    if any(matches(pattern) for pattern in rules.exclude):
        return False
    if directory:
        return True
    if rules.include:
        return any(matches(pattern) for pattern in rules.include)
    return True


class Renderer:
    """Renders template trees with Jinja2.

    Usage:
        renderer = Renderer()
        result = renderer.render(Path("template"), Path("my-app"), {"project_name": "my-app"})
    """

    def __init__(
        self,
        strict: bool = False,
        excluded_names: frozenset[str] = EXCLUDED_NAMES,
    ) -> None:
        """Initialize renderer.

        Args:
            strict: Fail on undefined variables instead of rendering them empty.
            excluded_names: Entry names skipped anywhere in the tree.
        """
        self.strict = strict
        self.excluded_names = excluded_names
        self.env = Environment(
            undefined=StrictUndefined if strict else Undefined,
            autoescape=False,
            keep_trailing_newline=True,
        )
        # Jinja2 rewrites every line ending to newline_sequence.
        self.crlf_env = self.env.overlay(newline_sequence="\r\n")

    def render(
        self,
        source_root: Path | str,
        destination_root: Path | str,
        values: Mapping[str, str],
        file_rules: FileRules | None = None,
    ) -> RenderResult:
        """Render every entry of source_root into destination_root.

        Args:
            source_root: Template directory (contains x402.toml).
            destination_root: Output directory; created if missing.
            values: Parameter values used as the template context.
            file_rules: Optional include/exclude globs from the manifest.

        Returns:
            RenderResult listing what was rendered, copied and skipped.

        Raises:
            FileSystemError: If a directory or file cannot be created, read or written.
            RenderError: If a text file is not UTF-8 or fails to render.
        """
        source_root = Path(source_root)
        destination_root = Path(destination_root)
        context = {key: TemplateValue(value) for key, value in values.items()}
        result = RenderResult()

        if not source_root.is_dir():
            raise FileSystemError("Template directory does not exist", source_root)
        self._mkdir(destination_root)

        # With an include list, directories appear only once a file lands in them.
        eager_dirs = file_rules is None or not file_rules.include

        for dirpath, dirnames, filenames in os.walk(source_root):
            current = Path(dirpath)

            # Prune excluded directories so nothing below them is visited or created.
            for name in sorted(dirnames):
                entry = current / name
                rel = self._relative(entry, source_root)
                kind = classify(entry, self.excluded_names)
                if kind is EntryKind.EXCLUDED or not matches_rules(rel, file_rules, directory=True):
                    logger.debug(f"Skipping {rel}/")
                    dirnames.remove(name)
                    result.skipped.append(rel)
            dirnames.sort()

            rel_dir = current.relative_to(source_root)
            dest_dir = destination_root / self._render_path(rel_dir, context, current)
            if eager_dirs:
                self._mkdir(dest_dir)

            for name in sorted(filenames):
                src = current / name
                rel = self._relative(src, source_root)
                kind = classify(src, self.excluded_names)

                if kind is EntryKind.EXCLUDED or not matches_rules(rel, file_rules):
                    logger.debug(f"Skipping {rel}")
                    result.skipped.append(rel)
                    continue

                dest = dest_dir / self._render_name(name, context, src)
                if not eager_dirs:
                    self._mkdir(dest_dir)
                if kind is EntryKind.BINARY:
                    self._copy(src, dest)
                    result.copied.append(rel)
                else:
                    self.render_file(src, dest, context)
                    result.rendered.append(rel)

        logger.info(
            f"Rendered {len(result.rendered)} files, copied {len(result.copied)}, "
            f"skipped {len(result.skipped)} into {destination_root}"
        )
        return result

    def render_content(self, content: str, values: Mapping[str, str], origin: Path | str = "<string>") -> str:
        """Render a template string against the given values.

        CRLF content renders with CRLF line endings; anything else with LF.
        """
        context = {key: TemplateValue(value) for key, value in values.items()}
        env = self.crlf_env if "\r\n" in content else self.env
        try:
            return env.from_string(content).render(context)
        except TemplateError as e:
            raise RenderError(origin, str(e)) from e

    def render_file(self, src: Path, dest: Path, values: Mapping[str, str]) -> None:
        """Render a single text file, keeping its line endings and mode bits."""
        try:
            raw = src.read_bytes()
        except OSError as e:
            raise FileSystemError(f"Cannot read file: {e}", src) from e

        try:
            content = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise RenderError(src, f"File is not valid UTF-8 text: {e}") from e

        rendered = self.render_content(content, values, origin=src)

        try:
            dest.write_bytes(rendered.encode("utf-8"))
            shutil.copymode(src, dest)
        except OSError as e:
            raise FileSystemError(f"Cannot write file: {e}", dest) from e

    def _render_name(self, name: str, context: Mapping[str, str], origin: Path) -> str:
        if "{{" not in name:
            return name
        rendered = self.render_content(name, context, origin=origin).strip()
        if not rendered or rendered in (".", "..") or "/" in rendered or "\\" in rendered:
            raise RenderError(origin, f"File name renders to an invalid path: {rendered!r}")
        return rendered

    def _render_path(self, rel_dir: Path, context: Mapping[str, str], origin: Path) -> Path:
        parts = [self._render_name(part, context, origin) for part in rel_dir.parts]
        return Path(*parts) if parts else Path()

    @staticmethod
    def _relative(path: Path, root: Path) -> str:
        return path.relative_to(root).as_posix()

    @staticmethod
    def _mkdir(path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileSystemError(f"Cannot create directory: {e}", path) from e

    @staticmethod
    def _copy(src: Path, dest: Path) -> None:
        try:
            shutil.copy2(src, dest)
        except OSError as e:
            raise FileSystemError(f"Cannot copy file: {e}", src) from e
