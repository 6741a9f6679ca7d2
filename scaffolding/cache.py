"""On-disk cache of discovered templates."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .discovery import TemplateInfo
from .errors import CacheError

logger = logging.getLogger(__name__)

CACHE_FILENAME = "templates.json"


class CachedTemplates(BaseModel):
    """Serialized cache file contents."""

    last_updated: datetime
    templates: list[TemplateInfo] = Field(default_factory=list)


class TemplateCache:
    """JSON cache of the template list with a time-to-live.

    Usage:
        cache = TemplateCache(config.cache.path, config.cache.ttl_hours)
        templates = cache.load()
        if templates is None:
            templates = discovery.discover()
            cache.save(templates)
    """

    def __init__(self, cache_dir: Path, ttl_hours: float = 1):
        self.cache_dir = Path(cache_dir)
        self.ttl_hours = ttl_hours

    @property
    def cache_file(self) -> Path:
        return self.cache_dir / CACHE_FILENAME

    def _read(self) -> Optional[CachedTemplates]:
        if not self.cache_file.exists():
            return None
        try:
            return CachedTemplates.model_validate_json(self.cache_file.read_text())
        except (OSError, UnicodeDecodeError, PydanticValidationError) as e:
            # A corrupt cache is treated as a miss and rebuilt on the next save.
            logger.warning(f"Ignoring unreadable template cache {self.cache_file}: {e}")
            return None

    @staticmethod
    def _age(cached: CachedTemplates) -> float:
        last_updated = cached.last_updated
        if last_updated.tzinfo is None:
            last_updated = last_updated.replace(tzinfo=timezone.utc)
        return (datetime.now(timezone.utc) - last_updated).total_seconds() / 3600

    def age_hours(self) -> Optional[float]:
        """Hours since the cache was written, or None without a cache."""
        cached = self._read()
        return self._age(cached) if cached is not None else None

    def load(self) -> Optional[list[TemplateInfo]]:
        """Return cached templates if fresh, else None."""
        cached = self._read()
        if cached is None:
            return None

        age = self._age(cached)
        if age >= self.ttl_hours:
            logger.debug(f"Template cache expired ({age:.2f}h old)")
            return None

        logger.debug(f"Using {len(cached.templates)} cached templates ({age:.2f}h old)")
        return cached.templates

    def save(self, templates: list[TemplateInfo]) -> None:
        """Write templates to the cache with the current timestamp."""
        cached = CachedTemplates(last_updated=datetime.now(timezone.utc), templates=templates)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache_file.write_text(cached.model_dump_json(indent=2))
        except OSError as e:
            raise CacheError(f"Failed to write template cache {self.cache_file}: {e}") from e

    def clear(self) -> None:
        """Remove the cache file if present."""
        try:
            self.cache_file.unlink(missing_ok=True)
        except OSError as e:
            raise CacheError(f"Failed to clear template cache {self.cache_file}: {e}") from e
