"""Template discovery through the GitHub search API.

Templates are ordinary GitHub repositories tagged with a topic
(``x402-template`` by default). Discovery lists them, sorted by stars.
"""

import logging
import re
from typing import Optional

import requests
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError

from .config import DiscoveryConfig
from .errors import DiscoveryError, TemplateNotFound, ValidationError

logger = logging.getLogger(__name__)

USER_AGENT = "x402-scaffold"
GITHUB_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:www\.)?github\.com/([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+?)(?:\.git)?(?:/.*)?$"
)
SHORTHAND_PATTERN = re.compile(r"^([A-Za-z0-9_.-]+)/([A-Za-z0-9_.-]+)$")


class TemplateInfo(BaseModel):
    """A template repository as seen by discovery."""

    name: str
    description: str = ""
    url: str
    owner: str
    repo: str
    stars: int = 0
    language: Optional[str] = None
    topics: list[str] = Field(default_factory=list)
    default_branch: str = "main"

    @property
    def shorthand(self) -> str:
        return f"{self.owner}/{self.repo}"

    def matches_tags(self, tags: list[str]) -> bool:
        """True if any of the tags is one of the repository topics."""
        if not tags:
            return True
        topics = {topic.lower() for topic in self.topics}
        return any(tag.lower() in topics for tag in tags)

    @classmethod
    def from_repository(cls, data: dict) -> "TemplateInfo":
        """Create from a GitHub repository API payload."""
        description = data.get("description") or ""
        return cls(
            name=description or data["name"],
            description=description,
            url=data["html_url"],
            owner=data["owner"]["login"],
            repo=data["name"],
            stars=data.get("stargazers_count", 0),
            language=data.get("language"),
            topics=data.get("topics") or [],
            default_branch=data.get("default_branch") or "main",
        )


def parse_template_reference(reference: str) -> tuple[str, str] | None:
    """Split a template reference into (owner, repo).

    Accepts ``owner/repo`` and GitHub URLs. Returns None for a bare name,
    which callers match against discovered templates.

    Raises:
        ValidationError: If the reference looks like a URL but is not a GitHub repository URL.
    """
    reference = reference.strip()

    match = GITHUB_URL_PATTERN.match(reference)
    if match:
        return match.group(1), match.group(2)

    if "://" in reference or reference.startswith(("github.com", "www.")):
        raise ValidationError("template", f"Invalid GitHub repository URL: {reference}")

    match = SHORTHAND_PATTERN.match(reference)
    if match:
        return match.group(1), match.group(2)

    return None


class GitHubDiscovery:
    """Client for the GitHub repository search API.

    Usage:
        discovery = GitHubDiscovery(config.discovery)
        templates = discovery.discover()
    """

    def __init__(self, config: DiscoveryConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.api_base = config.api_base.rstrip("/")
        self.session = session or requests.Session()
        self.session.headers["Accept"] = "application/vnd.github.v3+json"
        self.session.headers["User-Agent"] = USER_AGENT

        if config.token:
            self.session.headers["Authorization"] = f"Bearer {config.token}"

    def _get(self, endpoint: str, params: Optional[dict] = None) -> requests.Response:
        url = f"{self.api_base}/{endpoint.lstrip('/')}"
        try:
            return self.session.get(url, params=params, timeout=self.config.timeout)
        except requests.RequestException as e:
            raise DiscoveryError(f"Failed to connect to GitHub: {e}") from e

    def discover(self) -> list[TemplateInfo]:
        """Search GitHub for template repositories, most starred first."""
        params = {
            "q": f"topic:{self.config.topic}",
            "sort": "stars",
            "order": "desc",
            "per_page": self.config.per_page,
        }
        response = self._get("/search/repositories", params)
        if not response.ok:
            raise DiscoveryError(
                f"GitHub API returned {response.status_code}: {response.text[:200]}"
            )

        try:
            items = response.json().get("items", [])
            templates = [TemplateInfo.from_repository(item) for item in items]
        except (ValueError, KeyError, TypeError, AttributeError, PydanticValidationError) as e:
            raise DiscoveryError(f"Unexpected response from GitHub: {e}") from e

        logger.info(f"Discovered {len(templates)} templates for topic {self.config.topic}")
        return templates

    def get_template(self, owner: str, repo: str) -> TemplateInfo:
        """Fetch a single template repository.

        Raises:
            TemplateNotFound: If the repository does not exist.
            DiscoveryError: For any other API failure.
        """
        response = self._get(f"/repos/{owner}/{repo}")
        if response.status_code == 404:
            raise TemplateNotFound(f"{owner}/{repo}")
        if not response.ok:
            raise DiscoveryError(
                f"GitHub API returned {response.status_code} for {owner}/{repo}"
            )

        try:
            return TemplateInfo.from_repository(response.json())
        except (ValueError, KeyError, TypeError, AttributeError, PydanticValidationError) as e:
            raise DiscoveryError(f"Unexpected response from GitHub: {e}") from e
