"""
Repository URL parsing.

Turns user supplied repository URLs into a RepositoryIdentity. Parsing is pure:
invalid input raises MalformedIdentifier and never yields a partial identity.
"""

from urllib.parse import urlparse

from errors import MalformedIdentifier
from miners.models import RepositoryIdentity

GITHUB_HOSTS = ("github.com", "www.github.com")


def parse_repository_url(url: str) -> RepositoryIdentity:
    """
    Extract the owner/name pair from a GitHub repository URL.

    Accepts URLs with or without a trailing slash and with or without a
    ``.git`` suffix; path segments after the repository name are ignored.

    Args:
        url (str): Repository URL, e.g. https://github.com/owner/repo.git

    Returns:
        RepositoryIdentity: Parsed owner and repository name

    Raises:
        MalformedIdentifier: If the host is not GitHub or fewer than two path
            segments are present
    """
    if not isinstance(url, str) or not url.strip():
        raise MalformedIdentifier("Repository URL is required")

    try:
        parsed = urlparse(url.strip())
    except ValueError as e:
        raise MalformedIdentifier(f"Invalid URL format: {url}") from e

    if parsed.scheme not in ("http", "https"):
        raise MalformedIdentifier(f"Invalid URL format: {url}")

    if (parsed.hostname or "").lower() not in GITHUB_HOSTS:
        raise MalformedIdentifier(f"Invalid GitHub repository URL: {url}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    if len(segments) < 2:
        raise MalformedIdentifier(f"Invalid GitHub repository URL format: {url}")

    owner, name = segments[0], segments[1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not name:
        raise MalformedIdentifier(f"Invalid GitHub repository URL format: {url}")

    return RepositoryIdentity(owner=owner, name=name)
