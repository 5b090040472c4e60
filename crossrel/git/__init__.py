"""Git queries: tags, commit hash, log and remote URL.

Usage:
    from crossrel.git import Repository

    repo = Repository(Path("."))
    tag = repo.current_tag().unwrap_or("0.0.0")
"""

from crossrel.git.repository import STABLE_TAG_RE, GitError, Repository, web_url

__all__ = [
    "GitError",
    "Repository",
    "STABLE_TAG_RE",
    "web_url",
]
