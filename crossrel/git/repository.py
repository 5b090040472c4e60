"""Git repository queries used for release metadata and changelogs.

All operations return Result types; callers decide on fallbacks.

Usage:
    repo = Repository(Path("."))
    match repo.current_tag():
        case Ok(tag):
            print(tag)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from crossrel.core.result import Err, Ok, Result
from crossrel.platform.process import ProcessError
from crossrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0

STABLE_TAG_RE = re.compile(r"^v\d+\.\d+\.\d+$")
LOG_FORMAT = "* %s by @%an in %h"

__all__ = [
    "GitError",
    "Repository",
    "STABLE_TAG_RE",
    "web_url",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


def web_url(remote_url: str) -> str:
    """Browser URL for a remote: strips ``.git`` and rewrites ``git@host:org/repo``."""
    url = remote_url.strip().removesuffix(".git")
    if url.startswith("git@"):
        url = url.replace(":", "/", 1).replace("git@", "https://", 1)
    return url


class Repository:
    """Read-only view of a git checkout.

    Attributes:
        path: Path inside the repository (the manifest directory)
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def current_tag(self) -> Result[str, GitError]:
        """Most recent tag reachable from HEAD."""
        result = self._query(["describe", "--tags", "--abbrev=0"], "describe")
        if isinstance(result, Ok) and not result.value:
            return Err(GitError(command="describe", message="git tag is empty"))
        return result

    def short_commit(self) -> Result[str, GitError]:
        return self._query(["rev-parse", "--short", "HEAD"], "rev-parse")

    def tags(self) -> Result[list[str], GitError]:
        """All tags, highest version first."""
        result = self._query(["tag", "-l", "--sort=-v:refname"], "tag")
        match result:
            case Err(e):
                return Err(e)
            case Ok(stdout):
                return Ok([t.strip() for t in stdout.splitlines() if t.strip()])

    def previous_tag(self, current: str) -> str | None:
        """Tag that sorts directly below ``current``, if any."""
        result = self.tags()
        if isinstance(result, Err):
            return None
        tags = result.value
        for index, tag in enumerate(tags):
            if tag == current and index + 1 < len(tags):
                return tags[index + 1]
        return None

    def previous_stable_tag(self, current: str) -> str | None:
        """First strict ``vMAJOR.MINOR.PATCH`` tag other than ``current``."""
        result = self.tags()
        if isinstance(result, Err):
            return None
        found_current = False
        for tag in result.value:
            if not found_current and tag == current:
                found_current = True
                continue
            if STABLE_TAG_RE.match(tag):
                return tag
        return None

    def log(self, from_ref: str, to_ref: str) -> Result[str, GitError]:
        """One markdown bullet per commit in ``from_ref..to_ref``."""
        return self._query(
            ["log", f"--pretty=format:{LOG_FORMAT}", f"{from_ref}..{to_ref}"],
            "log",
        )

    def remote_url(self) -> Result[str, GitError]:
        return self._query(["config", "--get", "remote.origin.url"], "config")

    def _query(self, args: list[str], command: str) -> Result[str, GitError]:
        result = self._run(args)
        match result:
            case Err(e):
                return Err(
                    GitError(
                        command=command,
                        message=e.stderr.strip() or str(e),
                        returncode=e.returncode,
                    )
                )
            case Ok(stdout):
                return Ok(stdout.strip())

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        return run_process(["git", *args], cwd=self.path, timeout=_GIT_TIMEOUT_SECONDS)
