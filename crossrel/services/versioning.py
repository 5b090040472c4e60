"""Release version, commit and changelog derived from git.

Missing tags or a missing repository never stop a build: the version falls
back to ``0.0.0`` and the commit to ``none``, with a warning.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from crossrel.core.result import Err, Ok, Result
from crossrel.git.repository import GitError, Repository, web_url
from crossrel.output.console import ConsoleProtocol

DEFAULT_VERSION = "0.0.0"
DEFAULT_COMMIT = "none"


@dataclass(frozen=True, slots=True)
class ReleaseInfo:
    """Values substituted into ldflags and names for one invocation."""

    version: str
    commit: str
    date: str


def rfc3339_now() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def current_version(repo: Repository, console: ConsoleProtocol) -> str:
    match repo.current_tag():
        case Ok(tag):
            return tag
        case Err(e):
            console.warning(f"failed to get git tag: {e.message}. Using {DEFAULT_VERSION}")
            return DEFAULT_VERSION


def resolve_release_info(
    repo: Repository,
    console: ConsoleProtocol,
    *,
    clock: Callable[[], str] = rfc3339_now,
) -> ReleaseInfo:
    """Collect version, commit and build date once per invocation."""
    version = current_version(repo, console)
    match repo.short_commit():
        case Ok(commit):
            pass
        case Err(e):
            console.warning(f"failed to get git commit hash: {e.message}. Using '{DEFAULT_COMMIT}'")
            commit = DEFAULT_COMMIT
    return ReleaseInfo(version=version, commit=commit, date=clock())


def changelog(
    repo: Repository,
    console: ConsoleProtocol,
    *,
    stable: bool = False,
) -> Result[str, GitError]:
    """Markdown changelog between the current tag and the previous one.

    With ``stable`` the comparison base is the previous ``vX.Y.Z`` tag,
    skipping pre-releases. Empty when there is no previous tag.
    """
    current = current_version(repo, console)
    previous = repo.previous_stable_tag(current) if stable else repo.previous_tag(current)
    if previous is None:
        console.warning(f"no previous tag found, using {DEFAULT_VERSION}")
        previous = DEFAULT_VERSION

    remote = repo.remote_url()
    if isinstance(remote, Err):
        reason = f"failed to get remote URL: {remote.error.message}"
        return Err(GitError(command="config", message=reason))

    if previous in ("", DEFAULT_VERSION):
        return Ok("")

    log = repo.log(previous, current)
    if isinstance(log, Err):
        return Err(GitError(command="log", message=f"failed to get git log: {log.error.message}"))

    lines = [
        "## What's Changed",
        "",
        log.value,
        "",
        f"**Full Changelog**: {web_url(remote.value)}/compare/{previous}...{current}",
        "",
    ]
    return Ok("\n".join(lines))
