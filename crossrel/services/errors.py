"""Error values reported by the pipeline stages.

Each error is a frozen dataclass with a ``message`` (and sometimes a
``hint``). A stage that fails wraps the cause in ``StageError`` so the CLI
can say which stage, sink or deploy failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from crossrel.core.config import ConfigError
from crossrel.core.template import TemplateError

__all__ = [
    "ArchiveError",
    "CompileError",
    "ConfigError",
    "CredentialError",
    "DeployNotFoundError",
    "HookError",
    "InvalidTargetError",
    "NotificationError",
    "OutputDirError",
    "PipelineError",
    "RemoteCommandError",
    "RemoteConnectionError",
    "SinkNotFoundError",
    "StageError",
    "TemplateError",
    "UnsupportedProviderError",
    "UploadError",
]


@dataclass(frozen=True, slots=True)
class HookError:
    hook: str
    returncode: int
    reason: str = ""

    @property
    def message(self) -> str:
        if self.reason:
            return f"hook '{self.hook}' failed: {self.reason}"
        return f"hook '{self.hook}' failed (exit {self.returncode})"


@dataclass(frozen=True, slots=True)
class CompileError:
    binary: str
    goos: str
    goarch: str
    goarm: str | None
    returncode: int
    reason: str = ""

    @property
    def platform(self) -> str:
        suffix = f" arm{self.goarm}" if self.goarm else ""
        return f"{self.goos}/{self.goarch}{suffix}"

    @property
    def message(self) -> str:
        if self.reason:
            return f"building {self.binary} for {self.platform} failed: {self.reason}"
        return f"building {self.binary} for {self.platform} failed (exit {self.returncode})"


@dataclass(frozen=True, slots=True)
class ArchiveError:
    path: Path
    reason: str

    @property
    def message(self) -> str:
        return f"cannot create {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class OutputDirError:
    """The output directory cannot be listed, cleared or created."""

    path: Path
    reason: str

    @property
    def message(self) -> str:
        return f"output directory {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class SinkNotFoundError:
    name: str
    available: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        return f"publish configuration '{self.name}' not found"

    @property
    def hint(self) -> str | None:
        if self.available:
            return f"available: {', '.join(self.available)}"
        return None


@dataclass(frozen=True, slots=True)
class DeployNotFoundError:
    name: str | None
    available: tuple[str, ...] = ()

    @property
    def message(self) -> str:
        if self.name is None:
            return "no deploy configurations found"
        return f"deploy configuration '{self.name}' not found"

    @property
    def hint(self) -> str | None:
        if self.available:
            return f"available: {', '.join(self.available)}"
        return None


@dataclass(frozen=True, slots=True)
class InvalidTargetError:
    """Remote target settings are incomplete; detected before connecting."""

    name: str
    reason: str

    @property
    def message(self) -> str:
        label = f"'{self.name}'" if self.name else "(unnamed)"
        return f"invalid remote configuration {label}: {self.reason}"


@dataclass(frozen=True, slots=True)
class CredentialError:
    variables: tuple[str, ...]

    @property
    def message(self) -> str:
        return f"{' and '.join(self.variables)} must be set"

    @property
    def hint(self) -> str | None:
        return "export them or put them in a .env file next to the manifest"


@dataclass(frozen=True, slots=True)
class RemoteConnectionError:
    """Could not reach or authenticate against a remote host or endpoint."""

    host: str
    reason: str

    @property
    def message(self) -> str:
        return f"connection to {self.host} failed: {self.reason}"


@dataclass(frozen=True, slots=True)
class UploadError:
    source: Path
    destination: str
    reason: str

    @property
    def message(self) -> str:
        return f"failed to upload {self.source} to {self.destination}: {self.reason}"


@dataclass(frozen=True, slots=True)
class RemoteCommandError:
    host: str
    command: str
    returncode: int
    output: str = ""

    @property
    def message(self) -> str:
        return f"command '{self.command}' failed on {self.host} (exit {self.returncode})"

    @property
    def hint(self) -> str | None:
        return self.output or None


@dataclass(frozen=True, slots=True)
class UnsupportedProviderError:
    provider: str

    @property
    def message(self) -> str:
        return f"unsupported deploy provider: {self.provider or '(none)'}"


@dataclass(frozen=True, slots=True)
class NotificationError:
    """A single alert destination could not be reached. Only ever logged."""

    destination: str
    reason: str

    @property
    def message(self) -> str:
        return f"failed to send alert to {self.destination}: {self.reason}"


type PipelineError = (
    ConfigError
    | TemplateError
    | HookError
    | CompileError
    | ArchiveError
    | OutputDirError
    | SinkNotFoundError
    | DeployNotFoundError
    | InvalidTargetError
    | CredentialError
    | RemoteConnectionError
    | UploadError
    | RemoteCommandError
    | UnsupportedProviderError
)

Stage = Literal["hooks", "build", "archive", "publish", "deploy"]


@dataclass(frozen=True, slots=True)
class StageError:
    """The first fatal error of a stage, with the stage that hit it."""

    stage: Stage
    cause: PipelineError
    subject: str | None = None

    @property
    def message(self) -> str:
        where = f"{self.stage} '{self.subject}'" if self.subject else self.stage
        return f"{where}: {self.cause.message}"

    @property
    def hint(self) -> str | None:
        return getattr(self.cause, "hint", None)
