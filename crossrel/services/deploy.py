"""Deploy stage: run remote command sequences and report the outcome.

Each deploy moves through ``pending -> connecting -> executing -> succeeded``
or ends in ``failed`` at the first error. Commands run strictly in order and
a failing command stops the rest. Once the outcome is known an alert is
dispatched exactly once; alert failures are logged and never change it.
"""

from __future__ import annotations

from contextlib import closing
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from crossrel.core.config import DeploySpec, Manifest, RemoteTarget, UnsupportedProvider
from crossrel.core.result import Err, Ok, Result
from crossrel.output.console import ConsoleProtocol

from .errors import (
    DeployNotFoundError,
    InvalidTargetError,
    NotificationError,
    PipelineError,
    StageError,
    UnsupportedProviderError,
)
from .notify import AlertDispatcher, DeployAlert, DeployStatus
from .remote import ShellFactory, SshSession, validate_target

__all__ = ["DeployOutcome", "DeployService", "DeployState"]


class DeployState(StrEnum):
    PENDING = "pending"
    CONNECTING = "connecting"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DeployOutcome:
    """Final state of one deploy.

    Attributes:
        name: Deploy name.
        history: States visited, one ``executing`` entry per command started.
        executed: Commands that completed successfully.
        error: What made the deploy fail, if it did.
        notification_errors: Alert destinations that could not be reached.
    """

    name: str
    history: tuple[DeployState, ...]
    executed: tuple[str, ...] = ()
    error: PipelineError | None = None
    notification_errors: tuple[NotificationError, ...] = ()

    @property
    def state(self) -> DeployState:
        return self.history[-1]

    @property
    def succeeded(self) -> bool:
        return self.state == DeployState.SUCCEEDED


class DeployService:
    """Runs the ``deploy`` command."""

    def __init__(
        self,
        *,
        root: Path,
        manifest: Manifest,
        version: str,
        console: ConsoleProtocol,
        shell_factory: ShellFactory | None = None,
        dispatcher: AlertDispatcher | None = None,
    ) -> None:
        self._root = root
        self._manifest = manifest
        self._version = version
        self._console = console
        self._shell_factory = shell_factory or self._ssh_session
        self._dispatcher = dispatcher or AlertDispatcher(console=console)

    def _ssh_session(self, target: RemoteTarget) -> SshSession:
        return SshSession(
            target, console=self._console, timeouts=self._manifest.timeouts, cwd=self._root
        )

    def select(self, name: str | None) -> Result[list[DeploySpec], StageError]:
        deploys = list(self._manifest.deploys)
        if not deploys:
            return Err(StageError("deploy", DeployNotFoundError(name=None)))
        if name is None:
            return Ok(deploys)
        for spec in deploys:
            if spec.name == name:
                return Ok([spec])
        available = tuple(d.name for d in deploys if d.name)
        return Err(StageError("deploy", DeployNotFoundError(name=name, available=available)))

    def run(self, name: str | None = None) -> Result[list[DeployOutcome], StageError]:
        """Execute the selected deploys in order, stopping at the first failure."""
        selected = self.select(name)
        if isinstance(selected, Err):
            return selected

        outcomes: list[DeployOutcome] = []
        for spec in selected.value:
            outcome = self.execute(spec)
            outcomes.append(outcome)
            if outcome.error is not None:
                return Err(StageError("deploy", outcome.error, spec.name))
        return Ok(outcomes)

    def execute(self, spec: DeploySpec) -> DeployOutcome:
        self._console.header(f"Executing deploy: {spec.name}")
        history = [DeployState.PENDING]
        executed: list[str] = []

        result = self._run_commands(spec, history, executed)
        match result:
            case Ok(_):
                history.append(DeployState.SUCCEEDED)
                alert = DeployAlert(spec.name, self._version, DeployStatus.SUCCESS)
                error = None
                self._console.success(f"Deploy {spec.name} completed")
            case Err(cause):
                history.append(DeployState.FAILED)
                alert = DeployAlert(spec.name, self._version, DeployStatus.FAILED, cause.message)
                error = cause

        notified = self._dispatcher.dispatch(spec.alert_urls, alert)
        return DeployOutcome(
            name=spec.name,
            history=tuple(history),
            executed=tuple(executed),
            error=error,
            notification_errors=tuple(notified),
        )

    def _run_commands(
        self,
        spec: DeploySpec,
        history: list[DeployState],
        executed: list[str],
    ) -> Result[None, PipelineError]:
        match spec.target:
            case UnsupportedProvider(provider=provider):
                return Err(UnsupportedProviderError(provider=provider))
            case RemoteTarget() as target:
                pass

        invalid = self._validate(spec, target)
        if isinstance(invalid, Err):
            return invalid

        history.append(DeployState.CONNECTING)
        with closing(self._shell_factory(target)) as shell:
            connected = shell.connect()
            if isinstance(connected, Err):
                return connected

            for command in spec.commands:
                history.append(DeployState.EXECUTING)
                self._console.info(f"Executing command: {command}")
                result = shell.execute(command)
                if isinstance(result, Err):
                    return result
                if result.value.strip():
                    self._console.print(result.value.rstrip())
                executed.append(command)
        return Ok(None)

    @staticmethod
    def _validate(spec: DeploySpec, target: RemoteTarget) -> Result[None, InvalidTargetError]:
        valid = validate_target(spec.name, target)
        if isinstance(valid, Err):
            return valid
        if not spec.commands:
            return Err(
                InvalidTargetError(name=spec.name, reason="at least one command is required")
            )
        return Ok(None)

