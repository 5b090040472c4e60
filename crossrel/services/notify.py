"""Deploy outcome notifications through Apprise.

Destinations are Apprise URLs (``tgram://``, ``slack://``, ``discord://``,
``msteams://``, ``json://`` and so on). Each URL is sent on its own so that
one bad destination yields one error and does not hide the others.
Notification errors are reported, never raised.

Manifests written for shoutrrr need their schemes renamed: ``telegram://``
becomes ``tgram://``, ``teams://`` becomes ``msteams://`` and ``generic://``
becomes ``json://`` (or ``jsons://`` over TLS). ``slack://`` and
``discord://`` keep their names but take Apprise token layouts.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

import apprise

from crossrel.core.result import Err
from crossrel.core.template import TemplateContext, render
from crossrel.output.console import ConsoleProtocol

from .errors import NotificationError

__all__ = [
    "ALERT_TEMPLATE",
    "AlertDispatcher",
    "AppriseNotifier",
    "DeployAlert",
    "DeployStatus",
    "Notifier",
    "redact_url",
]

ALERT_TEMPLATE = (
    "\n"
    "Deployment Status Update\n"
    "Application: {{.AppName}}\n"
    "Version: {{.Version}}\n"
    "Status: {{.Status}}\n"
    "{{if .Error}}Error: {{.Error}}{{end}}\n"
)


class DeployStatus(StrEnum):
    SUCCESS = "Success"
    FAILED = "Failed"


@dataclass(frozen=True, slots=True)
class DeployAlert:
    app_name: str
    version: str
    status: DeployStatus
    error: str = ""

    def context(self) -> TemplateContext:
        return TemplateContext.of(
            AppName=self.app_name,
            Version=self.version,
            Status=self.status.value,
            Error=self.error,
        )


def redact_url(url: str) -> str:
    """Scheme of a destination URL; the rest usually holds tokens."""
    scheme, sep, _ = url.partition("://")
    return f"{scheme}://..." if sep else "(invalid url)"


class Notifier(Protocol):
    def send(self, urls: Sequence[str], body: str) -> list[NotificationError]: ...


class AppriseNotifier:
    """Sends a message to each URL with its own Apprise instance."""

    def send(self, urls: Sequence[str], body: str) -> list[NotificationError]:
        errors: list[NotificationError] = []
        for url in urls:
            destination = redact_url(url)
            client = apprise.Apprise()
            if not client.add(url):
                errors.append(NotificationError(destination, "invalid or unsupported URL"))
                continue
            if not client.notify(body=body):
                errors.append(NotificationError(destination, "delivery failed"))
        return errors


class AlertDispatcher:
    def __init__(self, *, console: ConsoleProtocol, notifier: Notifier | None = None) -> None:
        self._console = console
        self._notifier = notifier or AppriseNotifier()

    def dispatch(self, urls: Sequence[str], alert: DeployAlert) -> list[NotificationError]:
        """Render and send one alert. Failures are logged and returned."""
        if not urls:
            return []

        body = render(ALERT_TEMPLATE, alert.context())
        if isinstance(body, Err):
            error = NotificationError("alert template", body.error.message)
            self._console.warning(error.message)
            return [error]

        errors = self._notifier.send(urls, body.value)
        for error in errors:
            self._console.warning(error.message)
        return errors
