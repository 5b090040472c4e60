"""Tests for deploy alerts."""

from __future__ import annotations

from collections.abc import Sequence

import pytest

import crossrel.services.notify as notify_mod
from crossrel.output.console import MockConsole, Style
from crossrel.services.errors import NotificationError
from crossrel.services.notify import (
    AlertDispatcher,
    AppriseNotifier,
    DeployAlert,
    DeployStatus,
    redact_url,
)


class RecordingNotifier:
    def __init__(self, errors: list[NotificationError] | None = None) -> None:
        self.errors = errors or []
        self.sent: list[tuple[list[str], str]] = []

    def send(self, urls: Sequence[str], body: str) -> list[NotificationError]:
        self.sent.append((list(urls), body))
        return self.errors


class FakeApprise:
    instances: list[FakeApprise] = []

    def __init__(self) -> None:
        self.urls: list[str] = []
        self.bodies: list[str] = []
        FakeApprise.instances.append(self)

    def add(self, url: str) -> bool:
        if url.startswith("bogus"):
            return False
        self.urls.append(url)
        return True

    def notify(self, *, body: str) -> bool:
        self.bodies.append(body)
        return not self.urls[0].startswith("json://down")


class TestAlertBody:
    def test_success_has_no_error_line(self) -> None:
        notifier = RecordingNotifier()
        alert = DeployAlert("production", "v1.2.0", DeployStatus.SUCCESS)

        AlertDispatcher(console=MockConsole(), notifier=notifier).dispatch(["json://x"], alert)

        (_, body), = notifier.sent
        assert body == (
            "\nDeployment Status Update\n"
            "Application: production\n"
            "Version: v1.2.0\n"
            "Status: Success\n"
            "\n"
        )

    def test_failure_carries_error(self) -> None:
        notifier = RecordingNotifier()
        alert = DeployAlert("production", "v1.2.0", DeployStatus.FAILED, "exit 3")

        AlertDispatcher(console=MockConsole(), notifier=notifier).dispatch(["json://x"], alert)

        body = notifier.sent[0][1]
        assert "Status: Failed\n" in body
        assert body.endswith("Error: exit 3\n")


class TestDispatcher:
    def test_no_urls_sends_nothing(self) -> None:
        notifier = RecordingNotifier()
        dispatcher = AlertDispatcher(console=MockConsole(), notifier=notifier)
        assert dispatcher.dispatch([], DeployAlert("a", "v1", DeployStatus.SUCCESS)) == []
        assert notifier.sent == []

    def test_errors_are_logged_not_raised(self) -> None:
        console = MockConsole()
        error = NotificationError("tgram://...", "delivery failed")
        dispatcher = AlertDispatcher(console=console, notifier=RecordingNotifier([error]))

        alert = DeployAlert("a", "v1", DeployStatus.SUCCESS)
        result = dispatcher.dispatch(["tgram://token/chat"], alert)

        assert result == [error]
        (warning,) = console.find("failed to send alert to tgram://...")
        assert warning.style == Style.WARNING


class TestAppriseNotifier:
    @pytest.fixture(autouse=True)
    def fake_apprise(self, monkeypatch: pytest.MonkeyPatch) -> None:
        FakeApprise.instances = []
        monkeypatch.setattr(notify_mod.apprise, "Apprise", FakeApprise)

    def test_one_instance_per_url(self) -> None:
        errors = AppriseNotifier().send(["json://a/hook", "slack://t/b/c"], "hello")

        assert errors == []
        urls = [inst.urls for inst in FakeApprise.instances]
        assert urls == [["json://a/hook"], ["slack://t/b/c"]]
        assert all(inst.bodies == ["hello"] for inst in FakeApprise.instances)

    def test_each_bad_url_is_reported(self) -> None:
        errors = AppriseNotifier().send(["bogus-url", "json://down/hook", "json://up"], "hi")

        assert errors == [
            NotificationError("(invalid url)", "invalid or unsupported URL"),
            NotificationError("json://...", "delivery failed"),
        ]
        assert FakeApprise.instances[2].bodies == ["hi"]


@pytest.mark.parametrize(
    "url", ["telegram://123456:ABCDEF/987", "generic://hooks.example.com/deploy"]
)
def test_shoutrrr_schemes_are_rejected(url: str) -> None:
    (error,) = AppriseNotifier().send([url], "hi")
    assert error.reason == "invalid or unsupported URL"


def test_redact_url_hides_tokens() -> None:
    assert redact_url("tgram://123456:ABCDEF/987") == "tgram://..."
