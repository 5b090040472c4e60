"""Tests for the crossrel command line."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
import yaml
from typer.testing import CliRunner

import crossrel.cli.app as app_mod
import crossrel.cli.commands.build_cmd as build_cmd
import crossrel.cli.commands.config_cmd as config_cmd
import crossrel.cli.commands.deploy_cmd as deploy_cmd
import crossrel.cli.commands.git_cmd as git_cmd
import crossrel.cli.commands.publish_cmd as publish_cmd
import crossrel.cli.commands.release_cmd as release_cmd
import crossrel.cli.context as context_mod
from crossrel.cli.app import app
from crossrel.core.errors import ErrorCode
from crossrel.core.result import Err, Ok, Result
from crossrel.output.console import MockConsole
from crossrel.services.build import BuildJob, BuildReport
from crossrel.services.errors import (
    CompileError,
    DeployNotFoundError,
    SinkNotFoundError,
    StageError,
)
from crossrel.services.versioning import ReleaseInfo

runner = CliRunner()

MANIFEST = """\
builds:
  - main: ./cmd/app
    goos: [linux]
    goarch: [amd64]
"""


@pytest.fixture
def console(monkeypatch: pytest.MonkeyPatch) -> MockConsole:
    mock = MockConsole()
    for module in (context_mod, config_cmd, git_cmd, release_cmd):
        monkeypatch.setattr(module, "RichConsole", lambda: mock)
    return mock


@pytest.fixture
def manifest_path(tmp_path: Path) -> Path:
    path = tmp_path / "crossrel.yaml"
    path.write_text(MANIFEST, encoding="utf-8")
    return path


def _fixed_version(monkeypatch: pytest.MonkeyPatch, *modules: Any) -> None:
    for module in modules:
        monkeypatch.setattr(module, "current_version", lambda repo, console: "v1.2.0")


class FakeService:
    """Records constructor arguments and returns a canned result."""

    result: Result[Any, StageError] = Ok([])
    instances: list[FakeService] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.run_args: tuple[Any, ...] = ()
        type(self).instances.append(self)

    def run(self, *args: Any) -> Result[Any, StageError]:
        self.run_args = args
        return type(self).result


def _fake_service(result: Result[Any, StageError]) -> type[FakeService]:
    return type("Fake", (FakeService,), {"result": result, "instances": []})


class TestBuild:
    def test_success(
        self,
        monkeypatch: pytest.MonkeyPatch,
        console: MockConsole,
        manifest_path: Path,
        tmp_path: Path,
    ) -> None:
        job = BuildJob(
            binary="app", main="./cmd/app", goos="linux", goarch="amd64", goarm=None, output=tmp_path
        )
        fake = _fake_service(Ok(BuildReport(jobs=(job,), archives=(tmp_path / "a.tar.gz",))))
        monkeypatch.setattr(build_cmd, "BuildService", fake)
        release = ReleaseInfo(version="v1.2.0", commit="abc", date="today")
        monkeypatch.setattr(build_cmd, "resolve_release_info", lambda repo, console: release)

        result = runner.invoke(app, ["build", "-c", str(manifest_path)])

        assert result.exit_code == 0, result.output
        (service,) = fake.instances
        assert service.kwargs["root"] == tmp_path.resolve()
        assert service.kwargs["release"] == release
        assert service.kwargs["manifest"].builds[0].main == "./cmd/app"
        assert console.find("built 1 target(s) for v1.2.0, 1 archive(s)")

    def test_build_failure_exit_code(
        self, monkeypatch: pytest.MonkeyPatch, console: MockConsole, manifest_path: Path
    ) -> None:
        cause = CompileError(binary="app", goos="linux", goarch="amd64", goarm=None, returncode=2)
        monkeypatch.setattr(build_cmd, "BuildService", _fake_service(Err(StageError("build", cause, "app"))))
        monkeypatch.setattr(
            build_cmd,
            "resolve_release_info",
            lambda repo, console: ReleaseInfo(version="v1", commit="c", date="d"),
        )

        result = runner.invoke(app, ["build", "-c", str(manifest_path)])

        assert result.exit_code == int(ErrorCode.BUILD_ERROR)
        assert console.has_error()

    def test_missing_manifest(self, console: MockConsole, tmp_path: Path) -> None:
        result = runner.invoke(app, ["build", "-c", str(tmp_path / "missing.yaml")])

        assert result.exit_code == int(ErrorCode.ENV_ERROR)
        assert console.find("hint: Run: crossrel config init")


class TestPublish:
    def test_named_sink(
        self, monkeypatch: pytest.MonkeyPatch, console: MockConsole, manifest_path: Path
    ) -> None:
        fake = _fake_service(Ok(["s3://releases/v1.2.0/a.tar.gz"]))
        monkeypatch.setattr(publish_cmd, "PublishService", fake)
        _fixed_version(monkeypatch, publish_cmd)

        result = runner.invoke(app, ["publish", "--name", "bucket", "-c", str(manifest_path)])

        assert result.exit_code == 0, result.output
        (service,) = fake.instances
        assert service.run_args == ("bucket",)
        assert service.kwargs["version"] == "v1.2.0"
        assert console.find("published 1 file(s)")

    def test_unknown_sink(
        self, monkeypatch: pytest.MonkeyPatch, console: MockConsole, manifest_path: Path
    ) -> None:
        error = StageError("publish", SinkNotFoundError(name="nope", available=("bucket",)))
        monkeypatch.setattr(publish_cmd, "PublishService", _fake_service(Err(error)))
        _fixed_version(monkeypatch, publish_cmd)

        result = runner.invoke(app, ["publish", "-n", "nope", "-c", str(manifest_path)])

        assert result.exit_code == int(ErrorCode.USER_ERROR)
        assert console.find("error: publish: publish configuration 'nope' not found")
        assert console.find("hint: available: bucket")


class TestDeploy:
    def test_all_deploys(
        self, monkeypatch: pytest.MonkeyPatch, console: MockConsole, manifest_path: Path
    ) -> None:
        fake = _fake_service(Ok(["one", "two"]))
        monkeypatch.setattr(deploy_cmd, "DeployService", fake)
        _fixed_version(monkeypatch, deploy_cmd)

        result = runner.invoke(app, ["deploy", "-c", str(manifest_path)])

        assert result.exit_code == 0, result.output
        assert fake.instances[0].run_args == (None,)
        assert console.find("2 deploy(s) succeeded")

    def test_no_deploys(
        self, monkeypatch: pytest.MonkeyPatch, console: MockConsole, manifest_path: Path
    ) -> None:
        error = StageError("deploy", DeployNotFoundError(name=None))
        monkeypatch.setattr(deploy_cmd, "DeployService", _fake_service(Err(error)))
        _fixed_version(monkeypatch, deploy_cmd)

        result = runner.invoke(app, ["deploy", "-c", str(manifest_path)])

        assert result.exit_code == int(ErrorCode.USER_ERROR)


class TestConfigInit:
    def test_writes_starter_manifest(self, console: MockConsole, tmp_path: Path) -> None:
        path = tmp_path / "crossrel.yaml"

        result = runner.invoke(
            app, ["config", "init", "-o", "linux", "-a", "arm64", "-m", "./cmd/tool", "-c", str(path)]
        )

        assert result.exit_code == 0, result.output
        data = yaml.safe_load(path.read_text())
        assert data["builds"][0]["goos"] == ["linux"]
        assert data["builds"][0]["goarch"] == ["arm64"]
        assert data["builds"][0]["main"] == "./cmd/tool"
        assert console.find(f"Created {path} with default configuration")

    def test_refuses_to_overwrite(self, console: MockConsole, tmp_path: Path) -> None:
        path = tmp_path / "crossrel.yaml"
        path.write_text("keep: me\n")

        result = runner.invoke(app, ["config", "init", "-c", str(path)])

        assert result.exit_code == int(ErrorCode.USER_ERROR)
        assert path.read_text() == "keep: me\n"
        assert console.find("already exists. Use --force / -f to overwrite")

    def test_force_overwrites(self, console: MockConsole, tmp_path: Path) -> None:
        path = tmp_path / "crossrel.yaml"
        path.write_text("keep: me\n")

        result = runner.invoke(app, ["config", "init", "--force", "-c", str(path)])

        assert result.exit_code == 0, result.output
        assert "builds" in yaml.safe_load(path.read_text())

    def test_defaults_to_host_platform(self, console: MockConsole, tmp_path: Path) -> None:
        path = tmp_path / "crossrel.yaml"
        host = config_cmd.detect()

        runner.invoke(app, ["config", "init", "-c", str(path)])

        build = yaml.safe_load(path.read_text())["builds"][0]
        assert build["goos"] == [host.goos]
        assert build["goarch"] == [host.goarch]


class TestGitAndRelease:
    def test_git_version(self, monkeypatch: pytest.MonkeyPatch, console: MockConsole) -> None:
        _fixed_version(monkeypatch, git_cmd)
        result = runner.invoke(app, ["git", "version"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "Current git version: v1.2.0"

    def test_changelog(self, monkeypatch: pytest.MonkeyPatch, console: MockConsole) -> None:
        seen: dict[str, Any] = {}

        def fake_changelog(repo: Any, console: Any, *, stable: bool) -> Result[str, Any]:
            seen["stable"] = stable
            return Ok("## What's Changed\n\n* fix by @dev in abc")

        monkeypatch.setattr(release_cmd, "changelog", fake_changelog)

        result = runner.invoke(app, ["release", "changelog", "--stable"])

        assert result.exit_code == 0
        assert seen == {"stable": True}
        assert "* fix by @dev in abc" in result.stdout


class TestVersion:
    def test_describes_build(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CROSSREL_COMMIT", "abc1234")
        monkeypatch.setenv("CROSSREL_BUILD_DATE", "2026-03-01")

        result = runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "commit: abc1234" in result.stdout
        assert "build date: 2026-03-01" in result.stdout

    def test_environment_wins_over_dotenv(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("CROSSREL_COMMIT", "from-env")
        monkeypatch.setenv("CROSSREL_BUILD_DATE", "from-env")
        (tmp_path / ".env").write_text("CROSSREL_COMMIT=from-file\n")

        result = runner.invoke(app, ["version"])

        assert "commit: from-env" in result.stdout

    def test_dotenv_loaded_from_cwd(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        calls: list[tuple[Path, bool]] = []
        monkeypatch.setattr(
            app_mod, "load_dotenv", lambda path, override: calls.append((path, override))
        )

        runner.invoke(app, ["version"])

        assert calls == [(Path.cwd() / ".env", False)]
