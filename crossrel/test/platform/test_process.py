"""Tests for crossrel.platform.process module."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from crossrel.core.result import Err, Ok
from crossrel.platform.process import ProcessError, merged_env, run, run_streaming


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(command=("git", "status"), returncode=1, stdout="", stderr="fatal")
        assert str(error) == "git status failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(
            command=("go", "build", "-trimpath", "-o", "dist/app", "."),
            returncode=2,
            stdout="",
            stderr="",
        )
        assert str(error) == "go build -trimpath ... failed (exit 2)"

    def test_spawn_failure(self) -> None:
        error = ProcessError(command=("scp",), returncode=-1, stdout="", stderr="not found")
        assert error.spawn_failed
        assert str(error) == "scp failed: not found"

    def test_output_combines_streams(self) -> None:
        error = ProcessError(command=("ssh",), returncode=1, stdout=" out \n", stderr="err\n")
        assert error.output == "out\nerr"

    def test_frozen(self) -> None:
        error = ProcessError(("cmd",), 1, "", "")
        with pytest.raises(AttributeError):
            error.returncode = 2  # type: ignore[misc]


class TestMergedEnv:
    def test_none_without_overlay(self) -> None:
        assert merged_env(None) is None
        assert merged_env({}) is None

    def test_overlay_wins(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GOOS", "windows")
        env = merged_env({"GOOS": "linux"})
        assert env is not None
        assert env["GOOS"] == "linux"
        assert env["PATH"] == os.environ["PATH"]


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert result.value.strip() == "hello"

    def test_failure_keeps_output(self, tmp_path: Path) -> None:
        code = "import sys; sys.stderr.write('boom'); sys.exit(42)"
        result = run([sys.executable, "-c", code], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert result.error.stderr == "boom"

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.spawn_failed

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([sys.executable, "-c", "import time; time.sleep(5)"], cwd=tmp_path, timeout=0.2)
        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr

    def test_env_is_passed(self, tmp_path: Path) -> None:
        env = merged_env({"CROSSREL_MARKER": "42"})
        code = "import os; print(os.environ['CROSSREL_MARKER'])"
        assert run([sys.executable, "-c", code], cwd=tmp_path, env=env) == Ok("42\n")

    def test_merge_stderr_on_success(self, tmp_path: Path) -> None:
        code = "import sys; print('out', flush=True); sys.stderr.write('progress\\n')"
        result = run([sys.executable, "-c", code], cwd=tmp_path, merge_stderr=True)
        assert result == Ok("out\nprogress\n")

    def test_merge_stderr_on_failure(self, tmp_path: Path) -> None:
        code = "import sys; sys.stderr.write('boom'); sys.exit(3)"
        result = run([sys.executable, "-c", code], cwd=tmp_path, merge_stderr=True)
        assert isinstance(result, Err)
        assert result.error.stderr == ""
        assert result.error.output == "boom"


class TestRunStreaming:
    def test_success(self, tmp_path: Path) -> None:
        assert run_streaming([sys.executable, "-c", "pass"], cwd=tmp_path) == Ok(None)

    def test_failure(self, tmp_path: Path) -> None:
        result = run_streaming([sys.executable, "-c", "raise SystemExit(3)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 3

    def test_runs_in_cwd(self, tmp_path: Path) -> None:
        code = "open('marker', 'w').close()"
        assert run_streaming([sys.executable, "-c", code], cwd=tmp_path) == Ok(None)
        assert (tmp_path / "marker").exists()
