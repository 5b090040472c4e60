"""Tests for crossrel.platform.paths module."""

from __future__ import annotations

import stat
from collections.abc import Iterator
from pathlib import Path

import pytest

from crossrel.platform.paths import atomic_write_text, ensure_private_file, expand_user, home


@pytest.fixture
def fake_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    monkeypatch.setenv("HOME", str(tmp_path))
    home.cache_clear()
    yield tmp_path
    home.cache_clear()


class TestExpandUser:
    def test_tilde_prefix(self, fake_home: Path) -> None:
        assert expand_user("~/.ssh/known_hosts") == fake_home / ".ssh" / "known_hosts"

    def test_bare_tilde(self, fake_home: Path) -> None:
        assert expand_user("~") == fake_home

    def test_other_paths_unchanged(self, fake_home: Path) -> None:
        assert expand_user("/etc/ssh/known") == Path("/etc/ssh/known")
        assert expand_user("~other/file") == Path("~other/file")


class TestEnsurePrivateFile:
    def test_creates_with_private_modes(self, tmp_path: Path) -> None:
        path = tmp_path / "ssh" / "known_hosts"
        assert ensure_private_file(path) is True
        assert path.read_text() == ""
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
        assert stat.S_IMODE(path.parent.stat().st_mode) == 0o700

    def test_existing_file_untouched(self, tmp_path: Path) -> None:
        path = tmp_path / "known_hosts"
        path.write_text("host key\n")
        assert ensure_private_file(path) is False
        assert path.read_text() == "host key\n"


class TestAtomicWriteText:
    def test_writes_and_replaces(self, tmp_path: Path) -> None:
        path = tmp_path / "conf" / "crossrel.yaml"
        atomic_write_text(path, "a: 1\n")
        atomic_write_text(path, "a: 2\n")
        assert path.read_text() == "a: 2\n"
        assert [p.name for p in path.parent.iterdir()] == ["crossrel.yaml"]
