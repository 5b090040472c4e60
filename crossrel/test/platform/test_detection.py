"""Tests for crossrel.platform.detection module."""

from __future__ import annotations

import pytest

from crossrel.platform.detection import HostPlatform, Os, detect, is_arm_family, is_linux_family


class TestFamilies:
    def test_arm(self) -> None:
        assert is_arm_family("arm")
        assert not is_arm_family("arm64")

    def test_linux(self) -> None:
        assert is_linux_family("linux")
        assert not is_linux_family("darwin")


class TestHostPlatform:
    @pytest.mark.parametrize(
        ("machine", "goarch"),
        [
            ("x86_64", "amd64"),
            ("AMD64", "amd64"),
            ("aarch64", "arm64"),
            ("armv7l", "arm"),
            ("i686", "386"),
            ("mips", "mips"),
            ("", "unknown"),
        ],
    )
    def test_goarch(self, machine: str, goarch: str) -> None:
        assert HostPlatform(os=Os.LINUX, machine=machine).goarch == goarch

    def test_goos(self) -> None:
        assert HostPlatform(os=Os.DARWIN, machine="arm64").goos == "darwin"

    def test_detect_is_cached(self) -> None:
        assert detect() is detect()
