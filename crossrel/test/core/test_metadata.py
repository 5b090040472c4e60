from __future__ import annotations

from crossrel import __version__
from crossrel.core.metadata import BuildMetadata


def test_detect_defaults_to_none() -> None:
    metadata = BuildMetadata.detect({})
    assert metadata == BuildMetadata(version=__version__, commit="none", date="none")


def test_detect_reads_stamped_values() -> None:
    metadata = BuildMetadata.detect(
        {"CROSSREL_COMMIT": "abc1234", "CROSSREL_BUILD_DATE": "2026-01-02T03:04:05Z"}
    )
    assert metadata.commit == "abc1234"
    assert metadata.date == "2026-01-02T03:04:05Z"


def test_describe() -> None:
    text = BuildMetadata(version="1.0.0", commit="abc", date="today").describe()
    assert text == "crossrel version: 1.0.0\ncommit: abc\nbuild date: today"
