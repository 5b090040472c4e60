"""Build metadata of the crossrel binary itself.

Constructed once when the CLI starts and passed to whatever needs it.
Packagers stamp commit and date through the environment, the same way the
container image build passes them as build arguments.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from crossrel import __version__

__all__ = ["BuildMetadata"]

COMMIT_ENV = "CROSSREL_COMMIT"
BUILD_DATE_ENV = "CROSSREL_BUILD_DATE"


@dataclass(frozen=True, slots=True)
class BuildMetadata:
    version: str
    commit: str = "none"
    date: str = "none"

    @classmethod
    def detect(cls, environ: Mapping[str, str] | None = None) -> BuildMetadata:
        env = os.environ if environ is None else environ
        return cls(
            version=__version__,
            commit=env.get(COMMIT_ENV) or "none",
            date=env.get(BUILD_DATE_ENV) or "none",
        )

    def describe(self) -> str:
        return f"crossrel version: {self.version}\ncommit: {self.commit}\nbuild date: {self.date}"
