"""Archive stage: turn raw build outputs into distributable bundles.

Build outputs are named ``<binary>_<version>_<os>_<arch>[_<variant>]``
(a directory holding the binary, or a plain file). Entries of the output
directory whose names do not split into at least four ``_``-separated
fields are left alone.

The stage runs in two phases: create every archive on a bounded worker
pool, then, once all workers are done, delete the sources that were
archived. Deletion problems are reported as warnings only.
"""

from __future__ import annotations

import shutil
import tarfile
from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from crossrel.core.config import ArchiveSpec
from crossrel.core.result import Err, Ok, Result
from crossrel.core.template import TemplateContext, render
from crossrel.output.console import ConsoleProtocol

from .errors import ArchiveError, OutputDirError, StageError
from .parallel import default_workers, run_all

__all__ = [
    "ArchiveFormat",
    "ArchiveService",
    "OutputEntry",
    "create_tar_gz",
    "parse_entry",
]

FIELD_SEPARATOR = "_"
MIN_FIELDS = 4


class ArchiveFormat(StrEnum):
    TAR_GZ = "tar.gz"

    @classmethod
    def parse(cls, text: str) -> ArchiveFormat | None:
        try:
            return cls(text.strip().lower())
        except ValueError:
            return None


@dataclass(frozen=True, slots=True)
class OutputEntry:
    """An output directory entry whose name carries platform metadata."""

    path: Path
    binary: str
    version: str
    os: str
    arch: str

    @property
    def name(self) -> str:
        return self.path.name

    def template_context(self) -> TemplateContext:
        return TemplateContext.of(
            Binary=self.binary,
            Version=self.version,
            Os=self.os,
            Arch=self.arch,
        )


def parse_entry(path: Path) -> OutputEntry | None:
    """Recover (binary, version, os, arch) from an entry name, if present."""
    parts = path.name.split(FIELD_SEPARATOR)
    if len(parts) < MIN_FIELDS:
        return None
    return OutputEntry(path=path, binary=parts[0], version=parts[1], os=parts[2], arch=parts[3])


def create_tar_gz(source: Path, dest: Path) -> Result[Path, ArchiveError]:
    """Write ``source`` (file or directory tree) into a gzip-compressed tarball.

    A directory keeps its relative layout under a single top-level member
    named after the directory; a file becomes a single member.
    """
    try:
        with tarfile.open(dest, "w:gz") as tar:
            tar.add(source, arcname=source.name, recursive=True)
    except (OSError, tarfile.TarError) as e:
        dest.unlink(missing_ok=True)
        return Err(ArchiveError(path=dest, reason=str(e)))
    return Ok(dest)


@dataclass(frozen=True, slots=True)
class _Job:
    entry: OutputEntry
    dest: Path
    format: ArchiveFormat


class ArchiveService:
    def __init__(self, *, console: ConsoleProtocol, max_workers: int | None = None) -> None:
        self._console = console
        self._max_workers = max_workers or default_workers()

    def run(self, out_dir: Path, specs: Sequence[ArchiveSpec]) -> Result[list[Path], StageError]:
        """Archive every matching entry of ``out_dir`` per spec and format.

        Returns:
            Ok(created archive paths), or the first fatal error.
        """
        if not specs:
            return Ok([])

        try:
            entries = sorted(out_dir.iterdir(), key=lambda p: p.name)
        except OSError as e:
            return Err(StageError("archive", OutputDirError(path=out_dir, reason=str(e))))

        planned = self._plan(entries, specs)
        if isinstance(planned, Err):
            return planned
        jobs = planned.value
        if not jobs:
            return Ok([])

        self._console.info(f"Use {self._max_workers} CPU cores for creating archives...")
        tasks = [lambda job=job: self._create(job) for job in jobs]
        created = run_all(tasks, max_workers=self._max_workers)
        if isinstance(created, Err):
            return Err(StageError("archive", created.error))

        self._sweep([job.entry for job in jobs])
        self._console.success("All archives created successfully.")
        return Ok(created.value)

    def _plan(
        self, entries: Sequence[Path], specs: Sequence[ArchiveSpec]
    ) -> Result[list[_Job], StageError]:
        jobs: list[_Job] = []
        claimed: dict[Path, Path] = {}
        for path in entries:
            entry = parse_entry(path)
            if entry is None:
                continue
            for spec in specs:
                name = entry.name
                if spec.name_template:
                    rendered = render(spec.name_template, entry.template_context())
                    if isinstance(rendered, Err):
                        return Err(StageError("archive", rendered.error))
                    name = rendered.value

                for text in spec.formats:
                    fmt = ArchiveFormat.parse(text)
                    if fmt is None:
                        self._console.warning(f"Unsupported archive format: {text}")
                        continue
                    dest = path.parent / f"{name}.{fmt.value}"
                    owner = claimed.get(dest)
                    if owner is not None:
                        if owner != path:
                            self._console.warning(
                                f"Skipping {path.name}: {dest.name} is already archived "
                                f"from {owner.name}"
                            )
                        continue
                    claimed[dest] = path
                    jobs.append(_Job(entry=entry, dest=dest, format=fmt))
        return Ok(jobs)

    def _create(self, job: _Job) -> Result[Path, ArchiveError]:
        match job.format:
            case ArchiveFormat.TAR_GZ:
                self._console.info(f"Creating {job.dest.name}")
                return create_tar_gz(job.entry.path, job.dest)

    def _sweep(self, archived: Sequence[OutputEntry]) -> None:
        removed: set[Path] = set()
        for entry in archived:
            if entry.path in removed:
                continue
            removed.add(entry.path)
            try:
                if entry.path.is_dir() and not entry.path.is_symlink():
                    shutil.rmtree(entry.path)
                else:
                    entry.path.unlink()
            except OSError as e:
                self._console.warning(f"failed to remove source {entry.path}: {e}")
