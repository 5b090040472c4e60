"""Matrix build executor.

Each ``BuildSpec`` expands into one ``BuildJob`` per (OS, arch[, ARM
variant]) pair. Jobs of one OS run sequentially inside a single worker;
the OS dimension runs in parallel on a pool sized to the CPU count. The
first failing job ends the wait. Compilers that already started are not
killed, and their results are discarded.

Output layout (relative to the output directory):

    <binary>_<version>_<os>_<arch>[_<variant>]/<binary>   platform suffix on
    <binary>_<version>/<binary>                           platform suffix off

With the suffix disabled every platform of a spec writes to the same path,
so the last compiler to finish wins.
"""

from __future__ import annotations

import os
import shutil
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from crossrel.core.config import BuildSpec, Manifest
from crossrel.core.result import Err, Ok, Result
from crossrel.core.template import ENV_FIELD, TemplateContext, TemplateError, env_references, render
from crossrel.output.console import ConsoleProtocol
from crossrel.platform.detection import is_arm_family, is_linux_family
from crossrel.platform.process import merged_env, run_streaming

from .archive import ArchiveService
from .errors import CompileError, OutputDirError, StageError
from .hooks import run_hooks
from .parallel import default_workers, run_all
from .versioning import ReleaseInfo

__all__ = [
    "BuildJob",
    "BuildReport",
    "BuildService",
    "collect_env",
    "entry_name",
    "expand_jobs",
    "output_path",
    "resolve_ldflags",
]

COMPILER = "go"


@dataclass(frozen=True, slots=True)
class BuildJob:
    """One fully resolved compiler invocation."""

    binary: str
    main: str
    goos: str
    goarch: str
    goarm: str | None
    output: Path
    flags: tuple[str, ...] = ()
    ldflags: str = ""
    env: tuple[tuple[str, str], ...] = ()

    @property
    def platform(self) -> str:
        if self.goarm:
            return f"{self.goos}/{self.goarch} arm{self.goarm}"
        return f"{self.goos}/{self.goarch}"

    @property
    def environment(self) -> dict[str, str]:
        """Environment overlay: platform variables first, then the build's own."""
        overlay = {"GOOS": self.goos, "GOARCH": self.goarch}
        if self.goarm:
            overlay["GOARM"] = self.goarm
        overlay.update(self.env)
        return overlay

    def command(self) -> list[str]:
        cmd = [COMPILER, "build", *self.flags]
        if self.ldflags:
            cmd += ["-ldflags", self.ldflags]
        cmd += ["-o", str(self.output), self.main]
        return cmd


@dataclass(frozen=True, slots=True)
class BuildReport:
    jobs: tuple[BuildJob, ...] = ()
    archives: tuple[Path, ...] = field(default_factory=tuple)


def entry_name(
    binary: str,
    version: str,
    goos: str,
    goarch: str,
    goarm: str | None,
    *,
    platform_suffix: bool,
) -> str:
    """Name of the output directory entry holding one job's binary."""
    if not platform_suffix:
        return f"{binary}_{version}"
    parts = [binary, version, goos, goarch]
    if goarm and is_arm_family(goarch):
        parts.append(goarm)
    return "_".join(parts)


def output_path(
    out_dir: Path,
    binary: str,
    version: str,
    goos: str,
    goarch: str,
    goarm: str | None,
    *,
    platform_suffix: bool,
) -> Path:
    name = entry_name(binary, version, goos, goarch, goarm, platform_suffix=platform_suffix)
    return out_dir / name / binary


def collect_env(
    specs: Sequence[BuildSpec], environ: Mapping[str, str]
) -> Result[dict[str, str], TemplateError]:
    """Values of the environment variables referenced by any spec's ldflags.

    Variables that are unset or empty are left out, so rendering a flag that
    needs one fails with a clear error.
    """
    names = env_references(flag for spec in specs for flag in spec.ldflags)
    if isinstance(names, Err):
        return names
    return Ok({name: environ[name] for name in names.value if environ.get(name)})


def resolve_ldflags(
    spec: BuildSpec, release: ReleaseInfo, env: Mapping[str, str]
) -> Result[str, TemplateError]:
    """Render every ldflag of a spec and join them with single spaces."""
    context = TemplateContext.of(
        Version=release.version,
        Commit=release.commit,
        Date=release.date,
        **{ENV_FIELD: env},
    )
    rendered: list[str] = []
    for flag in spec.ldflags:
        result = render(flag, context)
        if isinstance(result, Err):
            return result
        rendered.append(result.value)
    return Ok(" ".join(rendered))


def expand_jobs(spec: BuildSpec, out_dir: Path, version: str, ldflags: str = "") -> list[BuildJob]:
    """Build matrix of one spec, in OS then arch then variant order.

    ARM on anything but Linux is skipped.
    """
    jobs: list[BuildJob] = []
    for goos in spec.goos:
        for goarch in spec.goarch:
            if is_arm_family(goarch) and not is_linux_family(goos):
                continue
            variants: Sequence[str | None] = (None,)
            if is_arm_family(goarch) and spec.goarm:
                variants = spec.goarm
            for goarm in variants:
                jobs.append(
                    BuildJob(
                        binary=spec.binary_name,
                        main=spec.main,
                        goos=goos,
                        goarch=goarch,
                        goarm=goarm,
                        output=output_path(
                            out_dir,
                            spec.binary_name,
                            version,
                            goos,
                            goarch,
                            goarm,
                            platform_suffix=spec.platform_suffix,
                        ),
                        flags=spec.flags,
                        ldflags=ldflags,
                        env=spec.env,
                    )
                )
    return jobs


def _group_by_os(jobs: Sequence[BuildJob]) -> list[list[BuildJob]]:
    groups: dict[str, list[BuildJob]] = {}
    for job in jobs:
        groups.setdefault(job.goos, []).append(job)
    return list(groups.values())


class BuildService:
    """Runs the ``build`` command: hooks, compile matrix, archives, hooks."""

    def __init__(
        self,
        *,
        root: Path,
        manifest: Manifest,
        release: ReleaseInfo,
        console: ConsoleProtocol,
        environ: Mapping[str, str] | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._root = root
        self._manifest = manifest
        self._release = release
        self._console = console
        self._environ = environ if environ is not None else os.environ
        self._max_workers = max_workers or default_workers()

    @property
    def out_dir(self) -> Path:
        return self._root / self._manifest.out_dir

    def run(self) -> Result[BuildReport, StageError]:
        manifest = self._manifest
        timeouts = manifest.timeouts

        hooks = run_hooks(
            manifest.before_hooks, cwd=self._root, console=self._console, timeout=timeouts.hook
        )
        if isinstance(hooks, Err):
            return Err(StageError("hooks", hooks.error, "before"))

        cleaned = self._recreate_out_dir()
        if isinstance(cleaned, Err):
            return Err(StageError("build", cleaned.error))

        env = collect_env(manifest.builds, self._environ)
        if isinstance(env, Err):
            return Err(StageError("build", env.error))

        built: list[BuildJob] = []
        for spec in manifest.builds:
            result = self._build_spec(spec, env.value)
            if isinstance(result, Err):
                return result
            built.extend(result.value)

        archiver = ArchiveService(console=self._console, max_workers=self._max_workers)
        archives = archiver.run(self.out_dir, manifest.archives)
        if isinstance(archives, Err):
            return archives

        hooks = run_hooks(
            manifest.after_hooks, cwd=self._root, console=self._console, timeout=timeouts.hook
        )
        if isinstance(hooks, Err):
            return Err(StageError("hooks", hooks.error, "after"))

        return Ok(BuildReport(jobs=tuple(built), archives=tuple(archives.value)))

    def _recreate_out_dir(self) -> Result[Path, OutputDirError]:
        out_dir = self.out_dir
        try:
            if out_dir.is_dir() and not out_dir.is_symlink():
                shutil.rmtree(out_dir)
            elif out_dir.exists() or out_dir.is_symlink():
                out_dir.unlink()
            out_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return Err(OutputDirError(path=out_dir, reason=str(e)))
        return Ok(out_dir)

    def _build_spec(
        self, spec: BuildSpec, env: Mapping[str, str]
    ) -> Result[list[BuildJob], StageError]:
        ldflags = resolve_ldflags(spec, self._release, env)
        if isinstance(ldflags, Err):
            return Err(StageError("build", ldflags.error, spec.binary_name))

        jobs = expand_jobs(spec, self.out_dir, self._release.version, ldflags.value)
        if not jobs:
            self._console.warning(f"no build targets for {spec.binary_name}")
            return Ok([])

        self._console.info(f"Use {self._max_workers} CPU cores for building...")
        tasks = [lambda group=group: self._compile_group(group) for group in _group_by_os(jobs)]
        result = run_all(tasks, max_workers=self._max_workers)
        if isinstance(result, Err):
            return Err(StageError("build", result.error, spec.binary_name))
        return Ok([job for group in result.value for job in group])

    def _compile_group(self, jobs: Sequence[BuildJob]) -> Result[list[BuildJob], CompileError]:
        for job in jobs:
            compiled = self._compile(job)
            if isinstance(compiled, Err):
                return compiled
        return Ok(list(jobs))

    def _compile(self, job: BuildJob) -> Result[BuildJob, CompileError]:
        self._console.info(f"Building {job.binary} for {job.platform}...")
        result = run_streaming(
            job.command(),
            cwd=self._root,
            env=merged_env(job.environment),
            timeout=self._manifest.timeouts.compile,
        )
        if isinstance(result, Err):
            error = result.error
            return Err(
                CompileError(
                    binary=job.binary,
                    goos=job.goos,
                    goarch=job.goarch,
                    goarm=job.goarm,
                    returncode=error.returncode,
                    reason=error.stderr if error.spawn_failed else "",
                )
            )
        return Ok(job)
