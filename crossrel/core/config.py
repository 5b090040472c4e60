"""Typed release manifest loading.

The manifest (``crossrel.yaml``) is decoded once at process start into the
frozen dataclasses below and is read-only afterwards. Field names follow the
YAML keys, which match the manifests of GoReleaser-style tools:

    out_dir: dist
    builds:
      - main: ./cmd/myapp
        goos: [linux, darwin]
        goarch: [amd64, arm64]
    archives:
      - formats: [tar.gz]
        name_template: "{{ .Binary }}_{{ .Version }}_{{ .Os }}_{{ .Arch }}"
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path, PurePosixPath

import yaml

from .result import Err, Ok, Result
from .structured import (
    ShapeError,
    StrDict,
    as_str_dict,
    get_bool,
    get_float,
    get_int,
    get_raw_str,
    get_str,
    get_str_list,
    get_table,
    get_table_list,
)

__all__ = [
    "ArchiveSpec",
    "BuildSpec",
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_KNOWN_HOSTS",
    "DEFAULT_OUT_DIR",
    "DEFAULT_SSH_PORT",
    "DeploySpec",
    "HostKeyPolicy",
    "Manifest",
    "ObjectStorageSink",
    "PublishSink",
    "RemoteShellSink",
    "RemoteTarget",
    "TimeoutsConfig",
    "UnknownSink",
    "UnsupportedProvider",
    "default_manifest",
    "dump_manifest",
    "load_config",
]

DEFAULT_CONFIG_NAME = "crossrel.yaml"
DEFAULT_OUT_DIR = "dist"
DEFAULT_KNOWN_HOSTS = "~/.ssh/known_hosts"
DEFAULT_SSH_PORT = 22


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Manifest cannot be read or does not have the expected structure."""

    message: str
    path: Path | None = None
    hint: str | None = None


class HostKeyPolicy(StrEnum):
    """How a remote host's identity key is trusted.

    TOFU records the key of a host seen for the first time (trust on first
    use); STRICT requires the key to be recorded already; INSECURE skips
    verification entirely.
    """

    TOFU = "tofu"
    STRICT = "strict"
    INSECURE = "insecure"

    @property
    def verifies(self) -> bool:
        return self != HostKeyPolicy.INSECURE


@dataclass(frozen=True, slots=True)
class RemoteTarget:
    """Connection settings for a host reached over SSH."""

    host: str = ""
    user: str = ""
    port: int = DEFAULT_SSH_PORT
    key_path: str | None = None
    key_raw: str | None = None
    host_key_policy: HostKeyPolicy = HostKeyPolicy.TOFU
    known_hosts: str = DEFAULT_KNOWN_HOSTS

    @property
    def address(self) -> str:
        return f"{self.user}@{self.host}"


@dataclass(frozen=True, slots=True)
class BuildSpec:
    """One entry of ``builds``; expands into a matrix of build jobs."""

    main: str
    output_name: str | None = None
    disable_platform_suffix: bool = False
    goos: tuple[str, ...] = ()
    goarch: tuple[str, ...] = ()
    goarm: tuple[str, ...] = ()
    flags: tuple[str, ...] = ()
    ldflags: tuple[str, ...] = ()
    env: tuple[tuple[str, str], ...] = ()

    @property
    def binary_name(self) -> str:
        """Explicit output name, or the last path element of ``main``."""
        if self.output_name:
            return self.output_name
        return PurePosixPath(self.main).name

    @property
    def platform_suffix(self) -> bool:
        return not self.disable_platform_suffix


@dataclass(frozen=True, slots=True)
class ArchiveSpec:
    formats: tuple[str, ...] = ()
    name_template: str | None = None


@dataclass(frozen=True, slots=True)
class ObjectStorageSink:
    """S3-compatible bucket (``provider: s3``)."""

    name: str
    bucket: str
    region: str | None
    endpoint: str
    directory: str


@dataclass(frozen=True, slots=True)
class RemoteShellSink:
    """Directory on a host reached over SSH (``provider: ssh``)."""

    name: str
    target: RemoteTarget
    directory: str


@dataclass(frozen=True, slots=True)
class UnknownSink:
    """Sink with a provider this tool does not know; skipped at publish time."""

    name: str
    provider: str


type PublishSink = ObjectStorageSink | RemoteShellSink | UnknownSink


@dataclass(frozen=True, slots=True)
class UnsupportedProvider:
    provider: str


@dataclass(frozen=True, slots=True)
class DeploySpec:
    name: str
    target: RemoteTarget | UnsupportedProvider
    commands: tuple[str, ...] = ()
    alert_urls: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    """Timeouts in seconds for external calls. None waits indefinitely."""

    hook: float | None = None
    compile: float | None = None
    connect: float | None = None
    remote_command: float | None = None
    upload: float | None = None
    storage: float | None = None


@dataclass(frozen=True, slots=True)
class Manifest:
    version: int = 1
    out_dir: str = DEFAULT_OUT_DIR
    before_hooks: tuple[str, ...] = ()
    after_hooks: tuple[str, ...] = ()
    builds: tuple[BuildSpec, ...] = ()
    archives: tuple[ArchiveSpec, ...] = ()
    sinks: tuple[PublishSink, ...] = ()
    deploys: tuple[DeploySpec, ...] = ()
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Manifest:
        """Create a Manifest from parsed YAML.

        Raises:
            ShapeError: A value has the wrong type or shape.
        """
        before = get_table(data, "before") or {}
        after = get_table(data, "after") or {}
        timeouts = get_table(data, "timeouts") or {}

        return cls(
            version=get_int(data, "version") or 1,
            out_dir=get_str(data, "out_dir") or DEFAULT_OUT_DIR,
            before_hooks=get_str_list(before, "hooks"),
            after_hooks=get_str_list(after, "hooks"),
            builds=tuple(_build_from_dict(b) for b in get_table_list(data, "builds")),
            archives=tuple(
                ArchiveSpec(
                    formats=get_str_list(a, "formats"),
                    name_template=get_str(a, "name_template"),
                )
                for a in get_table_list(data, "archives")
            ),
            sinks=tuple(_sink_from_dict(b) for b in get_table_list(data, "blobs")),
            deploys=tuple(_deploy_from_dict(d) for d in get_table_list(data, "deploys")),
            timeouts=TimeoutsConfig(
                hook=get_float(timeouts, "hook"),
                compile=get_float(timeouts, "compile"),
                connect=get_float(timeouts, "connect"),
                remote_command=get_float(timeouts, "remote_command"),
                upload=get_float(timeouts, "upload"),
                storage=get_float(timeouts, "storage"),
            ),
        )

    def to_dict(self) -> StrDict:
        """Serialize back to the YAML shape, omitting empty values."""
        out: StrDict = {"version": self.version, "out_dir": self.out_dir}
        if self.before_hooks:
            out["before"] = {"hooks": list(self.before_hooks)}
        if self.after_hooks:
            out["after"] = {"hooks": list(self.after_hooks)}
        if self.builds:
            out["builds"] = [_build_to_dict(b) for b in self.builds]
        if self.archives:
            out["archives"] = [
                _compact({"formats": list(a.formats), "name_template": a.name_template})
                for a in self.archives
            ]
        return out


def _compact(d: StrDict) -> StrDict:
    return {k: v for k, v in d.items() if v not in (None, "", [], False)}


def _parse_env(entries: tuple[str, ...]) -> tuple[tuple[str, str], ...]:
    pairs: list[tuple[str, str]] = []
    for entry in entries:
        key, sep, value = entry.partition("=")
        if not sep or not key.strip():
            raise ShapeError(f"env entry {entry!r} must look like NAME=value")
        pairs.append((key.strip(), value))
    return tuple(pairs)


def _build_from_dict(data: StrDict) -> BuildSpec:
    main = get_str(data, "main")
    if main is None:
        raise ShapeError("builds: 'main' is required")
    spec = BuildSpec(
        main=main,
        output_name=get_str(data, "output_name"),
        disable_platform_suffix=get_bool(data, "disable_platform_suffix"),
        goos=get_str_list(data, "goos"),
        goarch=get_str_list(data, "goarch"),
        goarm=get_str_list(data, "goarm"),
        flags=get_str_list(data, "flags"),
        ldflags=get_str_list(data, "ldflags"),
        env=_parse_env(get_str_list(data, "env")),
    )
    if not spec.binary_name:
        raise ShapeError(f"builds: cannot derive a binary name from main {main!r}")
    return spec


def _build_to_dict(spec: BuildSpec) -> StrDict:
    return _compact(
        {
            "main": spec.main,
            "output_name": spec.output_name,
            "disable_platform_suffix": spec.disable_platform_suffix,
            "goos": list(spec.goos),
            "goarch": list(spec.goarch),
            "goarm": list(spec.goarm),
            "flags": list(spec.flags),
            "ldflags": list(spec.ldflags),
            "env": [f"{k}={v}" for k, v in spec.env],
        }
    )


def _target_from_dict(data: StrDict) -> RemoteTarget:
    policy_text = get_str(data, "host_key_policy")
    if get_bool(data, "insecure_ignore_host_key"):
        policy = HostKeyPolicy.INSECURE
    elif policy_text is None:
        policy = HostKeyPolicy.TOFU
    else:
        try:
            policy = HostKeyPolicy(policy_text.lower())
        except ValueError:
            allowed = ", ".join(p.value for p in HostKeyPolicy)
            raise ShapeError(f"'host_key_policy' must be one of: {allowed}") from None

    return RemoteTarget(
        host=get_str(data, "server") or "",
        user=get_str(data, "user") or "",
        port=get_int(data, "port") or DEFAULT_SSH_PORT,
        key_path=get_str(data, "key_path"),
        key_raw=get_raw_str(data, "key_raw"),
        host_key_policy=policy,
        known_hosts=get_str(data, "known_hosts") or DEFAULT_KNOWN_HOSTS,
    )


def _sink_from_dict(data: StrDict) -> PublishSink:
    name = get_str(data, "name") or ""
    provider = (get_str(data, "provider") or "").lower()
    match provider:
        case "s3":
            return ObjectStorageSink(
                name=name,
                bucket=get_str(data, "bucket") or "",
                region=get_str(data, "region"),
                endpoint=get_str(data, "endpoint") or "",
                directory=get_str(data, "directory") or "",
            )
        case "ssh":
            return RemoteShellSink(
                name=name,
                target=_target_from_dict(data),
                directory=get_str(data, "directory") or "",
            )
        case _:
            return UnknownSink(name=name, provider=provider)


def _deploy_from_dict(data: StrDict) -> DeploySpec:
    provider = (get_str(data, "provider") or "").lower()
    target: RemoteTarget | UnsupportedProvider
    if provider == "ssh":
        target = _target_from_dict(data)
    else:
        target = UnsupportedProvider(provider=provider)

    alerts = get_table(data, "alerts") or {}
    return DeploySpec(
        name=get_str(data, "name") or "",
        target=target,
        commands=get_str_list(data, "commands"),
        alert_urls=get_str_list(alerts, "urls"),
    )


def _parse_yaml(path: Path) -> Result[StrDict, ConfigError]:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Err(
            ConfigError(
                f"Config file not found: {path}",
                path=path,
                hint="Run: crossrel config init",
            )
        )
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    try:
        data_obj: object = yaml.safe_load(text)
    except yaml.YAMLError as e:
        return Err(ConfigError(f"Invalid YAML syntax: {e}", path=path))

    if data_obj is None:
        return Ok({})
    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a mapping", path=path))
    return Ok(data)


def load_config(path: Path) -> Result[Manifest, ConfigError]:
    """Load and decode the release manifest.

    Returns:
        Ok(Manifest) on success, Err(ConfigError) on failure
    """
    result = _parse_yaml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Manifest.from_dict(result.value))
    except ShapeError as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def default_manifest(*, goos: str, goarch: str, main: str) -> Manifest:
    """Starter manifest written by ``config init``."""
    return Manifest(
        version=1,
        out_dir=DEFAULT_OUT_DIR,
        builds=(
            BuildSpec(
                main=main,
                goos=(goos,),
                goarch=(goarch,),
                flags=("-trimpath",),
                ldflags=(
                    "-s -w",
                    "-X main.version={{.Version}}",
                    "-X main.commit={{.Commit}}",
                    "-X main.buildDate={{.Date}}",
                ),
            ),
        ),
    )


def dump_manifest(manifest: Manifest) -> str:
    return yaml.safe_dump(manifest.to_dict(), sort_keys=False, indent=2, default_flow_style=False)
