"""Publish stage: upload the output directory to the configured sinks.

Sinks run one after another in manifest order. Every regular file at the
top level of the output directory is uploaded to ``<directory>/<name>``;
subdirectories are ignored. The first failed upload stops that sink.
Nothing already uploaded is removed.
"""

from __future__ import annotations

import os
import posixpath
from collections.abc import Mapping
from contextlib import closing
from pathlib import Path

from crossrel.core.config import (
    Manifest,
    ObjectStorageSink,
    PublishSink,
    RemoteShellSink,
    RemoteTarget,
    UnknownSink,
)
from crossrel.core.result import Err, Ok, Result
from crossrel.core.template import TemplateContext, TemplateError, render
from crossrel.output.console import ConsoleProtocol

from .errors import InvalidTargetError, OutputDirError, PipelineError, SinkNotFoundError, StageError
from .remote import ShellFactory, SshSession, validate_target
from .storage import Boto3Storage, Credentials, StorageFactory

__all__ = ["PublishService", "list_artifacts"]


def list_artifacts(out_dir: Path) -> Result[list[Path], OutputDirError]:
    """Regular files directly inside the output directory, by name."""
    try:
        entries = sorted(out_dir.iterdir(), key=lambda p: p.name)
    except OSError as e:
        return Err(OutputDirError(path=out_dir, reason=f"failed to read directory: {e}"))
    return Ok([p for p in entries if not p.is_dir()])


def _remote_directory(template: str, version: str) -> Result[str, TemplateError]:
    return render(template, TemplateContext.of(Version=version))


class PublishService:
    """Runs the ``publish`` command."""

    def __init__(
        self,
        *,
        root: Path,
        manifest: Manifest,
        version: str,
        console: ConsoleProtocol,
        environ: Mapping[str, str] | None = None,
        storage_factory: StorageFactory = Boto3Storage.connect,
        shell_factory: ShellFactory | None = None,
    ) -> None:
        self._root = root
        self._manifest = manifest
        self._version = version
        self._console = console
        self._environ = environ if environ is not None else os.environ
        self._storage_factory = storage_factory
        self._shell_factory = shell_factory or self._ssh_session

    @property
    def out_dir(self) -> Path:
        return self._root / self._manifest.out_dir

    def _ssh_session(self, target: RemoteTarget) -> SshSession:
        return SshSession(
            target, console=self._console, timeouts=self._manifest.timeouts, cwd=self._root
        )

    def select(self, name: str | None) -> Result[list[PublishSink], StageError]:
        sinks = list(self._manifest.sinks)
        if name is None:
            return Ok(sinks)
        matched = [sink for sink in sinks if sink.name == name]
        if not matched:
            available = tuple(sink.name for sink in sinks if sink.name)
            return Err(StageError("publish", SinkNotFoundError(name=name, available=available)))
        return Ok(matched)

    def run(self, name: str | None = None) -> Result[list[str], StageError]:
        """Publish to every selected sink.

        Returns:
            Ok(destinations written), or the first failure wrapped with the
            name of the sink that hit it.
        """
        selected = self.select(name)
        if isinstance(selected, Err):
            return selected

        uploaded: list[str] = []
        for sink in selected.value:
            self._console.header(f"Publishing to: {sink.name}")
            match sink:
                case ObjectStorageSink():
                    result = self._publish_object_storage(sink)
                case RemoteShellSink():
                    result = self._publish_remote_shell(sink)
                case UnknownSink(provider=provider):
                    self._console.warning(f"Skipping unknown provider: {provider or '(none)'}")
                    continue
            if isinstance(result, Err):
                return Err(StageError("publish", result.error, sink.name))
            uploaded.extend(result.value)
        return Ok(uploaded)

    def _publish_object_storage(self, sink: ObjectStorageSink) -> Result[list[str], PipelineError]:
        credentials = Credentials.from_env(self._environ)
        if isinstance(credentials, Err):
            return credentials

        directory = _remote_directory(sink.directory, self._version)
        if isinstance(directory, Err):
            return directory

        connected = self._storage_factory(
            sink.endpoint, sink.region, credentials.value, self._manifest.timeouts.storage
        )
        if isinstance(connected, Err):
            return connected
        storage = connected.value

        exists = storage.bucket_exists(sink.bucket)
        if isinstance(exists, Err):
            return exists
        if not exists.value:
            self._console.info(f"Bucket {sink.bucket} does not exist, creating...")
            created = storage.create_bucket(sink.bucket)
            if isinstance(created, Err):
                return created

        artifacts = list_artifacts(self.out_dir)
        if isinstance(artifacts, Err):
            return artifacts

        uploaded: list[str] = []
        for path in artifacts.value:
            key = posixpath.join(directory.value, path.name)
            self._console.info(f"Uploading {path} to s3://{sink.bucket}/{key}")
            put = storage.put_object(sink.bucket, key, path)
            if isinstance(put, Err):
                return put
            uploaded.append(f"s3://{sink.bucket}/{key}")
        return Ok(uploaded)

    def _publish_remote_shell(self, sink: RemoteShellSink) -> Result[list[str], PipelineError]:
        valid = validate_target(sink.name, sink.target)
        if isinstance(valid, Err):
            return valid
        if not sink.directory:
            return Err(InvalidTargetError(name=sink.name, reason="missing directory"))

        directory = _remote_directory(sink.directory, self._version)
        if isinstance(directory, Err):
            return directory

        with closing(self._shell_factory(sink.target)) as shell:
            connected = shell.connect()
            if isinstance(connected, Err):
                return connected

            made = shell.make_dirs(directory.value)
            if isinstance(made, Err):
                return made

            artifacts = list_artifacts(self.out_dir)
            if isinstance(artifacts, Err):
                return artifacts

            uploaded: list[str] = []
            for path in artifacts.value:
                remote_path = posixpath.join(directory.value, path.name)
                self._console.info(f"Uploading {path} to {sink.target.host}:{remote_path}")
                sent = shell.upload(path, remote_path)
                if isinstance(sent, Err):
                    return sent
                uploaded.append(f"{sink.target.host}:{remote_path}")
        return Ok(uploaded)
