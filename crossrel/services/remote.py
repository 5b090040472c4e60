"""Remote shell access through the OpenSSH client.

``ssh``, ``scp``, ``ssh-keyscan`` and ``ssh-keygen`` are run through the
process wrapper like any other external tool. Exit status 255 from ssh or
scp means the connection itself failed; any other non-zero status is the
remote command's own failure.

Host keys follow the target's ``HostKeyPolicy``. With ``tofu`` an unknown
host is probed with ``ssh-keyscan`` and its key is appended to the trust
store before connecting. That trusts whatever answers the first time, so
use ``strict`` with a pre-populated known_hosts file where that matters.
"""

from __future__ import annotations

import os
import shlex
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

from crossrel.core.config import DEFAULT_SSH_PORT, HostKeyPolicy, RemoteTarget, TimeoutsConfig
from crossrel.core.result import Err, Ok, Result
from crossrel.output.console import ConsoleProtocol
from crossrel.platform.paths import ensure_private_file, expand_user
from crossrel.platform.process import ProcessError, run

from .errors import InvalidTargetError, RemoteCommandError, RemoteConnectionError, UploadError

__all__ = [
    "RemoteShell",
    "ShellError",
    "ShellFactory",
    "SshSession",
    "TransferError",
    "ensure_host_trusted",
    "host_pattern",
    "validate_target",
]

SSH_CONNECTION_FAILURE = 255

type ShellError = RemoteCommandError | RemoteConnectionError
type TransferError = UploadError | RemoteConnectionError


class RemoteShell(Protocol):
    """Remote host session used by the publish and deploy stages."""

    def connect(self) -> Result[None, RemoteConnectionError]: ...

    def execute(self, command: str) -> Result[str, ShellError]: ...

    def make_dirs(self, directory: str) -> Result[None, ShellError]: ...

    def upload(self, source: Path, destination: str) -> Result[None, TransferError]: ...

    def close(self) -> None: ...


type ShellFactory = Callable[[RemoteTarget], RemoteShell]


def validate_target(name: str, target: RemoteTarget) -> Result[None, InvalidTargetError]:
    """Check the settings every remote connection needs, before connecting."""
    missing = [
        label
        for label, value in (("name", name), ("server", target.host), ("user", target.user))
        if not value
    ]
    if missing:
        return Err(InvalidTargetError(name=name, reason=f"missing {', '.join(missing)}"))
    if bool(target.key_path) == bool(target.key_raw):
        return Err(
            InvalidTargetError(name=name, reason="exactly one of key_path or key_raw must be set")
        )
    return Ok(None)


def _refused(target: RemoteTarget, reason: str) -> Err[RemoteConnectionError]:
    return Err(RemoteConnectionError(host=target.host, reason=reason))


def host_pattern(target: RemoteTarget) -> str:
    """Host as written in known_hosts (``[host]:port`` for non-default ports)."""
    if target.port == DEFAULT_SSH_PORT:
        return target.host
    return f"[{target.host}]:{target.port}"


def _is_known(target: RemoteTarget, known_hosts: Path, cwd: Path, timeout: float | None) -> bool:
    result = run(
        ["ssh-keygen", "-F", host_pattern(target), "-f", str(known_hosts)],
        cwd=cwd,
        timeout=timeout,
    )
    return isinstance(result, Ok) and bool(result.value.strip())


def ensure_host_trusted(
    target: RemoteTarget,
    *,
    console: ConsoleProtocol,
    cwd: Path,
    timeout: float | None = None,
) -> Result[None, RemoteConnectionError]:
    """Make sure the trust store knows the host before connecting.

    Creates the trust store (0600, parent 0700) when absent. An unknown host
    is probed and recorded under ``tofu`` and rejected under ``strict``.
    Nothing happens under ``insecure``.
    """
    if not target.host_key_policy.verifies:
        return Ok(None)

    known_hosts = expand_user(target.known_hosts)
    try:
        if ensure_private_file(known_hosts):
            console.info(f"Created {known_hosts}")
    except OSError as e:
        return _refused(target, f"cannot create {known_hosts}: {e}")

    if _is_known(target, known_hosts, cwd, timeout):
        return Ok(None)

    if target.host_key_policy == HostKeyPolicy.STRICT:
        return _refused(target, f"host key not found in {known_hosts}")

    console.info(f"Adding {target.host} to {known_hosts}")
    cmd = ["ssh-keyscan", "-H"]
    if target.port != DEFAULT_SSH_PORT:
        cmd += ["-p", str(target.port)]
    cmd.append(target.host)
    scanned = run(cmd, cwd=cwd, timeout=timeout)
    if isinstance(scanned, Err):
        return _refused(target, f"ssh-keyscan failed: {scanned.error}")
    keys = scanned.value.strip()
    if not keys:
        return _refused(target, "ssh-keyscan returned no host keys")

    try:
        with known_hosts.open("a", encoding="utf-8") as handle:
            handle.write(keys + "\n")
    except OSError as e:
        return _refused(target, f"cannot update {known_hosts}: {e}")
    return Ok(None)


class SshSession:
    """One logical connection to a remote host.

    ``connect`` runs the trust bootstrap and materialises an inline key into
    a private temporary file; ``close`` removes that file again.
    """

    def __init__(
        self,
        target: RemoteTarget,
        *,
        console: ConsoleProtocol,
        timeouts: TimeoutsConfig | None = None,
        cwd: Path | None = None,
    ) -> None:
        self.target = target
        self._console = console
        self._timeouts = timeouts or TimeoutsConfig()
        self._cwd = cwd or Path.cwd()
        self._identity: Path | None = None
        self._temp_key: Path | None = None

    def connect(self) -> Result[None, RemoteConnectionError]:
        trusted = ensure_host_trusted(
            self.target, console=self._console, cwd=self._cwd, timeout=self._timeouts.connect
        )
        if isinstance(trusted, Err):
            return trusted

        if self.target.key_raw:
            try:
                fd, name = tempfile.mkstemp(prefix="crossrel-key-")
                self._temp_key = Path(name)
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(self.target.key_raw.rstrip("\n") + "\n")
                os.chmod(self._temp_key, 0o600)
            except OSError as e:
                self.close()
                return _refused(self.target, f"cannot write identity file: {e}")
            self._identity = self._temp_key
        elif self.target.key_path:
            self._identity = expand_user(self.target.key_path)
        return Ok(None)

    def close(self) -> None:
        if self._temp_key is not None:
            self._temp_key.unlink(missing_ok=True)
            self._temp_key = None
        self._identity = None

    def _options(self) -> list[str]:
        opts = ["-o", "BatchMode=yes"]
        if self._identity is not None:
            opts += ["-i", str(self._identity), "-o", "IdentitiesOnly=yes"]
        if self.target.host_key_policy.verifies:
            known_hosts = expand_user(self.target.known_hosts)
            opts += ["-o", "StrictHostKeyChecking=yes", "-o", f"UserKnownHostsFile={known_hosts}"]
        else:
            opts += ["-o", "StrictHostKeyChecking=no", "-o", "UserKnownHostsFile=/dev/null"]
        if self._timeouts.connect:
            opts += ["-o", f"ConnectTimeout={max(1, int(self._timeouts.connect))}"]
        return opts

    def _connection_error(self, error: ProcessError) -> RemoteConnectionError:
        return RemoteConnectionError(host=self.target.host, reason=error.output or str(error))

    def execute(self, command: str) -> Result[str, ShellError]:
        """Run a command remotely; Ok carries its combined output."""
        cmd = ["ssh", *self._options(), "-p", str(self.target.port), self.target.address, command]
        result = run(
            cmd, cwd=self._cwd, timeout=self._timeouts.remote_command, merge_stderr=True
        )
        match result:
            case Ok(output):
                return Ok(output)
            case Err(e) if e.spawn_failed or e.returncode == SSH_CONNECTION_FAILURE:
                return Err(self._connection_error(e))
            case Err(e):
                return Err(
                    RemoteCommandError(
                        host=self.target.host,
                        command=command,
                        returncode=e.returncode,
                        output=e.output,
                    )
                )

    def make_dirs(self, directory: str) -> Result[None, ShellError]:
        result = self.execute(f"mkdir -p {shlex.quote(directory)}")
        if isinstance(result, Err):
            return result
        return Ok(None)

    def upload(self, source: Path, destination: str) -> Result[None, TransferError]:
        cmd = [
            "scp",
            *self._options(),
            "-P",
            str(self.target.port),
            str(source),
            f"{self.target.address}:{destination}",
        ]
        result = run(cmd, cwd=self._cwd, timeout=self._timeouts.upload)
        match result:
            case Ok(_):
                return Ok(None)
            case Err(e) if e.spawn_failed or e.returncode == SSH_CONNECTION_FAILURE:
                return Err(self._connection_error(e))
            case Err(e):
                reason = e.output or str(e)
                return Err(UploadError(source=source, destination=destination, reason=reason))
