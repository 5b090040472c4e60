"""Path helpers: home directory, ``~`` expansion, private files."""

from __future__ import annotations

import os
import tempfile
from functools import lru_cache
from pathlib import Path

__all__ = [
    "atomic_write_text",
    "ensure_private_file",
    "expand_user",
    "home",
]


@lru_cache(maxsize=1)
def home() -> Path:
    """User's home directory, honouring HOME/USERPROFILE for CI containers."""
    for var in ("HOME", "USERPROFILE"):
        value = os.environ.get(var)
        if value:
            return Path(value)
    return Path.home()


def expand_user(path: str) -> Path:
    """Expand a leading ``~/`` (or a bare ``~``) to the home directory."""
    if path == "~":
        return home()
    if path.startswith("~/"):
        return home() / path[2:]
    return Path(path)


def ensure_private_file(path: Path) -> bool:
    """Create an empty 0600 file (and a 0700 parent) if it does not exist.

    Returns:
        True if the file was created.

    Raises:
        OSError: The directory or file cannot be created.
    """
    if path.exists():
        return False
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    os.close(fd)
    return True


def atomic_write_text(path: Path, content: str, *, encoding: str = "utf-8") -> None:
    """Write text via a temp file in the same directory, then replace."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding=encoding, newline="") as handle:
            handle.write(content)
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)
