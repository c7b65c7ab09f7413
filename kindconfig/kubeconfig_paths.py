"""Locating KUBECONFIG files the way kubectl does, and locking them."""

from __future__ import annotations

import os
import posixpath
import stat
import sys
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager, suppress

__all__ = [
    "KUBECONFIG_ENV",
    "paths",
    "path_for_merge",
    "home_dir",
    "file_exists",
    "discard_empty_and_duplicates",
    "lock_name",
    "lock_file",
    "unlock_file",
    "locked",
]

KUBECONFIG_ENV = "KUBECONFIG"

GetEnv = Callable[[str], str]


def _current_os() -> str:
    return "windows" if os.name == "nt" else sys.platform


def paths(explicit_path: str, get_env: GetEnv) -> list[str]:
    """Return the kubeconfig paths to consider.

    An explicit path wins outright; otherwise the entries of $KUBECONFIG
    (empty and duplicate entries dropped); otherwise $HOME/.kube/config.
    """
    if explicit_path:
        return [explicit_path]

    env_value = get_env(KUBECONFIG_ENV)
    found = discard_empty_and_duplicates(env_value.split(os.pathsep) if env_value else [])
    if found:
        return found

    home = home_dir(_current_os(), get_env)
    return [posixpath.normpath(posixpath.join(home, ".kube", "config"))]


def path_for_merge(explicit_path: str, get_env: GetEnv) -> str:
    """Return the file kubectl would merge into."""
    candidates = paths(explicit_path, get_env)
    if len(candidates) == 1:
        return candidates[0]
    return next((p for p in candidates if file_exists(p)), candidates[-1])


def file_exists(filename: str | os.PathLike[str]) -> bool:
    """Return True if filename exists and is not a directory."""
    try:
        info = os.stat(filename)
    except OSError:
        return False
    return not stat.S_ISDIR(info.st_mode)


def discard_empty_and_duplicates(paths: Iterable[str]) -> list[str]:
    """Return the non-empty entries of paths, first occurrence only, in order."""
    return list(dict.fromkeys(p for p in paths if p))


def home_dir(os_name: str, get_env: GetEnv) -> str:
    """Return the current user's home directory.

    On Windows the first of HOME, HOMEDRIVE+HOMEPATH, USERPROFILE holding a
    .kube/config file wins; failing that the first of HOME, USERPROFILE,
    HOMEDRIVE+HOMEPATH that is a writeable directory, then the first that
    exists, then the first that is set. Elsewhere it is simply $HOME.
    """
    if os_name != "windows":
        return get_env("HOME")

    home = get_env("HOME")
    home_drive, home_path = get_env("HOMEDRIVE"), get_env("HOMEPATH")
    drive_path = home_drive + home_path if home_drive and home_path else ""
    user_profile = get_env("USERPROFILE")

    for candidate in (home, drive_path, user_profile):
        if candidate and os.path.lexists(os.path.join(candidate, ".kube", "config")):
            return candidate

    first_set = ""
    first_existing = ""
    for candidate in (home, user_profile, drive_path):
        if not candidate:
            continue
        first_set = first_set or candidate
        try:
            info = os.stat(candidate)
        except OSError:
            continue
        first_existing = first_existing or candidate
        if stat.S_ISDIR(info.st_mode) and info.st_mode & stat.S_IWUSR:
            return candidate

    return first_existing or first_set


def lock_name(filename: str | os.PathLike[str]) -> str:
    """Return the name of the lock file guarding filename."""
    return os.fspath(filename) + ".lock"


def lock_file(filename: str | os.PathLike[str]) -> None:
    """Create the lock file for filename, failing if it already exists."""
    directory = os.path.dirname(os.fspath(filename)) or "."
    if not os.path.exists(directory):
        os.makedirs(directory, mode=0o755, exist_ok=True)
    fd = os.open(lock_name(filename), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0)
    os.close(fd)


def unlock_file(filename: str | os.PathLike[str]) -> None:
    """Remove the lock file for filename."""
    os.remove(lock_name(filename))


@contextmanager
def locked(filename: str | os.PathLike[str]) -> Iterator[None]:
    """Hold the lock for filename for the duration of the block."""
    lock_file(filename)
    try:
        yield
    finally:
        with suppress(OSError):
            unlock_file(filename)