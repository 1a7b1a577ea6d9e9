"""
Locate Chrome's default-profile History database for the running platform.

Native macOS, Windows and Linux join the user's home directory with a fixed
template. Under WSL the guest home is useless: Chrome lives on the Windows
host, so the host account name is looked up through ``cmd.exe`` and the path
points into the ``/mnt/c`` view of that user's profile.
"""
from __future__ import annotations

import logging
import platform
import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .errors import IdentityResolutionFailed, UnsupportedPlatform

log = logging.getLogger(__name__)


class OsKind(str, Enum):
    MACOS = "macOS"
    WINDOWS = "Windows"
    LINUX = "Linux"
    LINUX_ON_WINDOWS = "LinuxOnWindows"


_SYSTEM_KINDS = {
    "Darwin": OsKind.MACOS,
    "Windows": OsKind.WINDOWS,
    "Linux": OsKind.LINUX,
}

_WINDOWS_PROFILE = ("AppData", "Local", "Google", "Chrome", "User Data", "Default", "History")

_PROFILE_TEMPLATES: dict[OsKind, tuple[str, ...]] = {
    OsKind.MACOS: ("Library", "Application Support", "Google", "Chrome", "Default", "History"),
    OsKind.WINDOWS: _WINDOWS_PROFILE,
    OsKind.LINUX: (".config", "google-chrome", "Default", "History"),
    OsKind.LINUX_ON_WINDOWS: _WINDOWS_PROFILE,
}

# Where the Windows host's user profiles are mounted inside the WSL guest.
HOST_USERS_ROOT = Path("/mnt/c/Users")

_PROC_VERSION = Path("/proc/version")
_HOST_USERNAME_CMD = ["cmd.exe", "/c", "echo %USERNAME%"]
_HOST_USERNAME_TIMEOUT = 10.0


@dataclass(frozen=True)
class PlatformProfile:
    os_kind: OsKind
    history_file_path: Path


def _read_proc_version() -> str:
    try:
        return _PROC_VERSION.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def detect_os_kind(
    system: str | None = None,
    release: str | None = None,
    proc_version: str | None = None,
) -> OsKind:
    """Classify the running OS; Linux kernels built by Microsoft count as WSL."""
    system = platform.system() if system is None else system
    kind = _SYSTEM_KINDS.get(system)
    if kind is None:
        raise UnsupportedPlatform(f"Unsupported platform: {system or 'unknown'}")
    if kind is OsKind.LINUX:
        release = platform.release() if release is None else release
        proc_version = _read_proc_version() if proc_version is None else proc_version
        if "microsoft" in release.lower() or "microsoft" in proc_version.lower():
            return OsKind.LINUX_ON_WINDOWS
    return kind


def resolve_host_username(
    runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
) -> str:
    """Ask the Windows host (from inside WSL) for the logged-in account name."""
    try:
        proc = runner(
            _HOST_USERNAME_CMD,
            capture_output=True,
            text=True,
            timeout=_HOST_USERNAME_TIMEOUT,
            check=False,
        )
    except (OSError, subprocess.SubprocessError) as exc:
        raise IdentityResolutionFailed(
            f"Could not get the Windows username from WSL: {exc}"
        ) from exc
    if proc.returncode != 0:
        raise IdentityResolutionFailed(
            f"Could not get the Windows username from WSL: cmd.exe exited with {proc.returncode}"
        )
    username = (proc.stdout or "").strip()
    # cmd.exe echoes the literal token back when the variable is not set.
    if not username or "%" in username or any(c in username for c in "\\/\r\n"):
        raise IdentityResolutionFailed(
            f"Could not get the Windows username from WSL: unexpected output {username!r}"
        )
    return username


def history_path_for(
    os_kind: OsKind,
    home: Path | None = None,
    host_username: str | None = None,
) -> Path:
    parts = _PROFILE_TEMPLATES[os_kind]
    if os_kind is OsKind.LINUX_ON_WINDOWS:
        if not host_username:
            raise IdentityResolutionFailed("A Windows username is required under WSL")
        return HOST_USERS_ROOT.joinpath(host_username, *parts)
    base = Path.home() if home is None else home
    return base.joinpath(*parts)


def resolve_profile(
    *,
    system: str | None = None,
    home: Path | None = None,
    username_resolver: Callable[[], str] = resolve_host_username,
) -> PlatformProfile:
    os_kind = detect_os_kind(system)
    host_username = username_resolver() if os_kind is OsKind.LINUX_ON_WINDOWS else None
    path = history_path_for(os_kind, home=home, host_username=host_username)
    log.debug("Resolved %s history path: %s", os_kind.value, path)
    return PlatformProfile(os_kind=os_kind, history_file_path=path)


def resolve_history_path(
    *,
    system: str | None = None,
    home: Path | None = None,
    username_resolver: Callable[[], str] = resolve_host_username,
) -> Path:
    profile = resolve_profile(system=system, home=home, username_resolver=username_resolver)
    return profile.history_file_path
