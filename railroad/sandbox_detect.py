"""Detection of the OS-level sandbox available on this machine."""

from __future__ import annotations

import re
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

_OSRELEASE = "/proc/sys/kernel/osrelease"
_LANDLOCK_ABI = 3
_U32_MAX = 2**32 - 1
_UNSIGNED = re.compile(r"\+?[0-9]+")


@dataclass(frozen=True)
class SandboxCapability:
    """A sandbox technology; ``abi_version`` is set for Linux Landlock only."""

    MACOS_SANDBOX_EXEC: ClassVar[str] = "macos-sandbox-exec"
    LINUX_LANDLOCK: ClassVar[str] = "linux-landlock"
    NONE: ClassVar[str] = "none"

    kind: str = NONE
    abi_version: int | None = None

    def __post_init__(self) -> None:
        if self.kind not in (self.MACOS_SANDBOX_EXEC, self.LINUX_LANDLOCK, self.NONE):
            raise ValueError(f"unknown sandbox kind: {self.kind!r}")
        if self.kind == self.LINUX_LANDLOCK:
            if self.abi_version is None:
                raise ValueError("Landlock capability needs an ABI version")
        elif self.abi_version is not None:
            raise ValueError(f"{self.kind} capability carries no ABI version")


def _parse_u32(text: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        return 0
    value = int(text)
    return value if value <= _U32_MAX else 0


def _check_sandbox_exec() -> bool:
    try:
        result = subprocess.run(
            ["sandbox-exec", "-n", "no-network", "true"],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except OSError:
        return False
    return result.returncode == 0


def _check_landlock() -> int | None:
    try:
        release = Path(_OSRELEASE).read_text()
    except (OSError, UnicodeDecodeError):
        return None
    parts = release.strip().split(".")
    if len(parts) < 2:
        return None
    major, minor = _parse_u32(parts[0]), _parse_u32(parts[1])
    if major > 5 or (major == 5 and minor >= 13):
        return _LANDLOCK_ABI
    return None


def detect_sandbox() -> SandboxCapability:
    """Detect which sandbox technology this system offers."""
    if sys.platform == "darwin" and _check_sandbox_exec():
        return SandboxCapability(SandboxCapability.MACOS_SANDBOX_EXEC)
    if sys.platform.startswith("linux"):
        abi = _check_landlock()
        if abi is not None:
            return SandboxCapability(SandboxCapability.LINUX_LANDLOCK, abi)
    return SandboxCapability(SandboxCapability.NONE)


def describe_capability(cap: SandboxCapability) -> str:
    """Describe a sandbox capability in one line."""
    if cap.kind == SandboxCapability.MACOS_SANDBOX_EXEC:
        return "macOS sandbox-exec (Seatbelt) — kernel-level, zero overhead, built-in"
    if cap.kind == SandboxCapability.LINUX_LANDLOCK:
        return (
            f"Linux Landlock ABI v{cap.abi_version} — kernel-level, zero overhead, built-in"
        )
    return "No OS-level sandbox available — falling back to string-based fence"