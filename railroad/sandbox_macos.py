"""macOS sandbox-exec profiles generated from the fence config."""

from __future__ import annotations

from pathlib import Path

from railroad.sandbox_linux import expand_path
from railroad.types import FenceConfig

_FALLBACK_HOME = "/Users/unknown"
_RO_SYSTEM_PATHS = (
    "/usr",
    "/bin",
    "/sbin",
    "/opt/homebrew",
    "/Library/Frameworks",
    "/System",
    "/private/var/db",
    "/private/etc",
)
_SENSITIVE_DIRS = (".ssh", ".aws", ".gnupg")


def _home_dir() -> str:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError):
        return _FALLBACK_HOME


def generate_profile(config: FenceConfig, cwd: str) -> str:
    """Generate a Seatbelt profile (.sb) for ``sandbox-exec -f``.

    Everything is denied by default; the project directory is read-write,
    system paths are read-only, sensitive directories are explicitly denied
    and network access is limited to HTTP(S) out and localhost in.
    """
    home = _home_dir()
    parts = [
        ";; Railroad OS-level sandbox profile\n",
        ";; Generated from railroad.yaml fence config\n",
        ";; Usage: sandbox-exec -f this-file.sb -- sh -c \"command\"\n",
        "(version 1)\n",
        "(deny default)\n\n",
        ";; Allow process execution and signals\n",
        "(allow process-exec)\n",
        "(allow process-fork)\n",
        "(allow signal)\n",
        "(allow sysctl-read)\n\n",
        ";; Allow IPC (required for process communication)\n",
        "(allow mach-lookup)\n",
        "(allow ipc-posix-shm-read-data)\n",
        "(allow ipc-posix-shm-write-data)\n\n",
        ";; Read-only system paths\n",
    ]
    parts.extend(f'(allow file-read* (subpath "{path}"))\n' for path in _RO_SYSTEM_PATHS)
    parts.append("\n")

    parts.extend(
        [
            ";; Device access\n",
            '(allow file-read* file-write* (subpath "/dev"))\n\n',
            ";; Temporary files\n",
            '(allow file-read* file-write* (subpath "/tmp"))\n',
            '(allow file-read* file-write* (subpath "/private/tmp"))\n',
            f'(allow file-read* file-write* (subpath "{home}/Library/Caches"))\n\n',
            ";; Development toolchains\n",
            f'(allow file-read* (subpath "{home}/.cargo"))\n',
            f'(allow file-read* (subpath "{home}/.rustup"))\n',
            f'(allow file-read* (subpath "{home}/.nvm"))\n\n',
            ";; Project directory (full access)\n",
            f'(allow file-read* file-write* (subpath "{cwd}"))\n\n',
        ]
    )

    if config.allowed_paths:
        parts.append(";; Additional allowed paths from config\n")
        parts.extend(
            f'(allow file-read* file-write* (subpath "{expand_path(path, home)}"))\n'
            for path in config.allowed_paths
        )
        parts.append("\n")

    # Denies come after allows: in SBPL a later deny takes precedence.
    parts.append(";; Denied paths (sensitive directories)\n")
    denied = [expand_path(path, home) for path in config.denied_paths]
    parts.extend(f'(deny file-read* file-write* (subpath "{path}"))\n' for path in denied)
    for sensitive in _SENSITIVE_DIRS:
        full = f"{home}/{sensitive}"
        if full not in denied:
            parts.append(f'(deny file-read* file-write* (subpath "{full}"))\n')
    parts.append("\n")

    parts.extend(
        [
            ";; Network policy (deny by default, allow specific)\n",
            "(deny network*)\n",
            '(allow network-outbound (remote tcp "*:443"))\n',
            '(allow network-outbound (remote tcp "*:80"))\n',
            '(allow network-inbound (local tcp "localhost:*"))\n',
            '(allow network-bind (local tcp "localhost:*"))\n',
        ]
    )
    return "".join(parts)


def shell_escape(s: str) -> str:
    """Quote a string for POSIX sh using single quotes."""
    return "'" + s.replace("'", "'\\''") + "'"


def wrap_command(profile_path: str, command: str) -> str:
    """Build the sandbox-exec command line that runs ``command`` under a profile."""
    return f"sandbox-exec -f {shell_escape(profile_path)} -- sh -c {shell_escape(command)}"