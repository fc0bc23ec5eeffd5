"""Linux sandbox configuration: bubblewrap command lines and Landlock snippets."""

from __future__ import annotations

from pathlib import Path

from railroad.types import FenceConfig

_FALLBACK_HOME = "/home/user"
_BWRAP_RO_SYSTEM_PATHS = ("/usr", "/bin", "/sbin", "/lib", "/lib64", "/opt", "/etc")
_LANDLOCK_RO_SYSTEM_PATHS = ("/usr", "/bin", "/lib", "/opt", "/etc")
_SENSITIVE_DIRS = (".ssh", ".aws", ".gnupg")
_ARG_SEPARATOR = " \\\n  "


def _home_dir(fallback: str) -> str:
    try:
        return str(Path.home())
    except (RuntimeError, KeyError):
        return fallback


def expand_path(path: str, home: str) -> str:
    """Expand a leading ``~/`` or ``$HOME`` to the given home directory."""
    if path.startswith("~/"):
        return f"{home}{path[1:]}"
    if path.startswith("$HOME"):
        return path.replace("$HOME", home)
    return path


def generate_bwrap_command(config: FenceConfig, cwd: str) -> str:
    """Build a bubblewrap command line that enforces the fence config.

    The project directory is writable, the home directory is read-only and
    denied paths are shadowed by empty tmpfs mounts. Arguments are joined
    with shell line continuations.
    """
    home = _home_dir(_FALLBACK_HOME)
    args = ["bwrap"]

    args.extend(f"--ro-bind {path} {path}" for path in _BWRAP_RO_SYSTEM_PATHS)

    args.append("--proc /proc")
    args.append("--dev /dev")
    args.append("--tmpfs /tmp")

    args.append(f"--bind {cwd} {cwd}")

    for path in config.allowed_paths:
        expanded = expand_path(path, home)
        args.append(f"--bind {expanded} {expanded}")

    args.append(f"--ro-bind {home} {home}")

    denied = [expand_path(path, home) for path in config.denied_paths]
    args.extend(f"--tmpfs {path}" for path in denied)
    for sensitive in _SENSITIVE_DIRS:
        full = f"{home}/{sensitive}"
        if full not in denied:
            args.append(f"--tmpfs {full}")

    args.append("--unshare-net")
    args.append(f"--chdir {cwd}")
    args.append("--")

    return _ARG_SEPARATOR.join(args)


def _full_access_rule(path: str) -> str:
    return (
        "    ruleset.add_rule(PathBeneath::new(\n"
        f"        PathFd::new(\"{path}\")?,\n"
        "        AccessFs::from_all(abi),\n"
        "    ))?;\n"
    )


def _read_only_rule(path: str) -> str:
    return (
        "    ruleset.add_rule(PathBeneath::new(\n"
        f"        PathFd::new(\"{path}\")?,\n"
        "        AccessFs::ReadFile | AccessFs::ReadDir | AccessFs::Execute,\n"
        "    ))?;\n"
    )


def generate_landlock_snippet(config: FenceConfig, cwd: str) -> str:
    """Generate a Landlock enforcement snippet for the user's reference."""
    home = _home_dir(_FALLBACK_HOME)
    parts = [
        "// Landlock enforcement for Railroad\n",
        "// Requires: landlock = \"0.4\" in Cargo.toml\n",
        "// Requires: Linux kernel 5.13+\n\n",
        "use landlock::{\n",
        "    Access, AccessFs, PathBeneath, PathFd,\n",
        "    Ruleset, RulesetAttr, RulesetCreatedAttr, ABI,\n",
        "};\n\n",
        "fn enforce_sandbox() -> Result<(), Box<dyn std::error::Error>> {\n",
        "    let abi = ABI::V3;\n",
        "    let mut ruleset = Ruleset::default()\n",
        "        .handle_access(AccessFs::from_all(abi))?\n",
        "        .create()?;\n\n",
        "    // Project directory: full access\n",
        _full_access_rule(cwd),
        "\n",
        "    // System paths: read-only\n",
    ]
    parts.extend(_read_only_rule(path) for path in _LANDLOCK_RO_SYSTEM_PATHS)
    parts.append("\n")

    parts.extend(_full_access_rule(expand_path(path, home)) for path in config.allowed_paths)

    parts.extend(
        [
            "    // Denied paths (~/.ssh, ~/.aws, etc.) are not in the ruleset\n",
            "    // = denied by default (Landlock is default-deny)\n\n",
            "    // Enforce — all child processes inherit this sandbox\n",
            "    ruleset.restrict_self()?;\n",
            "    Ok(())\n",
            "}\n",
        ]
    )
    return "".join(parts)