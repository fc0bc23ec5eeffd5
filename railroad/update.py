"""Release checks: security-tag and main-branch polling, and latest-release lookup."""

from __future__ import annotations

import json
import os
import re
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

REMOTE_URL = "https://github.com/railroaddev/railroad.git"
GITHUB_REPO = "railroaddev/railroad"
CHECK_INTERVAL_SECS = 7 * 24 * 60 * 60
_CURRENT_VERSION = "0.3.4"
_UNKNOWN_HASH = "unknown"
_BUILD_HASH_ENV = "RAILROAD_GIT_HASH"
_MARKER = Path(".railroad") / "last-update-check"
_UNSIGNED = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1

SECURITY_MESSAGE = (
    "⚠ A security patch for Railroad is available. "
    "Run `railroad update` to update immediately."
)
UPDATE_MESSAGE = (
    "A new version of Railroad is available. "
    "Run `railroad update` to update."
)


class UpdateError(Exception):
    """Release information could not be fetched or understood."""


@dataclass(frozen=True)
class ReleaseInfo:
    """The latest published release."""

    tag: str
    version: str
    body: str


def _build_hash() -> str:
    """The commit this installation was built from, or ``unknown``."""
    return os.environ.get(_BUILD_HASH_ENV) or _UNKNOWN_HASH


def current_version() -> str:
    """Return the installed version string."""
    return _CURRENT_VERSION


def _parse_version(version: str) -> list[int]:
    parts = []
    for piece in version.split("."):
        if _UNSIGNED.fullmatch(piece):
            value = int(piece)
            if value <= _U64_MAX:
                parts.append(value)
    return parts


def is_newer(local: str, remote: str) -> bool:
    """Return True if the dotted version ``remote`` is newer than ``local``."""
    return _parse_version(remote) > _parse_version(local)


def fetch_latest_release() -> ReleaseInfo:
    """Fetch the latest release's tag, version and notes from GitHub."""
    url = f"https://api.github.com/repos/{GITHUB_REPO}/releases/latest"
    try:
        result = subprocess.run(
            ["curl", "-fsSL", "-H", "Accept: application/vnd.github+json", url],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except OSError as exc:
        raise UpdateError(f"Failed to run curl: {exc}") from exc

    if result.returncode != 0:
        raise UpdateError("Could not fetch release info from GitHub")

    try:
        body = result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise UpdateError("Invalid UTF-8 in response") from exc

    try:
        data = json.loads(body)
    except ValueError as exc:
        raise UpdateError(f"Failed to parse release JSON: {exc}") from exc

    tag = data.get("tag_name") if isinstance(data, dict) else None
    if not isinstance(tag, str):
        raise UpdateError("No tag_name in release")

    notes = data.get("body")
    return ReleaseInfo(
        tag=tag,
        version=tag.removeprefix("v"),
        body=notes if isinstance(notes, str) else "",
    )


def _remote_ref_hash(ref: str) -> str | None:
    """Return the commit hash a remote ref points at, or None if unavailable."""
    try:
        result = subprocess.run(
            ["git", "ls-remote", REMOTE_URL, ref],
            env={**os.environ, "GIT_TERMINAL_PROMPT": "0"},
            stdin=subprocess.DEVNULL,
            capture_output=True,
            check=False,
        )
    except OSError:
        return None
    if result.returncode != 0:
        return None
    try:
        words = result.stdout.decode("utf-8").split()
    except UnicodeDecodeError:
        return None
    return words[0] if words else None


def _same_commit(remote_hash: str, build_hash: str) -> bool:
    return remote_hash.startswith(build_hash) or build_hash.startswith(remote_hash)


def _check_security_tag() -> str | None:
    build_hash = _build_hash()
    if build_hash == _UNKNOWN_HASH:
        return None
    security_hash = _remote_ref_hash("refs/tags/security")
    if not security_hash or _same_commit(security_hash, build_hash):
        return None
    return SECURITY_MESSAGE


def _check_main_branch(cwd: Path) -> str | None:
    marker = cwd / _MARKER
    try:
        elapsed = time.time() - marker.stat().st_mtime
    except OSError:
        elapsed = None
    if elapsed is not None and 0 <= elapsed < CHECK_INTERVAL_SECS:
        return None

    # The marker is touched whatever the outcome, to keep the check weekly.
    try:
        marker.parent.mkdir(parents=True, exist_ok=True)
        marker.write_text("")
    except OSError:
        pass

    build_hash = _build_hash()
    if build_hash == _UNKNOWN_HASH:
        return None
    remote_hash = _remote_ref_hash("refs/heads/main")
    if remote_hash is None or _same_commit(remote_hash, build_hash):
        return None
    return UPDATE_MESSAGE


def check_for_update(cwd: str | os.PathLike[str]) -> str | None:
    """Return a message if an update is available.

    The security tag is checked on every call; the main branch at most once a week.
    """
    message = _check_security_tag()
    if message is not None:
        return message
    return _check_main_branch(Path(cwd))