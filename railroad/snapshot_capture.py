"""Pre-modification file snapshots and their per-session manifests."""

from __future__ import annotations

import hashlib
import json
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from railroad.types import SnapshotEntry

_NEW_FILE_HASH = "__new_file_____0"
_HASH_LEN = 16
_ID_LEN = 8
_MANIFEST_NAME = "manifest.jsonl"


class SnapshotError(Exception):
    """A snapshot could not be taken, read or restored."""


def _expand_home(path: str) -> str:
    if path.startswith("~/"):
        try:
            home = Path.home()
        except (RuntimeError, KeyError):
            return path
        return f"{home}{path[1:]}"
    return path


def _append_manifest(session_dir: Path, entry: SnapshotEntry) -> None:
    line = json.dumps(entry.to_dict(), separators=(",", ":"), ensure_ascii=False)
    try:
        with (session_dir / _MANIFEST_NAME).open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    except OSError as exc:
        raise SnapshotError(f"Failed to write manifest: {exc}") from exc


def capture_snapshot(
    snapshot_dir: str | os.PathLike[str],
    session_id: str,
    tool_use_id: str,
    file_path: str | os.PathLike[str],
) -> SnapshotEntry:
    """Save a file's current content before it is modified and record it in the manifest.

    A file that does not exist yet is recorded with ``existed`` false and no content.
    """
    file_path = os.fspath(file_path)
    session_dir = Path(snapshot_dir) / session_id
    try:
        session_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SnapshotError(f"Failed to create snapshot dir: {exc}") from exc

    target = Path(_expand_home(file_path))
    existed = os.path.exists(target)

    if existed:
        try:
            content = target.read_bytes()
        except OSError as exc:
            raise SnapshotError(f"Failed to read file for snapshot: {exc}") from exc
        digest = hashlib.sha256(content).hexdigest()[:_HASH_LEN]
        snap_path = session_dir / f"{digest}.snapshot"
        if not os.path.exists(snap_path):
            try:
                snap_path.write_bytes(content)
            except OSError as exc:
                raise SnapshotError(f"Failed to write snapshot: {exc}") from exc
    else:
        digest = _NEW_FILE_HASH

    entry = SnapshotEntry(
        id=str(uuid.uuid4())[:_ID_LEN],
        timestamp=datetime.now(timezone.utc).isoformat(),
        session_id=session_id,
        tool_use_id=tool_use_id,
        file_path=file_path,
        hash=digest,
        existed=existed,
    )
    _append_manifest(session_dir, entry)
    return entry


def read_manifest(snapshot_dir: str | os.PathLike[str], session_id: str) -> list[SnapshotEntry]:
    """Read a session's manifest in recorded order; malformed lines are skipped."""
    manifest_path = Path(snapshot_dir) / session_id / _MANIFEST_NAME
    if not os.path.exists(manifest_path):
        return []
    try:
        contents = manifest_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"Failed to read manifest: {exc}") from exc

    entries = []
    for line in contents.splitlines():
        if not line.strip():
            continue
        try:
            entries.append(SnapshotEntry.from_dict(json.loads(line)))
        except ValueError:
            continue
    return entries