"""Restore files from the snapshots recorded in a session's manifest."""

from __future__ import annotations

import os
from pathlib import Path

from railroad.snapshot_capture import SnapshotError, read_manifest
from railroad.types import SnapshotEntry


def _restore_entry(snapshot_dir: Path, entry: SnapshotEntry) -> str:
    """Put a file back in the state a snapshot entry recorded."""
    target = Path(entry.file_path)

    if not entry.existed:
        if os.path.exists(target):
            try:
                target.unlink()
            except OSError as exc:
                raise SnapshotError(f"Failed to remove {entry.file_path}: {exc}") from exc
        return f"Removed {entry.file_path} (didn't exist before)"

    snap_path = snapshot_dir / entry.session_id / f"{entry.hash}.snapshot"
    if not os.path.exists(snap_path):
        raise SnapshotError(f"Snapshot file missing for {entry.file_path}")

    try:
        content = snap_path.read_bytes()
    except OSError as exc:
        raise SnapshotError(f"Failed to read snapshot: {exc}") from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise SnapshotError(f"Failed to create directory: {exc}") from exc

    try:
        target.write_bytes(content)
    except OSError as exc:
        raise SnapshotError(f"Failed to restore {entry.file_path}: {exc}") from exc

    return f"Restored {entry.file_path} from snapshot {entry.id}"


def rollback_by_id(
    snapshot_dir: str | os.PathLike[str], session_id: str, snapshot_id: str
) -> str:
    """Restore the file recorded by one snapshot."""
    snapshot_dir = Path(snapshot_dir)
    manifest = read_manifest(snapshot_dir, session_id)
    entry = next((e for e in manifest if e.id == snapshot_id), None)
    if entry is None:
        raise SnapshotError(f"Snapshot '{snapshot_id}' not found in session '{session_id}'")
    return _restore_entry(snapshot_dir, entry)


def rollback_file(
    snapshot_dir: str | os.PathLike[str],
    session_id: str,
    file_path: str | os.PathLike[str],
) -> str:
    """Restore a file from its most recent snapshot in the session."""
    snapshot_dir = Path(snapshot_dir)
    file_path = os.fspath(file_path)
    manifest = read_manifest(snapshot_dir, session_id)
    entry = next((e for e in reversed(manifest) if e.file_path == file_path), None)
    if entry is None:
        raise SnapshotError(f"No snapshot found for '{file_path}' in session '{session_id}'")
    return _restore_entry(snapshot_dir, entry)


def rollback_session(snapshot_dir: str | os.PathLike[str], session_id: str) -> list[str]:
    """Restore every file of a session to its state before the session's first edit."""
    snapshot_dir = Path(snapshot_dir)
    originals: dict[str, SnapshotEntry] = {}
    for entry in read_manifest(snapshot_dir, session_id):
        originals.setdefault(entry.file_path, entry)
    return [_restore_entry(snapshot_dir, entry) for entry in originals.values()]


def rollback_steps(
    snapshot_dir: str | os.PathLike[str], session_id: str, steps: int
) -> list[str]:
    """Undo the last ``steps`` edits, newest first."""
    snapshot_dir = Path(snapshot_dir)
    manifest = read_manifest(snapshot_dir, session_id)
    if steps < 0:
        raise ValueError("steps must not be negative")
    if steps > len(manifest):
        raise SnapshotError(
            f"Only {len(manifest)} snapshots available, cannot step back {steps}"
        )
    latest = manifest[len(manifest) - steps:]
    return [_restore_entry(snapshot_dir, entry) for entry in reversed(latest)]


def list_snapshots(snapshot_dir: str | os.PathLike[str], session_id: str) -> list[str]:
    """Describe a session's snapshots, one numbered line each."""
    lines = []
    for number, entry in enumerate(read_manifest(snapshot_dir, session_id), start=1):
        state = "modified" if entry.existed else "created"
        lines.append(
            f"  {number}. [{entry.id}] {entry.timestamp} — {entry.file_path} ({state})"
        )
    return lines