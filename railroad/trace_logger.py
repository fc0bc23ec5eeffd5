"""Append-only JSON-lines trace logs, one file per session."""

from __future__ import annotations

import json
from pathlib import Path

from railroad.types import TraceEntry

_ICONS = {
    "block": "BLOCKED",
    "approve": "APPROVE",
    "allow": "  OK   ",
}
_UNKNOWN_ICON = "  ??   "


class TraceError(Exception):
    """A trace log could not be written or read."""


def global_trace_dir() -> Path:
    """Return the global trace directory, ~/.railroad/traces."""
    try:
        home = Path.home()
    except (RuntimeError, KeyError):
        home = Path(".")
    return home / ".railroad" / "traces"


def _log_path(trace_dir: Path, session_id: str) -> Path:
    return trace_dir / f"{session_id}.jsonl"


def log_trace(trace_dir: str | Path, session_id: str, entry: TraceEntry) -> None:
    """Append a trace entry to the session's log file."""
    trace_dir = Path(trace_dir)
    try:
        trace_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise TraceError(f"Failed to create trace dir: {exc}") from exc

    line = json.dumps(entry.to_dict(), separators=(",", ":"), ensure_ascii=False)
    try:
        with _log_path(trace_dir, session_id).open("a", encoding="utf-8") as handle:
            handle.write(line + "\n")
    except OSError as exc:
        raise TraceError(f"Failed to write trace: {exc}") from exc


def read_traces(trace_dir: str | Path, session_id: str) -> list[TraceEntry]:
    """Read every well-formed trace entry of a session; unreadable lines are skipped."""
    log_path = _log_path(Path(trace_dir), session_id)
    if not log_path.exists():
        return []
    try:
        contents = log_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise TraceError(f"Failed to read traces: {exc}") from exc

    entries = []
    for line in contents.splitlines():
        if not line.strip():
            continue
        try:
            entries.append(TraceEntry.from_dict(json.loads(line)))
        except ValueError:
            continue
    return entries


def list_sessions(trace_dir: str | Path) -> list[str]:
    """List the ids of all sessions that have a trace log, sorted."""
    trace_dir = Path(trace_dir)
    if not trace_dir.exists():
        return []
    try:
        paths = list(trace_dir.iterdir())
    except OSError as exc:
        raise TraceError(f"Failed to read trace dir: {exc}") from exc
    return sorted(path.stem for path in paths if path.suffix == ".jsonl")


def format_trace_entry(entry: TraceEntry) -> str:
    """Render a trace entry as one human-readable line."""
    icon = _ICONS.get(entry.decision, _UNKNOWN_ICON)
    rule = f" ({entry.rule})" if entry.rule is not None else ""
    return (
        f"[{entry.timestamp}] {icon} {entry.tool:>8} | "
        f"{entry.event}: {entry.input_summary}{rule}"
    )