"""Session termination on detected evasion, and the warning shown afterwards."""

from __future__ import annotations

import os
import signal
import sys
from datetime import datetime, timezone
from pathlib import Path

from railroad.threat_classifier import ThreatTier
from railroad.threat_state import SessionState
from railroad.trace_logger import TraceError, log_trace
from railroad.types import TraceEntry

_SUMMARY_LIMIT = 500
_PREVIEW_LIMIT = 100
_NO_KILL_ENV = "RAILROAD_NO_KILL"


def _err(line: str = "") -> None:
    print(line, file=sys.stderr)


def format_termination_reason(tier: ThreatTier, command: str) -> str:
    """Describe why a session was terminated."""
    preview = command[:_PREVIEW_LIMIT]
    if tier.level == 1:
        return f"Tier 1 evasion detected: {tier.pattern} — command: {preview}"
    if tier.level == 2:
        return f"Tier 2 evasion escalated (repeated): {tier.pattern} — command: {preview}"
    keywords = ", ".join(tier.matched_keywords)
    return (
        f"Tier 3 behavioral evasion: retried blocked rule '{tier.original_rule}' "
        f"with keywords [{keywords}] — command: {preview}"
    )


def _kill_parent() -> None:
    """Send SIGTERM to the parent process, unless RAILROAD_NO_KILL=1."""
    if os.environ.get(_NO_KILL_ENV, "") == "1":
        return
    if os.name != "posix":
        _err("railroad: cannot send SIGTERM on this platform")
        return
    ppid = os.getppid()
    if ppid > 1:
        try:
            os.kill(ppid, signal.SIGTERM)
        except OSError:
            pass


def terminate_session(
    state: SessionState,
    tier: ThreatTier,
    command: str,
    state_dir: str | Path,
    trace_dir: str | Path,
) -> None:
    """Terminate the agent session.

    Marks the session terminated and saves it, writes a trace entry, reports
    on stderr and sends SIGTERM to the parent process. The caller must write
    and flush its deny reply before calling this.
    """
    reason = format_termination_reason(tier, command)

    state.mark_terminated(reason)
    try:
        state.save(state_dir)
    except OSError as exc:
        _err(f"railroad: failed to save termination state: {exc}")

    entry = TraceEntry(
        timestamp=datetime.now(timezone.utc).isoformat(),
        session_id=state.session_id,
        event="SessionTerminated",
        tool="Bash",
        input_summary=command[:_SUMMARY_LIMIT],
        decision="terminate",
        rule=reason,
        duration_ms=0,
    )
    try:
        log_trace(trace_dir, state.session_id, entry)
    except TraceError as exc:
        _err(f"railroad: failed to log termination: {exc}")

    _err()
    _err("  \x1b[1;31m⚠️  RAILROAD: SESSION TERMINATED\x1b[0m")
    _err()
    _err(f"  {reason}")
    _err(f"  Session: {state.session_id}")
    _err()
    _err(f"  Review: railroad log --session {state.session_id}")
    _err()

    _kill_parent()


def format_restart_warning(state: SessionState) -> str:
    """The message shown at session start after a previous termination."""
    reason = state.termination_reason if state.termination_reason is not None else "unknown reason"
    timestamp = (
        state.termination_timestamp
        if state.termination_timestamp is not None
        else "unknown time"
    )
    return (
        "⚠️  railroad: previous session was terminated due to evasion detection.\n"
        "\n"
        f"  Session:  {state.session_id}\n"
        f"  Time:     {timestamp}\n"
        f"  Reason:   {reason}\n"
        "\n"
        f"  Full trace: railroad log --session {state.session_id}"
    )