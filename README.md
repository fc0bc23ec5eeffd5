# railroad

Safety building blocks for AI coding agents. The package keeps an
append-only trace of tool calls, snapshots files before an agent edits
them so the edits can be rolled back, tracks suspicious behaviour across
a session, and generates OS-level sandbox profiles that fence an agent's
shell commands.

It uses only the Python standard library and supports Python 3.10 and
later. It is a library; it installs no commands.

## Hook data and policy model

`railroad.types` holds the records exchanged with an agent host and the
policy model, each with `from_dict` / `to_dict` for JSON-shaped data.

```python
from railroad.types import HookInput, HookOutput, FenceConfig, Policy

hook = HookInput.from_dict({
    "session_id": "s1",
    "cwd": "/work/project",
    "hook_event_name": "PreToolUse",
    "tool_name": "Bash",
    "tool_input": {"command": "npm test"},
})

print(HookOutput.allow().to_json())
# {"hookSpecificOutput":{"hookEventName":"PreToolUse","permissionDecision":"allow"}}
print(HookOutput.deny("terraform destroy is blocked").to_json())
print(HookOutput.noop().to_json())   # {}

policy = Policy.from_dict({"version": 1, "blocklist": []})
```

`HookOutput` also has `ask(context)` and `session_message(message)`.
`FenceConfig()` denies `~/.ssh`, `~/.aws`, `~/.gnupg`, `~/.config/gcloud`,
`~/.claude` and `/etc` by default; `FenceConfig.from_dict` with no
`denied_paths` key gives an empty list. Missing or wrongly typed fields
raise `ValueError`.

`Decision` and `MemoryDecision` are immutable verdicts built with
`allow()`, `block(...)` and `approve(...)`; their `action` is an `Action`
member. `MemoryClassification`, `MemoryEntry`, `TraceEntry` and
`SnapshotEntry` are plain records.

## Snapshots and rollback

Take a snapshot of a file before it is modified, then restore it by
snapshot id, by file, by number of steps, or for a whole session.
Snapshots live under `<snapshot_dir>/<session_id>/`, with a
`manifest.jsonl` listing them in order.

```python
from pathlib import Path
from railroad.snapshot_capture import capture_snapshot, read_manifest
from railroad.snapshot_rollback import (
    rollback_by_id, rollback_file, rollback_session, rollback_steps, list_snapshots,
)

snapshots = Path(".railroad/snapshots")
entry = capture_snapshot(snapshots, "s1", "tool-1", "src/app.py")

# ... the agent edits src/app.py ...

rollback_by_id(snapshots, "s1", entry.id)      # back to the captured content
rollback_file(snapshots, "s1", "src/app.py")   # latest snapshot of that file
rollback_steps(snapshots, "s1", 1)             # undo the last edit
rollback_session(snapshots, "s1")              # every file back to its first snapshot
for line in list_snapshots(snapshots, "s1"):
    print(line)
```

A file that did not exist when its snapshot was taken is removed on
rollback. Failures (unknown id, too many steps, a missing snapshot file)
raise `railroad.snapshot_capture.SnapshotError`.

## Trace log

Each session's trace is a JSON-lines file `<trace_dir>/<session_id>.jsonl`.

```python
from railroad.trace_logger import (
    global_trace_dir, log_trace, read_traces, list_sessions, format_trace_entry,
)

for session in list_sessions(global_trace_dir()):   # ~/.railroad/traces
    for entry in read_traces(global_trace_dir(), session):
        print(format_trace_entry(entry))
```

Write errors raise `railroad.trace_logger.TraceError`; malformed lines are
skipped when reading.

## Threat tracking

`railroad.threat_state.SessionState` persists per-session state as
`<state_dir>/<session_id>.json`, saved atomically. After a command is
blocked, the session is in a heightened state for the next three tool
calls; a command that reuses two or more of the blocked command's
keywords is then reported as a tier 3 `ThreatTier`.

```python
from pathlib import Path
from railroad.threat_state import SessionState
from railroad.threat_classifier import check_behavioral_evasion, extract_keywords

state_dir = Path(".railroad/state")
state = SessionState.load(state_dir, "s1")
state.increment_tool_call()
command = "terraform destroy"
state.record_block(command, "terraform-destroy", extract_keywords(command), 1)
state.save(state_dir)

tier = check_behavioral_evasion(state, 't="terraform"; $t destroy')
print(tier.level, tier.matched_keywords)   # 3 ('terraform', 'destroy')
```

`SessionState.find_recent_terminations(state_dir)` returns the stored
sessions marked terminated, and `SessionState.cleanup_old_states(state_dir)`
deletes state files older than 24 hours.

`railroad.threat_killer.terminate_session` marks the session terminated,
saves it, writes a `SessionTerminated` trace entry, reports on stderr and
sends SIGTERM to the parent process; set `RAILROAD_NO_KILL=1` to skip the
signal. `format_termination_reason` and `format_restart_warning` build the
messages.

## Sandboxes

```python
from railroad.types import FenceConfig
from railroad.sandbox_detect import detect_sandbox, describe_capability
from railroad.sandbox_macos import generate_profile, wrap_command
from railroad.sandbox_linux import generate_bwrap_command, generate_landlock_snippet

print(describe_capability(detect_sandbox()))
profile = generate_profile(FenceConfig(), "/work/project")          # Seatbelt .sb text
print(wrap_command("/work/project/.railroad/shell-sandbox.sb", "npm test"))
print(generate_bwrap_command(FenceConfig(), "/work/project"))       # bubblewrap command line
```

`detect_sandbox` tries `sandbox-exec` on macOS and reads the kernel
release on Linux, reporting Landlock (ABI 3) for kernels 5.13 and later.
The generators only produce text; they do not run anything.

## Updates

```python
from railroad.update import is_newer, current_version, check_for_update, fetch_latest_release

is_newer(current_version(), "9.0.0")   # True
```

`fetch_latest_release` calls `curl` against the GitHub releases API and
raises `UpdateError` on failure. `check_for_update(cwd)` uses `git
ls-remote` to compare the build commit (from the `RAILROAD_GIT_HASH`
environment variable) with the remote security tag on every call, and
with the main branch at most once a week, using the marker file
`<cwd>/.railroad/last-update-check`. Without a build commit it reports
nothing.

## What the package does not do

- It has no command-line program: no hook entry point that reads events
  from stdin, and no shell wrapper that runs commands inside the sandbox.
  Messages it prints may refer to `railroad` commands that this package
  does not provide.
- It does not evaluate policies: there is no blocklist, approve or
  allowlist matching, and no pattern-based classification of tier 1 and
  tier 2 evasions; `ThreatTier` values for those tiers must be built by
  the caller.
- It does not read policy files from disk; `Policy.from_dict` takes an
  already parsed mapping.
- It does not download or install updates, and does not build session
  context reports or diffs.