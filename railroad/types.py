"""Hook payloads, policy configuration and record types."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

_MISSING: Any = object()

_DEFAULT_DENIED_PATHS = (
    "~/.ssh",
    "~/.aws",
    "~/.gnupg",
    "~/.config/gcloud",
    "~/.claude",
    "/etc",
)
_DEFAULT_TRACE_DIR = ".railroad/traces"
_DEFAULT_SNAPSHOT_DIR = ".railroad/snapshots"
_DEFAULT_SNAPSHOT_TOOLS = ("Write", "Edit")


def _check_mapping(data: Any, what: str) -> None:
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")


def _matches(value: Any, kind: type) -> bool:
    if kind is bool:
        return isinstance(value, bool)
    if kind is int:
        return isinstance(value, int) and not isinstance(value, bool) and value >= 0
    return isinstance(value, kind)


def _field(
    data: Mapping[str, Any],
    key: str,
    kind: type,
    *,
    default: Any = _MISSING,
    optional: bool = False,
) -> Any:
    """Fetch and type-check one field, applying a default when it is absent."""
    if key not in data:
        if default is not _MISSING:
            return default() if callable(default) else default
        if optional:
            return None
        raise ValueError(f"missing field `{key}`")
    value = data[key]
    if value is None and optional:
        return None
    if not _matches(value, kind):
        raise ValueError(f"invalid type for field `{key}`: {type(value).__name__}")
    return value


def _str_list(data: Mapping[str, Any], key: str, default: Any = _MISSING) -> list[str]:
    values = _field(data, key, list, default=default)
    if not all(isinstance(item, str) for item in values):
        raise ValueError(f"field `{key}` must be a list of strings")
    return list(values)


# ── Hook input and output ──


@dataclass
class HookInput:
    """The event payload delivered to a hook on stdin."""

    session_id: str
    cwd: str
    hook_event_name: str
    tool_name: str | None = None
    tool_input: Any = None
    tool_use_id: str | None = None
    tool_response: Any = None
    timestamp: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> HookInput:
        _check_mapping(data, "hook input")
        return cls(
            session_id=_field(data, "session_id", str),
            cwd=_field(data, "cwd", str),
            hook_event_name=_field(data, "hook_event_name", str),
            tool_name=_field(data, "tool_name", str, optional=True),
            tool_input=_field(data, "tool_input", object, optional=True),
            tool_use_id=_field(data, "tool_use_id", str, optional=True),
            tool_response=_field(data, "tool_response", object, optional=True),
            timestamp=_field(data, "timestamp", str, optional=True),
        )


@dataclass
class HookSpecificOutput:
    """The event-specific part of a hook's reply."""

    hook_event_name: str
    permission_decision: str | None = None
    permission_decision_reason: str | None = None
    additional_context: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"hookEventName": self.hook_event_name}
        if self.permission_decision is not None:
            result["permissionDecision"] = self.permission_decision
        if self.permission_decision_reason is not None:
            result["permissionDecisionReason"] = self.permission_decision_reason
        if self.additional_context is not None:
            result["additionalContext"] = self.additional_context
        return result


@dataclass
class HookOutput:
    """A hook's reply, written to stdout as JSON."""

    hook_specific_output: HookSpecificOutput | None = None

    @classmethod
    def allow(cls) -> HookOutput:
        """Explicitly allow a PreToolUse call, so no confirmation prompt is shown."""
        return cls(HookSpecificOutput("PreToolUse", permission_decision="allow"))

    @classmethod
    def noop(cls) -> HookOutput:
        """Reply for events that need no permission decision."""
        return cls(None)

    @classmethod
    def deny(cls, reason: str) -> HookOutput:
        return cls(
            HookSpecificOutput(
                "PreToolUse",
                permission_decision="deny",
                permission_decision_reason=reason,
            )
        )

    @classmethod
    def ask(cls, context: str) -> HookOutput:
        return cls(
            HookSpecificOutput(
                "PreToolUse",
                permission_decision="ask",
                additional_context=context,
            )
        )

    @classmethod
    def session_message(cls, message: str) -> HookOutput:
        return cls(HookSpecificOutput("SessionStart", additional_context=message))

    def to_dict(self) -> dict[str, Any]:
        if self.hook_specific_output is None:
            return {}
        return {"hookSpecificOutput": self.hook_specific_output.to_dict()}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


# ── Policy ──


@dataclass
class Rule:
    """A named pattern rule for a tool."""

    name: str
    pattern: str
    tool: str = "Bash"
    action: str = "block"
    message: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Rule:
        _check_mapping(data, "rule")
        return cls(
            name=_field(data, "name", str),
            pattern=_field(data, "pattern", str),
            tool=_field(data, "tool", str, default="Bash"),
            action=_field(data, "action", str, default="block"),
            message=_field(data, "message", str, optional=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tool": self.tool,
            "pattern": self.pattern,
            "action": self.action,
            "message": self.message,
        }


@dataclass
class FenceConfig:
    """Path fence settings."""

    enabled: bool = True
    allowed_paths: list[str] = field(default_factory=list)
    denied_paths: list[str] = field(default_factory=lambda: list(_DEFAULT_DENIED_PATHS))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FenceConfig:
        _check_mapping(data, "fence config")
        return cls(
            enabled=_field(data, "enabled", bool, default=True),
            allowed_paths=_str_list(data, "allowed_paths", default=list),
            denied_paths=_str_list(data, "denied_paths", default=list),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "allowed_paths": list(self.allowed_paths),
            "denied_paths": list(self.denied_paths),
        }


@dataclass
class TraceConfig:
    """Trace logging settings."""

    enabled: bool = True
    directory: str = _DEFAULT_TRACE_DIR

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TraceConfig:
        _check_mapping(data, "trace config")
        return cls(
            enabled=_field(data, "enabled", bool, default=True),
            directory=_field(data, "directory", str, default=_DEFAULT_TRACE_DIR),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"enabled": self.enabled, "directory": self.directory}


@dataclass
class SnapshotConfig:
    """File snapshot settings."""

    enabled: bool = True
    tools: list[str] = field(default_factory=lambda: list(_DEFAULT_SNAPSHOT_TOOLS))
    directory: str = _DEFAULT_SNAPSHOT_DIR

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SnapshotConfig:
        _check_mapping(data, "snapshot config")
        return cls(
            enabled=_field(data, "enabled", bool, default=True),
            tools=_str_list(data, "tools", default=lambda: list(_DEFAULT_SNAPSHOT_TOOLS)),
            directory=_field(data, "directory", str, default=_DEFAULT_SNAPSHOT_DIR),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "tools": list(self.tools),
            "directory": self.directory,
        }


@dataclass
class MemoryConfig:
    """Memory-file safety settings."""

    enabled: bool = True
    require_approval_for_behavioral: bool = True
    block_secrets: bool = True
    append_only: bool = True
    verify_on_read: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MemoryConfig:
        _check_mapping(data, "memory config")
        return cls(
            enabled=_field(data, "enabled", bool, default=True),
            require_approval_for_behavioral=_field(
                data, "require_approval_for_behavioral", bool, default=True
            ),
            block_secrets=_field(data, "block_secrets", bool, default=True),
            append_only=_field(data, "append_only", bool, default=True),
            verify_on_read=_field(data, "verify_on_read", bool, default=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "require_approval_for_behavioral": self.require_approval_for_behavioral,
            "block_secrets": self.block_secrets,
            "append_only": self.append_only,
            "verify_on_read": self.verify_on_read,
        }


def _rules(data: Mapping[str, Any], key: str) -> list[Rule]:
    return [Rule.from_dict(item) for item in _field(data, key, list, default=list)]


def _section(data: Mapping[str, Any], key: str, kind: Any) -> Any:
    if key not in data:
        return kind()
    return kind.from_dict(data[key])


@dataclass
class Policy:
    """A complete policy document."""

    version: int = 1
    blocklist: list[Rule] = field(default_factory=list)
    approve: list[Rule] = field(default_factory=list)
    allowlist: list[Rule] = field(default_factory=list)
    fence: FenceConfig = field(default_factory=FenceConfig)
    trace: TraceConfig = field(default_factory=TraceConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Policy:
        _check_mapping(data, "policy")
        return cls(
            version=_field(data, "version", int, default=1),
            blocklist=_rules(data, "blocklist"),
            approve=_rules(data, "approve"),
            allowlist=_rules(data, "allowlist"),
            fence=_section(data, "fence", FenceConfig),
            trace=_section(data, "trace", TraceConfig),
            snapshot=_section(data, "snapshot", SnapshotConfig),
            memory=_section(data, "memory", MemoryConfig),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "blocklist": [rule.to_dict() for rule in self.blocklist],
            "approve": [rule.to_dict() for rule in self.approve],
            "allowlist": [rule.to_dict() for rule in self.allowlist],
            "fence": self.fence.to_dict(),
            "trace": self.trace.to_dict(),
            "snapshot": self.snapshot.to_dict(),
            "memory": self.memory.to_dict(),
        }


# ── Memory safety ──


@dataclass
class MemoryEntry:
    """Provenance record for one write to a memory file."""

    id: str
    timestamp: str
    session_id: str
    file_path: str
    content_hash: str
    classification: str
    human_approved: bool
    provenance: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MemoryEntry:
        _check_mapping(data, "memory entry")
        return cls(
            id=_field(data, "id", str),
            timestamp=_field(data, "timestamp", str),
            session_id=_field(data, "session_id", str),
            file_path=_field(data, "file_path", str),
            content_hash=_field(data, "content_hash", str),
            classification=_field(data, "classification", str),
            human_approved=_field(data, "human_approved", bool),
            provenance=_field(data, "provenance", str),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "file_path": self.file_path,
            "content_hash": self.content_hash,
            "classification": self.classification,
            "human_approved": self.human_approved,
            "provenance": self.provenance,
        }


class MemoryClassification(Enum):
    """What kind of content a memory write holds."""

    FACTUAL = "factual"
    BEHAVIORAL = "behavioral"
    SECRET = "secret"


class Action(str, Enum):
    """The three outcomes a guard can reach."""

    ALLOW = "allow"
    BLOCK = "block"
    APPROVE = "approve"


@dataclass(frozen=True)
class MemoryDecision:
    """The memory guard's verdict on a write."""

    action: Action
    reason: str | None = None

    def __post_init__(self) -> None:
        if self.action is Action.ALLOW and self.reason is not None:
            raise ValueError("an allow decision carries no reason")
        if self.action is not Action.ALLOW and self.reason is None:
            raise ValueError(f"a {self.action.value} decision needs a reason")

    @classmethod
    def allow(cls) -> MemoryDecision:
        return cls(Action.ALLOW)

    @classmethod
    def block(cls, reason: str) -> MemoryDecision:
        return cls(Action.BLOCK, reason)

    @classmethod
    def approve(cls, reason: str) -> MemoryDecision:
        return cls(Action.APPROVE, reason)


# ── Trace and snapshot records ──


@dataclass
class TraceEntry:
    """One line of a session's trace log."""

    timestamp: str
    session_id: str
    event: str
    tool: str
    input_summary: str
    decision: str
    rule: str | None
    duration_ms: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TraceEntry:
        _check_mapping(data, "trace entry")
        return cls(
            timestamp=_field(data, "timestamp", str),
            session_id=_field(data, "session_id", str),
            event=_field(data, "event", str),
            tool=_field(data, "tool", str),
            input_summary=_field(data, "input_summary", str),
            decision=_field(data, "decision", str),
            rule=_field(data, "rule", str, optional=True),
            duration_ms=_field(data, "duration_ms", int),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "event": self.event,
            "tool": self.tool,
            "input_summary": self.input_summary,
            "decision": self.decision,
        }
        if self.rule is not None:
            result["rule"] = self.rule
        result["duration_ms"] = self.duration_ms
        return result


@dataclass
class SnapshotEntry:
    """One line of a session's snapshot manifest."""

    id: str
    timestamp: str
    session_id: str
    tool_use_id: str
    file_path: str
    hash: str
    existed: bool

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SnapshotEntry:
        _check_mapping(data, "snapshot entry")
        return cls(
            id=_field(data, "id", str),
            timestamp=_field(data, "timestamp", str),
            session_id=_field(data, "session_id", str),
            tool_use_id=_field(data, "tool_use_id", str),
            file_path=_field(data, "file_path", str),
            hash=_field(data, "hash", str),
            existed=_field(data, "existed", bool),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "session_id": self.session_id,
            "tool_use_id": self.tool_use_id,
            "file_path": self.file_path,
            "hash": self.hash,
            "existed": self.existed,
        }


@dataclass(frozen=True)
class Decision:
    """The policy engine's verdict on a tool call."""

    action: Action
    rule: str | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if self.action is Action.ALLOW:
            if self.rule is not None or self.message is not None:
                raise ValueError("an allow decision carries no rule or message")
        elif self.rule is None or self.message is None:
            raise ValueError(f"a {self.action.value} decision needs a rule and a message")

    @classmethod
    def allow(cls) -> Decision:
        return cls(Action.ALLOW)

    @classmethod
    def block(cls, rule: str, message: str) -> Decision:
        return cls(Action.BLOCK, rule, message)

    @classmethod
    def approve(cls, rule: str, message: str) -> Decision:
        return cls(Action.APPROVE, rule, message)