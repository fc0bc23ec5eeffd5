"""Persistent per-session state for threat detection."""

from __future__ import annotations

import json
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from railroad.types import _check_mapping, _field, _str_list

_HEIGHTENED_WINDOW = 3
_COMMAND_LIMIT = 500
_MAX_STATE_AGE_SECS = 86400


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class BlockEvent:
    """A record of one blocked command."""

    timestamp: str
    tool_call_count: int
    command: str
    rule: str
    keywords: list[str]
    tier: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> BlockEvent:
        _check_mapping(data, "block event")
        tier = _field(data, "tier", int)
        if tier > 255:
            raise ValueError("field `tier` out of range")
        return cls(
            timestamp=_field(data, "timestamp", str),
            tool_call_count=_field(data, "tool_call_count", int),
            command=_field(data, "command", str),
            rule=_field(data, "rule", str),
            keywords=_str_list(data, "keywords"),
            tier=tier,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "tool_call_count": self.tool_call_count,
            "command": self.command,
            "rule": self.rule,
            "keywords": list(self.keywords),
            "tier": self.tier,
        }


@dataclass
class SessionState:
    """Threat-detection state of one session, stored as <state_dir>/<session_id>.json."""

    session_id: str
    tool_call_count: int = 0
    suspicion_level: int = 0  # 0 normal, 1 warned, 2 heightened
    warning_count: int = 0
    block_history: list[BlockEvent] = field(default_factory=list)
    heightened_until_call: int | None = None
    heightened_keywords: list[str] = field(default_factory=list)
    terminated: bool = False
    termination_reason: str | None = None
    termination_timestamp: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SessionState:
        _check_mapping(data, "session state")
        return cls(
            session_id=_field(data, "session_id", str),
            tool_call_count=_field(data, "tool_call_count", int),
            suspicion_level=_field(data, "suspicion_level", int),
            warning_count=_field(data, "warning_count", int),
            block_history=[
                BlockEvent.from_dict(item) for item in _field(data, "block_history", list)
            ],
            heightened_until_call=_field(data, "heightened_until_call", int, optional=True),
            heightened_keywords=_str_list(data, "heightened_keywords"),
            terminated=_field(data, "terminated", bool),
            termination_reason=_field(data, "termination_reason", str, optional=True),
            termination_timestamp=_field(data, "termination_timestamp", str, optional=True),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "tool_call_count": self.tool_call_count,
            "suspicion_level": self.suspicion_level,
            "warning_count": self.warning_count,
            "block_history": [event.to_dict() for event in self.block_history],
            "heightened_until_call": self.heightened_until_call,
            "heightened_keywords": list(self.heightened_keywords),
            "terminated": self.terminated,
            "termination_reason": self.termination_reason,
            "termination_timestamp": self.termination_timestamp,
        }

    @staticmethod
    def _state_path(state_dir: Path, session_id: str) -> Path:
        return state_dir / f"{session_id}.json"

    @staticmethod
    def _read(path: Path) -> SessionState | None:
        try:
            return SessionState.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            return None

    @classmethod
    def load(cls, state_dir: str | Path, session_id: str) -> SessionState:
        """Load saved state, or start fresh if none is stored or it is unreadable."""
        path = cls._state_path(Path(state_dir), session_id)
        if path.exists():
            state = cls._read(path)
            if state is not None:
                return state
        return cls(session_id)

    def save(self, state_dir: str | Path) -> None:
        """Write the state atomically: to a temporary file, then rename."""
        state_dir = Path(state_dir)
        state_dir.mkdir(parents=True, exist_ok=True)
        path = self._state_path(state_dir, self.session_id)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(
            json.dumps(self.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8"
        )
        os.replace(tmp_path, path)

    def increment_tool_call(self) -> None:
        self.tool_call_count += 1

    def record_block(self, command: str, rule: str, keywords: list[str], tier: int) -> None:
        """Record a blocked command and watch its keywords for the next few calls."""
        self.block_history.append(
            BlockEvent(
                timestamp=_now(),
                tool_call_count=self.tool_call_count,
                command=command[:_COMMAND_LIMIT],
                rule=rule,
                keywords=list(keywords),
                tier=tier,
            )
        )
        self.heightened_until_call = self.tool_call_count + _HEIGHTENED_WINDOW
        self.heightened_keywords = list(keywords)

    def record_warning(self) -> None:
        self.warning_count += 1
        self.suspicion_level = max(self.suspicion_level, 1)

    def is_in_heightened_state(self) -> bool:
        if self.heightened_until_call is None:
            return False
        return self.tool_call_count <= self.heightened_until_call

    def mark_terminated(self, reason: str) -> None:
        self.terminated = True
        self.termination_reason = reason
        self.termination_timestamp = _now()

    @classmethod
    def find_recent_terminations(cls, state_dir: str | Path) -> list[SessionState]:
        """Return every stored session state that is marked terminated."""
        try:
            paths = sorted(Path(state_dir).iterdir())
        except OSError:
            return []
        states = (cls._read(path) for path in paths)
        return [state for state in states if state is not None and state.terminated]

    @classmethod
    def cleanup_old_states(cls, state_dir: str | Path) -> None:
        """Remove state files last modified more than 24 hours ago."""
        try:
            paths = list(Path(state_dir).iterdir())
        except OSError:
            return
        now = time.time()
        for path in paths:
            try:
                age = now - path.stat().st_mtime
                if age >= 0 and int(age) > _MAX_STATE_AGE_SECS:
                    path.unlink()
            except OSError:
                continue