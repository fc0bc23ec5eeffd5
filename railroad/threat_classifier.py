"""Threat tiers and behavioural detection of retried blocked commands."""

from __future__ import annotations

from dataclasses import dataclass, field

from railroad.threat_state import SessionState

_MIN_KEYWORD_MATCHES = 2
_MIN_KEYWORD_BYTES = 3

_NOISE = frozenset(
    {
        "|", "&&", "||", ";", ">", ">>", "<", "2>&1",
        "sh", "bash", "zsh", "echo", "eval", "exec", "source",
        "sudo", "env", "export", "set", "unset",
        "if", "then", "else", "fi", "for", "do", "done", "while",
        "true", "false", "test", "xargs",
    }
)
_SKIPPED_PREFIXES = ("-", "$", '"', "'")


@dataclass(frozen=True)
class ThreatTier:
    """How severe a detected evasion is.

    Tier 1 ends the session at once, tier 2 warns first and ends it on a
    repeat, and tier 3 is a blocked command retried with different syntax.
    Tiers 1 and 2 carry the name of the matched ``pattern``; tier 3 carries
    the ``original_rule`` that blocked the first attempt and the
    ``matched_keywords``.
    """

    level: int
    pattern: str | None = None
    original_rule: str | None = None
    matched_keywords: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "matched_keywords", tuple(self.matched_keywords))
        if self.level in (1, 2):
            if self.pattern is None:
                raise ValueError(f"a tier {self.level} threat needs a pattern")
            if self.original_rule is not None or self.matched_keywords:
                raise ValueError(f"a tier {self.level} threat carries no rule or keywords")
        elif self.level == 3:
            if self.original_rule is None:
                raise ValueError("a tier 3 threat needs the original rule")
            if self.pattern is not None:
                raise ValueError("a tier 3 threat carries no pattern")
        else:
            raise ValueError(f"unknown threat tier: {self.level}")

    @classmethod
    def tier1(cls, pattern: str) -> ThreatTier:
        return cls(1, pattern=pattern)

    @classmethod
    def tier2(cls, pattern: str) -> ThreatTier:
        return cls(2, pattern=pattern)

    @classmethod
    def tier3(cls, original_rule: str, matched_keywords: list[str]) -> ThreatTier:
        return cls(3, original_rule=original_rule, matched_keywords=tuple(matched_keywords))


def check_behavioral_evasion(state: SessionState, cmd: str) -> ThreatTier | None:
    """Detect a retry of a recently blocked command.

    While the session is in its heightened state, a command that contains at
    least two of the watched keywords (case-insensitively) is a tier 3 threat.
    """
    if not state.is_in_heightened_state():
        return None

    cmd_lower = cmd.lower()
    matched = [kw for kw in state.heightened_keywords if kw.lower() in cmd_lower]
    if len(matched) < _MIN_KEYWORD_MATCHES:
        return None

    original_rule = state.block_history[-1].rule if state.block_history else ""
    return ThreatTier.tier3(original_rule, matched)


def _trim_non_alnum(word: str) -> str:
    start, end = 0, len(word)
    while start < end and not word[start].isalnum():
        start += 1
    while end > start and not word[end - 1].isalnum():
        end -= 1
    return word[start:end]


def extract_keywords(cmd: str) -> list[str]:
    """Extract the meaningful words of a command for behavioural tracking.

    Flags, variables, quoted words, common shell tokens and words shorter
    than three bytes are dropped; the rest are trimmed of leading and
    trailing non-alphanumeric characters.
    """
    keywords = []
    for word in cmd.split():
        if word.startswith(_SKIPPED_PREFIXES) or word in _NOISE:
            continue
        if len(word.encode("utf-8")) < _MIN_KEYWORD_BYTES:
            continue
        trimmed = _trim_non_alnum(word)
        if trimmed:
            keywords.append(trimmed)
    return keywords