"""Safety building blocks for AI coding agents: hook and policy types, trace logs,
file snapshots and rollback, session threat tracking, sandbox profiles and update checks."""

__version__ = "0.3.4"

__all__ = ["__version__"]