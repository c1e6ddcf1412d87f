"""
Tagged tool results.

Tools never raise for expected conditions. They return a ToolResult whose
outcome tells the caller whether the call worked, could not run because the
server is not configured for it, or failed.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Tuple


class Outcome(str, Enum):
    OK = "ok"
    NOT_CONFIGURED = "not_configured"
    FAILED = "failed"


@dataclass(frozen=True)
class ToolResult:
    outcome: Outcome
    message: str
    missing: Tuple[str, ...] = ()

    @classmethod
    def ok(cls, message: str) -> "ToolResult":
        return cls(Outcome.OK, message)

    @classmethod
    def ok_json(cls, payload: Any, indent: int = 2) -> "ToolResult":
        return cls(Outcome.OK, json.dumps(payload, indent=indent, ensure_ascii=False))

    @classmethod
    def not_configured(cls, message: str, missing: Iterable[str] = ()) -> "ToolResult":
        return cls(Outcome.NOT_CONFIGURED, message, tuple(missing))

    @classmethod
    def failed(cls, message: str, missing: Iterable[str] = ()) -> "ToolResult":
        return cls(Outcome.FAILED, message, tuple(missing))

    @property
    def is_ok(self) -> bool:
        return self.outcome is Outcome.OK

    def render(self) -> str:
        """Text sent back to the MCP client"""
        if self.outcome is Outcome.OK:
            return self.message

        text = f"Error: {self.message}" if self.outcome is Outcome.FAILED else self.message
        if self.missing:
            text += "\n\nMissing:\n" + "\n".join(f"- {name}" for name in self.missing)
        return text
