"""Agent log and restart response models."""

from __future__ import annotations

from dataclasses import dataclass

from mantle_forge.errors import TransportError

MAX_LOG_LINES = 50


def parse_log_lines(payload: dict, *, limit: int = MAX_LOG_LINES) -> list[str]:
    raw = payload.get("logs")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise TransportError("logs must be a list")
    lines = [line if isinstance(line, str) else str(line) for line in raw]
    if limit > 0 and len(lines) > limit:
        return lines[-limit:]
    return lines


@dataclass(frozen=True)
class RestartResult:
    success: bool
    agent: dict | None

    @classmethod
    def from_payload(cls, payload: dict) -> "RestartResult":
        agent = payload.get("agent")
        if agent is not None and not isinstance(agent, dict):
            raise TransportError("agent must be an object")
        return cls(success=bool(payload.get("success")), agent=agent)

    def to_dict(self) -> dict:
        return {"success": self.success, "agent": self.agent}


__all__ = ["MAX_LOG_LINES", "RestartResult", "parse_log_lines"]
