"""Agent performance snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from mantle_forge.crypto.branch_identity import resolve_branch_hash
from mantle_forge.errors import TransportError
from mantle_forge.protocols import RemoteStateClient

COUNTER_FIELDS = ("total_decisions", "buy_count", "hold_count", "trades_executed")
PRICE_FIELDS = ("avg_price", "min_price", "max_price")


def _to_count(value: Any, field_name: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise TransportError(f"{field_name} must be a number")
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise TransportError(f"{field_name} must be a number") from exc


def _to_price(value: Any, field_name: str) -> float | None:
    # The service serializes aggregate prices as strings.
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError) as exc:
        raise TransportError(f"{field_name} must be numeric") from exc


@dataclass(frozen=True)
class AgentStats:
    total_decisions: int = 0
    buy_count: int = 0
    hold_count: int = 0
    trades_executed: int = 0
    avg_price: float | None = None
    min_price: float | None = None
    max_price: float | None = None

    @classmethod
    def from_payload(cls, payload: dict) -> "AgentStats":
        counters = {name: _to_count(payload.get(name), name) for name in COUNTER_FIELDS}
        prices = {name: _to_price(payload.get(name), name) for name in PRICE_FIELDS}
        return cls(**counters, **prices)

    @property
    def success_rate(self) -> float | None:
        if self.total_decisions <= 0:
            return None
        return self.trades_executed / self.total_decisions

    def to_dict(self) -> dict:
        return {
            "total_decisions": self.total_decisions,
            "buy_count": self.buy_count,
            "hold_count": self.hold_count,
            "trades_executed": self.trades_executed,
            "avg_price": self.avg_price,
            "min_price": self.min_price,
            "max_price": self.max_price,
        }


@dataclass(frozen=True)
class StatsSnapshot:
    """One fetched copy of a branch's counters.

    ``stats`` is ``None`` when the agent exists but has not recorded any
    metrics yet.
    """

    repo_url: str
    branch_name: str
    stats: AgentStats | None

    @property
    def has_stats(self) -> bool:
        return self.stats is not None

    @classmethod
    def from_payload(cls, payload: dict, *, repo_url: str, branch_name: str) -> "StatsSnapshot":
        raw = payload.get("stats")
        if raw is None:
            return cls(repo_url=repo_url, branch_name=branch_name, stats=None)
        if not isinstance(raw, dict):
            raise TransportError("stats must be an object")
        return cls(repo_url=repo_url, branch_name=branch_name, stats=AgentStats.from_payload(raw))

    def to_dict(self) -> dict:
        return {
            "repo_url": self.repo_url,
            "branch_name": self.branch_name,
            "stats": self.stats.to_dict() if self.stats is not None else None,
        }


def fetch_stats(client: RemoteStateClient, repo_url: str, branch_name: str) -> StatsSnapshot:
    payload = client.get_stats(resolve_branch_hash(repo_url, branch_name))
    return StatsSnapshot.from_payload(payload, repo_url=repo_url, branch_name=branch_name)


def format_rate(rate: float) -> str:
    return f"{rate * 100:.1f}%"


__all__ = ["AgentStats", "StatsSnapshot", "fetch_stats", "format_rate"]
