"""Side-by-side comparison of two branch agents."""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Callable

from mantle_forge.errors import ComparisonError, NoStatsError, RemoteStateError
from mantle_forge.layout import TableLayout, render_table
from mantle_forge.protocols import RemoteStateClient
from mantle_forge.stats import AgentStats, StatsSnapshot, fetch_stats, format_rate

METRIC_ROWS = (
    ("Total Decisions", "total_decisions"),
    ("BUY Signals", "buy_count"),
    ("HOLD Signals", "hold_count"),
    ("Trades Executed", "trades_executed"),
)


def _default_executor() -> Executor:
    return ThreadPoolExecutor(max_workers=2, thread_name_prefix="mantle-forge-compare")


def _leader(branch_a: str, value_a: float, branch_b: str, value_b: float) -> str | None:
    if value_a > value_b:
        return branch_a
    if value_b > value_a:
        return branch_b
    return None


def _require_stats(snapshot: StatsSnapshot) -> AgentStats:
    if snapshot.stats is None:
        raise NoStatsError((snapshot.branch_name,))
    return snapshot.stats


@dataclass(frozen=True)
class ComparisonReport:
    left: StatsSnapshot
    right: StatsSnapshot

    def __post_init__(self) -> None:
        empty = tuple(s.branch_name for s in (self.left, self.right) if not s.has_stats)
        if empty:
            raise NoStatsError(empty)

    @property
    def left_stats(self) -> AgentStats:
        return _require_stats(self.left)

    @property
    def right_stats(self) -> AgentStats:
        return _require_stats(self.right)

    @property
    def trades_leader(self) -> str | None:
        return _leader(
            self.left.branch_name,
            self.left_stats.trades_executed,
            self.right.branch_name,
            self.right_stats.trades_executed,
        )

    @property
    def success_rates(self) -> tuple[float, float] | None:
        left_rate = self.left_stats.success_rate
        right_rate = self.right_stats.success_rate
        if left_rate is None or right_rate is None:
            return None
        return left_rate, right_rate

    @property
    def success_rate_leader(self) -> str | None:
        rates = self.success_rates
        if rates is None:
            return None
        return _leader(self.left.branch_name, rates[0], self.right.branch_name, rates[1])

    def to_dict(self) -> dict:
        rates = self.success_rates
        return {
            "branches": [self.left.branch_name, self.right.branch_name],
            "stats": {
                self.left.branch_name: self.left_stats.to_dict(),
                self.right.branch_name: self.right_stats.to_dict(),
            },
            "trades_leader": self.trades_leader,
            "success_rates": (
                None
                if rates is None
                else {self.left.branch_name: rates[0], self.right.branch_name: rates[1]}
            ),
            "success_rate_leader": self.success_rate_leader,
        }


def compare_branches(
    client: RemoteStateClient,
    repo_url: str,
    branch_a: str,
    branch_b: str,
    *,
    executor_factory: Callable[[], Executor] = _default_executor,
) -> ComparisonReport:
    """Fetch both branches' stats concurrently and build a report.

    Both fetches are awaited before anything is inspected. A failure on
    either side raises ``ComparisonError`` and the other result is dropped.
    """
    with executor_factory() as executor:
        futures = [
            (branch_name, executor.submit(fetch_stats, client, repo_url, branch_name))
            for branch_name in (branch_a, branch_b)
        ]
        wait([future for _, future in futures])

    snapshots: list[StatsSnapshot] = []
    for branch_name, future in futures:
        try:
            snapshots.append(future.result())
        except RemoteStateError as exc:
            raise ComparisonError(branch_name, exc) from exc

    left, right = snapshots
    return ComparisonReport(left=left, right=right)


def render_report(report: ComparisonReport, *, layout: TableLayout = TableLayout()) -> list[str]:
    left_name = report.left.branch_name
    right_name = report.right.branch_name
    rows = [
        [label, str(getattr(report.left_stats, field)), str(getattr(report.right_stats, field))]
        for label, field in METRIC_ROWS
    ]
    lines = render_table(["Metric", left_name, right_name], rows, layout=layout)

    lines.append("")
    lines.append("Analysis:")
    left_trades = report.left_stats.trades_executed
    right_trades = report.right_stats.trades_executed
    trades_leader = report.trades_leader
    if trades_leader is None:
        lines.append(f"  Trades: tie ({left_trades} vs {right_trades})")
    else:
        lines.append(
            f"  Trades: {trades_leader} leads "
            f"({left_name}: {left_trades}, {right_name}: {right_trades})"
        )

    rates = report.success_rates
    if rates is not None:
        left_rate, right_rate = (format_rate(rate) for rate in rates)
        rate_leader = report.success_rate_leader
        if rate_leader is None:
            lines.append(f"  Success rate: tie ({left_rate} vs {right_rate})")
        else:
            lines.append(
                f"  Success rate: {rate_leader} leads "
                f"({left_name}: {left_rate}, {right_name}: {right_rate})"
            )
    return lines


__all__ = ["METRIC_ROWS", "ComparisonReport", "compare_branches", "render_report"]
