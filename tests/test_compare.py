from __future__ import annotations

import threading

import pytest

from mantle_forge.compare import ComparisonReport, compare_branches, render_report
from mantle_forge.crypto.branch_identity import resolve_branch_hash
from mantle_forge.errors import AgentNotFoundError, ComparisonError, NoStatsError, TransportError
from mantle_forge.layout import visible_width
from mantle_forge.stats import StatsSnapshot

REPO_URL = "https://github.com/example/trader.git"

STATS_A = {"total_decisions": 10, "buy_count": 4, "hold_count": 6, "trades_executed": 3}
STATS_B = {"total_decisions": 20, "buy_count": 8, "hold_count": 12, "trades_executed": 9}


class _Client:
    def __init__(self, by_branch: dict[str, object]) -> None:
        self._by_hash = {
            resolve_branch_hash(REPO_URL, branch): result for branch, result in by_branch.items()
        }
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get_stats(self, branch_hash: str) -> dict:
        with self._lock:
            self.calls.append(branch_hash)
        result = self._by_hash[branch_hash]
        if isinstance(result, Exception):
            raise result
        return result


def _row(lines: list[str], label: str) -> list[str]:
    for line in lines:
        if line.startswith(f"│ {label}"):
            return [cell.strip() for cell in line.strip("│").split("│")]
    raise AssertionError(f"row {label!r} not rendered")


def test_end_to_end_report() -> None:
    client = _Client({"main": {"stats": STATS_A}, "feature": {"stats": STATS_B}})

    report = compare_branches(client, REPO_URL, "main", "feature")
    lines = render_report(report)

    assert _row(lines, "Metric") == ["Metric", "main", "feature"]
    assert _row(lines, "Total Decisions") == ["Total Decisions", "10", "20"]
    assert _row(lines, "BUY Signals") == ["BUY Signals", "4", "8"]
    assert _row(lines, "HOLD Signals") == ["HOLD Signals", "6", "12"]
    assert _row(lines, "Trades Executed") == ["Trades Executed", "3", "9"]
    assert report.trades_leader == "feature"
    assert report.success_rate_leader == "feature"
    text = "\n".join(lines)
    assert "Trades: feature leads (main: 3, feature: 9)" in text
    assert "Success rate: feature leads (main: 30.0%, feature: 45.0%)" in text


@pytest.mark.parametrize("branch", ["feature/long-name", "feature/a-very-long-branch-name-xyz"])
def test_table_frame_is_width_stable(branch: str) -> None:
    client = _Client({"main": {"stats": STATS_A}, branch: {"stats": STATS_B}})

    lines = render_report(compare_branches(client, REPO_URL, "main", branch))

    table = [line for line in lines if line[:1] in {"┌", "│", "├", "└"}]
    assert len(table) == 8
    assert {visible_width(line) for line in table} == {83}


def test_long_branch_name_is_truncated_in_header() -> None:
    branch = "feature/a-very-long-branch-name-xyz"
    client = _Client({"main": {"stats": STATS_A}, branch: {"stats": STATS_B}})

    lines = render_report(compare_branches(client, REPO_URL, "main", branch))

    assert _row(lines, "Metric")[2] == branch[:26] + "…"


def test_comparison_is_symmetric() -> None:
    client = _Client({"main": {"stats": STATS_A}, "feature": {"stats": STATS_B}})

    forward = compare_branches(client, REPO_URL, "main", "feature")
    backward = compare_branches(client, REPO_URL, "feature", "main")

    assert forward.to_dict()["stats"] == backward.to_dict()["stats"]
    assert forward.trades_leader == backward.trades_leader == "feature"
    assert forward.success_rate_leader == backward.success_rate_leader == "feature"
    assert _row(render_report(backward), "Trades Executed") == ["Trades Executed", "9", "3"]


def test_ties_have_no_leader() -> None:
    client = _Client({"a": {"stats": STATS_A}, "b": {"stats": dict(STATS_A)}})

    report = compare_branches(client, REPO_URL, "a", "b")
    text = "\n".join(render_report(report))

    assert report.trades_leader is None
    assert report.success_rate_leader is None
    assert "Trades: tie (3 vs 3)" in text
    assert "Success rate: tie (30.0% vs 30.0%)" in text


def test_success_rate_skipped_when_a_side_has_no_decisions() -> None:
    empty_run = {"total_decisions": 0, "trades_executed": 0}
    client = _Client({"a": {"stats": STATS_A}, "b": {"stats": empty_run}})

    report = compare_branches(client, REPO_URL, "a", "b")
    text = "\n".join(render_report(report))

    assert report.success_rates is None
    assert "Success rate" not in text
    assert report.trades_leader == "a"


def test_failure_on_either_side_aborts() -> None:
    client = _Client(
        {"main": AgentNotFoundError("Agent not found", status_code=404), "dev": {"stats": STATS_B}}
    )

    with pytest.raises(ComparisonError) as exc_info:
        compare_branches(client, REPO_URL, "main", "dev")

    assert exc_info.value.branch_name == "main"
    assert isinstance(exc_info.value.cause, AgentNotFoundError)
    # both fetches were still issued and awaited
    assert len(client.calls) == 2


def test_second_side_transport_failure_aborts() -> None:
    client = _Client({"main": {"stats": STATS_A}, "dev": TransportError("boom")})

    with pytest.raises(ComparisonError) as exc_info:
        compare_branches(client, REPO_URL, "main", "dev")

    assert exc_info.value.branch_name == "dev"


def test_missing_stats_stops_before_report() -> None:
    client = _Client({"main": {"stats": STATS_A}, "dev": {"stats": None}})

    with pytest.raises(NoStatsError) as exc_info:
        compare_branches(client, REPO_URL, "main", "dev")

    assert exc_info.value.branch_names == ("dev",)


def test_report_requires_stats_on_both_sides() -> None:
    left = StatsSnapshot.from_payload({"stats": STATS_A}, repo_url=REPO_URL, branch_name="main")
    right = StatsSnapshot.from_payload({"stats": None}, repo_url=REPO_URL, branch_name="dev")

    with pytest.raises(NoStatsError) as exc_info:
        ComparisonReport(left=left, right=right)

    assert exc_info.value.branch_names == ("dev",)


def test_fetches_run_concurrently() -> None:
    barrier = threading.Barrier(2, timeout=5)

    class _BarrierClient(_Client):
        def get_stats(self, branch_hash: str) -> dict:
            # Deadlocks into BrokenBarrierError unless both calls are in flight together.
            barrier.wait()
            return super().get_stats(branch_hash)

    client = _BarrierClient({"main": {"stats": STATS_A}, "dev": {"stats": STATS_B}})

    report = compare_branches(client, REPO_URL, "main", "dev")

    assert report.trades_leader == "dev"
