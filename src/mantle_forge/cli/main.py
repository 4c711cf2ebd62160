"""Command-line interface for mantle-forge."""

from __future__ import annotations

import argparse
import json
import re
import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as pkg_version
from pathlib import Path
from typing import Callable, Sequence

from mantle_forge.agent import MAX_LOG_LINES, RestartResult, parse_log_lines
from mantle_forge.cli.config import (
    ConfigError,
    ConfigStore,
    ProjectConfig,
    RuntimeSettings,
    load_runtime_settings,
)
from mantle_forge.cli.vcs import GitContext
from mantle_forge.client import AgentServiceClient
from mantle_forge.compare import compare_branches, render_report
from mantle_forge.crypto.branch_identity import BranchContext
from mantle_forge.errors import (
    AgentNotFoundError,
    BranchUndeterminedError,
    ComparisonError,
    NoStatsError,
    NotConfiguredError,
    RemoteStateError,
    ValidationError,
)
from mantle_forge.layout import TableLayout
from mantle_forge.protocols import ConfigStoreProtocol, RemoteStateClient, VcsContext
from mantle_forge.secrets import SecretsStatus, parse_secret_assignment
from mantle_forge.stats import StatsSnapshot, fetch_stats, format_rate

EXIT_SUCCESS = 0
EXIT_PRECONDITION_FAILED = 1

PUSH_BRANCH_HINT = "  -> Make sure you've pushed this branch"

_SENSITIVE_FIELDS = (
    "private_key",
    "secret",
    "token",
    "password",
    "authorization",
    "api_key",
)


def _cli_version() -> str:
    try:
        return pkg_version("mantle-forge")
    except PackageNotFoundError:
        return "0.0.0+local"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mantle-forge",
        description="Manage the per-branch Mantle agents deployed from this repository",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"mantle-forge {_cli_version()}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    version = sub.add_parser("version", help="Show CLI version and agent service endpoint")
    version.add_argument("--json", action="store_true", help="Print version details as JSON")

    init = sub.add_parser("init", help="Initialize MantleForge for this repository")
    init.add_argument(
        "--repo-url",
        default=None,
        help="Repository URL to store (skips the interactive prompt)",
    )

    secrets = sub.add_parser("secrets", help="Manage secrets for the current branch")
    secrets_sub = secrets.add_subparsers(dest="secrets_command", required=True)
    secrets_set = secrets_sub.add_parser(
        "set", help="Set a secret for the current branch (e.g. KEY=VALUE)"
    )
    secrets_set.add_argument(
        "assignment",
        nargs="+",
        metavar="KEY=VALUE",
        help="Secret assignment; everything after the first '=' is the value",
    )
    secrets_check = secrets_sub.add_parser(
        "check", help="Check which required secrets are set for the current branch"
    )
    secrets_check.add_argument("--json", action="store_true")

    stats = sub.add_parser("stats", help="View performance metrics for the current branch agent")
    stats.add_argument("--json", action="store_true")

    logs = sub.add_parser("logs", help=f"Show the last {MAX_LOG_LINES} agent log entries")
    logs.add_argument("--json", action="store_true")

    restart = sub.add_parser("restart", help="Restart the agent for the current branch")
    restart.add_argument("--json", action="store_true")

    compare = sub.add_parser("compare", help="Compare agent metrics of two branches")
    compare.add_argument("branch_a", help="First branch name")
    compare.add_argument("branch_b", help="Second branch name")
    compare.add_argument("--json", action="store_true")

    return parser


def _sanitize_error_text(value: str, *, secrets: Sequence[str] = ()) -> str:
    redacted = value
    for secret in secrets:
        if secret:
            redacted = redacted.replace(secret, "[REDACTED]")
    for field in _SENSITIVE_FIELDS:
        redacted = re.sub(
            rf"(?i)({field}\"?\s*[=:]\s*\"?)([^,\s\"]+)",
            r"\1[REDACTED]",
            redacted,
        )
    redacted = re.sub(r"(?i)([?&](?:secret|token|api_key)=)([^&\s]+)", r"\1[REDACTED]", redacted)
    return redacted


def _print_error(
    stderr,
    prefix: str,
    message: str,
    *,
    code: int,
    secrets: Sequence[str] = (),
) -> int:
    print(f"{prefix}: {_sanitize_error_text(message, secrets=secrets)}", file=stderr)
    return code


def _print_remote_error(
    stderr,
    exc: RemoteStateError,
    *,
    action: str,
    branch_name: str,
    secrets: Sequence[str] = (),
) -> int:
    if isinstance(exc, AgentNotFoundError):
        _print_error(
            stderr,
            "service error",
            f'Agent not found for branch "{branch_name}"',
            code=EXIT_SUCCESS,
        )
        print(PUSH_BRANCH_HINT, file=stderr)
        return EXIT_SUCCESS
    # Only the service's text is redacted; the action label is ours.
    detail = _sanitize_error_text(str(exc), secrets=secrets)
    print(f"service error: {action}: {detail}", file=stderr)
    return EXIT_SUCCESS


def _load_branch_context(*, store: ConfigStoreProtocol, vcs: VcsContext) -> BranchContext:
    config = store.load()
    branch_name = vcs.current_branch().strip()
    if not branch_name:
        raise BranchUndeterminedError("Could not determine git branch.")
    return BranchContext(repo_url=config.repo_url, branch_name=branch_name)


def _run_version(*, settings: RuntimeSettings, as_json: bool, stdout) -> int:
    payload = {
        "cli": "mantle-forge",
        "version": _cli_version(),
        "api_base": settings.api_base,
        "config_file": settings.config_filename,
    }
    if as_json:
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    print(f"mantle-forge {payload['version']}", file=stdout)
    print(f"agent service: {payload['api_base']}", file=stdout)
    print(f"config file: {payload['config_file']}", file=stdout)
    return EXIT_SUCCESS


def _run_init(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    prompt: Callable[[str], str],
    config_filename: str,
    stdout,
    stderr,
) -> int:
    if store.exists():
        try:
            existing = store.load()
        except ConfigError as exc:
            return _print_error(stderr, "config error", str(exc), code=EXIT_PRECONDITION_FAILED)
        print("This project is already initialized.", file=stdout)
        print(f"Current repository: {existing.repo_url}", file=stdout)
        print(
            f"To reinitialize with a different repository, delete {config_filename} first.",
            file=stdout,
        )
        return EXIT_SUCCESS

    repo_url = (args.repo_url or "").strip()
    if not repo_url:
        default = vcs.origin_url().strip()
        question = "What is your GitHub repository URL (e.g., https://github.com/user/repo.git)?"
        if default:
            question = f"{question} [{default}]"
        try:
            answer = prompt(f"{question} ").strip()
        except EOFError:
            answer = ""
        repo_url = answer or default

    if not repo_url:
        return _print_error(
            stderr, "input error", "Repository URL is required.", code=EXIT_SUCCESS
        )

    try:
        store.save(ProjectConfig(repo_url=repo_url))
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_PRECONDITION_FAILED)

    print(f"{config_filename} created.", file=stdout)
    print("", file=stdout)
    print("Next steps:", file=stdout)
    print("   git push origin main", file=stdout)
    print("   Your agent will be deployed automatically!", file=stdout)
    return EXIT_SUCCESS


def _run_secrets_set(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    client_factory: Callable[[], RemoteStateClient],
    stdout,
    stderr,
) -> int:
    # Shell word splitting is undone so values may contain spaces.
    raw = " ".join(args.assignment)
    try:
        key, value = parse_secret_assignment(raw)
    except ValidationError as exc:
        return _print_error(stderr, "input error", str(exc), code=EXIT_SUCCESS)

    context = _load_branch_context(store=store, vcs=vcs)
    print(f"Setting secret {key} for branch {context.branch_name}...", file=stdout)
    try:
        client_factory().set_secret(
            repo_url=context.repo_url,
            branch_name=context.branch_name,
            key=key,
            value=value,
        )
    except RemoteStateError as exc:
        return _print_remote_error(
            stderr,
            exc,
            action="Error setting secret",
            branch_name=context.branch_name,
            secrets=(value,),
        )

    print(f"Secret {key} set.", file=stdout)
    return EXIT_SUCCESS


def _run_secrets_check(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    client_factory: Callable[[], RemoteStateClient],
    stdout,
    stderr,
) -> int:
    context = _load_branch_context(store=store, vcs=vcs)
    if not args.json:
        print(f"Checking secrets for branch: {context.branch_name}...", file=stdout)
    try:
        status = SecretsStatus.from_payload(client_factory().check_secrets(context.branch_hash))
    except RemoteStateError as exc:
        return _print_remote_error(
            stderr, exc, action="Error checking secrets", branch_name=context.branch_name
        )

    if args.json:
        payload = {"branch_name": context.branch_name, **status.to_dict()}
        print(json.dumps(payload, sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    print(f"\n--- Secrets Status for {context.branch_name} ---", file=stdout)
    print("\nRequired Secrets:", file=stdout)
    for record in status.required:
        marker = "Set    " if record.set else "Missing"
        print(f"  {marker} {record.key}", file=stdout)

    print("\nStatus:", file=stdout)
    if status.all_required_set:
        print("  All required secrets are set! Agent is ready to run.", file=stdout)
    else:
        print(f"  Missing required secrets: {', '.join(status.missing)}", file=stdout)
    return EXIT_SUCCESS


def _print_stats(snapshot: StatsSnapshot, stdout) -> None:
    stats = snapshot.stats
    if stats is None:
        print("No performance metrics available yet.", file=stdout)
        return

    print(f"\n--- Mantle Agent Performance: {snapshot.branch_name} ---", file=stdout)
    print(f"  Total Decisions: {stats.total_decisions}", file=stdout)
    print(f"  BUY Signals:     {stats.buy_count}", file=stdout)
    print(f"  HOLD Signals:    {stats.hold_count}", file=stdout)
    print(f"  Trades Executed: {stats.trades_executed}", file=stdout)

    if stats.total_decisions == 0:
        print("\nNo trading decisions recorded yet.", file=stdout)
        return

    if stats.avg_price:
        print("\n  Price Statistics:", file=stdout)
        print(f"    Average: ${stats.avg_price:.4f}", file=stdout)
        if stats.min_price is not None:
            print(f"    Min:     ${stats.min_price:.4f}", file=stdout)
        if stats.max_price is not None:
            print(f"    Max:     ${stats.max_price:.4f}", file=stdout)

    rate = stats.success_rate
    if stats.trades_executed > 0 and rate is not None:
        print(f"\n  Success Rate: {format_rate(rate)}", file=stdout)


def _run_stats(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    client_factory: Callable[[], RemoteStateClient],
    stdout,
    stderr,
) -> int:
    context = _load_branch_context(store=store, vcs=vcs)
    if not args.json:
        print(f"Fetching stats for {context.branch_name}...", file=stdout)
    try:
        snapshot = fetch_stats(client_factory(), context.repo_url, context.branch_name)
    except RemoteStateError as exc:
        return _print_remote_error(
            stderr,
            exc,
            action=f"Error fetching stats for {context.branch_name}",
            branch_name=context.branch_name,
        )

    if args.json:
        print(json.dumps(snapshot.to_dict(), sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    _print_stats(snapshot, stdout)
    return EXIT_SUCCESS


def _run_logs(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    client_factory: Callable[[], RemoteStateClient],
    stdout,
    stderr,
) -> int:
    context = _load_branch_context(store=store, vcs=vcs)
    if not args.json:
        print(f"Fetching logs for {context.branch_name}...", file=stdout)
    try:
        # Logs are addressed by repo URL and branch name, not by branch hash.
        lines = parse_log_lines(client_factory().get_logs(context.repo_url, context.branch_name))
    except RemoteStateError as exc:
        return _print_remote_error(
            stderr, exc, action="Error fetching logs", branch_name=context.branch_name
        )

    if args.json:
        print(json.dumps({"branch_name": context.branch_name, "logs": lines}), file=stdout)
        return EXIT_SUCCESS

    print(
        f"--- Recent Agent Logs: {context.branch_name} (Last {MAX_LOG_LINES} entries) ---",
        file=stdout,
    )
    if not lines:
        print("No logs found.", file=stdout)
    for line in lines:
        print(line, file=stdout)
    return EXIT_SUCCESS


def _run_restart(
    *,
    args,
    store: ConfigStoreProtocol,
    vcs: VcsContext,
    client_factory: Callable[[], RemoteStateClient],
    stdout,
    stderr,
) -> int:
    context = _load_branch_context(store=store, vcs=vcs)
    if not args.json:
        print(f"Restarting agent for branch {context.branch_name}...", file=stdout)
    try:
        result = RestartResult.from_payload(client_factory().restart_agent(context.branch_hash))
    except RemoteStateError as exc:
        return _print_remote_error(
            stderr, exc, action="Error restarting agent", branch_name=context.branch_name
        )

    if args.json:
        print(
            json.dumps({"branch_name": context.branch_name, **result.to_dict()}, sort_keys=True),
            file=stdout,
        )
        return EXIT_SUCCESS

    if not result.success:
        return _print_error(
            stderr,
            "service error",
            f"Agent restart was not accepted for {context.branch_name}",
            code=EXIT_SUCCESS,
        )
    print(f"Agent restarted for {context.branch_name}.", file=stdout)
    agent_status = (result.agent or {}).get("status")
    if agent_status:
        print(f"  status: {agent_status}", file=stdout)
    return EXIT_SUCCESS


def _run_compare(
    *,
    args,
    store: ConfigStoreProtocol,
    client_factory: Callable[[], RemoteStateClient],
    layout: TableLayout,
    stdout,
    stderr,
) -> int:
    config = store.load()
    branch_a = args.branch_a.strip()
    branch_b = args.branch_b.strip()
    if not branch_a or not branch_b:
        return _print_error(
            stderr, "input error", "Both branch names must be non-empty.", code=EXIT_SUCCESS
        )

    if not args.json:
        print(f"Comparing {branch_a} vs {branch_b}...", file=stdout)
    try:
        report = compare_branches(client_factory(), config.repo_url, branch_a, branch_b)
    except ComparisonError as exc:
        return _print_remote_error(
            stderr,
            exc.cause,
            action=f"Error fetching stats for {exc.branch_name}",
            branch_name=exc.branch_name,
        )
    except NoStatsError as exc:
        return _print_error(
            stderr,
            "service error",
            f"At least one branch has no metrics yet ({', '.join(exc.branch_names)})",
            code=EXIT_SUCCESS,
        )

    if args.json:
        print(json.dumps(report.to_dict(), sort_keys=True), file=stdout)
        return EXIT_SUCCESS

    print("", file=stdout)
    for line in render_report(report, layout=layout):
        print(line, file=stdout)
    return EXIT_SUCCESS


def main(
    argv: Sequence[str] | None = None,
    *,
    stdout=sys.stdout,
    stderr=sys.stderr,
    settings: RuntimeSettings | None = None,
    store: ConfigStoreProtocol | None = None,
    vcs: VcsContext | None = None,
    client: RemoteStateClient | None = None,
    prompt: Callable[[str], str] = input,
) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if settings is None:
        try:
            settings = load_runtime_settings()
        except ConfigError as exc:
            return _print_error(stderr, "config error", str(exc), code=EXIT_PRECONDITION_FAILED)

    if store is None:
        store = ConfigStore(Path.cwd() / settings.config_filename)
    if vcs is None:
        vcs = GitContext()

    def client_factory() -> RemoteStateClient:
        if client is not None:
            return client
        return AgentServiceClient(base_url=settings.api_base, timeout=settings.timeout)

    layout = TableLayout(label_width=settings.label_width, value_width=settings.value_width)
    remote_kwargs = {
        "args": args,
        "store": store,
        "vcs": vcs,
        "client_factory": client_factory,
        "stdout": stdout,
        "stderr": stderr,
    }

    try:
        if args.command == "version":
            return _run_version(settings=settings, as_json=args.json, stdout=stdout)

        if args.command == "init":
            return _run_init(
                args=args,
                store=store,
                vcs=vcs,
                prompt=prompt,
                config_filename=settings.config_filename,
                stdout=stdout,
                stderr=stderr,
            )

        if args.command == "secrets":
            if args.secrets_command == "set":
                return _run_secrets_set(**remote_kwargs)
            if args.secrets_command == "check":
                return _run_secrets_check(**remote_kwargs)

        if args.command == "stats":
            return _run_stats(**remote_kwargs)

        if args.command == "logs":
            return _run_logs(**remote_kwargs)

        if args.command == "restart":
            return _run_restart(**remote_kwargs)

        if args.command == "compare":
            return _run_compare(
                args=args,
                store=store,
                client_factory=client_factory,
                layout=layout,
                stdout=stdout,
                stderr=stderr,
            )
    except NotConfiguredError as exc:
        _print_error(stderr, "config error", str(exc), code=EXIT_PRECONDITION_FAILED)
        print("Run `mantle-forge init` to initialize MantleForge in this repository.", file=stderr)
        return EXIT_PRECONDITION_FAILED
    except ConfigError as exc:
        return _print_error(stderr, "config error", str(exc), code=EXIT_PRECONDITION_FAILED)
    except BranchUndeterminedError as exc:
        return _print_error(stderr, "branch error", str(exc), code=EXIT_PRECONDITION_FAILED)

    print("unknown command", file=stderr)
    return EXIT_PRECONDITION_FAILED


def entrypoint() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    entrypoint()
