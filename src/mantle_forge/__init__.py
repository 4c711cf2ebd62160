"""mantle-forge public surface."""

from mantle_forge.agent import MAX_LOG_LINES, RestartResult, parse_log_lines
from mantle_forge.client import AgentServiceClient
from mantle_forge.compare import ComparisonReport, compare_branches, render_report
from mantle_forge.crypto.branch_identity import (
    BranchContext,
    is_branch_hash,
    keccak256_hex,
    resolve_branch_hash,
    validate_branch_hash,
)
from mantle_forge.errors import (
    AgentNotFoundError,
    BranchUndeterminedError,
    ComparisonError,
    MantleForgeError,
    NoStatsError,
    NotConfiguredError,
    RemoteStateError,
    SecretFormatError,
    TransportError,
    ValidationError,
)
from mantle_forge.layout import TableLayout, pad_visible, render_table, strip_styles, visible_width
from mantle_forge.protocols import ConfigStoreProtocol, RemoteStateClient, VcsContext
from mantle_forge.secrets import SecretRecord, SecretsStatus, parse_secret_assignment
from mantle_forge.stats import AgentStats, StatsSnapshot, fetch_stats

__all__ = [
    "MantleForgeError",
    "NotConfiguredError",
    "BranchUndeterminedError",
    "ValidationError",
    "SecretFormatError",
    "RemoteStateError",
    "AgentNotFoundError",
    "TransportError",
    "ComparisonError",
    "NoStatsError",
    "AgentServiceClient",
    "RemoteStateClient",
    "VcsContext",
    "ConfigStoreProtocol",
    "BranchContext",
    "keccak256_hex",
    "resolve_branch_hash",
    "is_branch_hash",
    "validate_branch_hash",
    "parse_secret_assignment",
    "SecretRecord",
    "SecretsStatus",
    "AgentStats",
    "StatsSnapshot",
    "fetch_stats",
    "MAX_LOG_LINES",
    "parse_log_lines",
    "RestartResult",
    "ComparisonReport",
    "compare_branches",
    "render_report",
    "TableLayout",
    "pad_visible",
    "render_table",
    "strip_styles",
    "visible_width",
]
