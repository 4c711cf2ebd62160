"""Error types for the mantle-forge client."""

from __future__ import annotations


class MantleForgeError(RuntimeError):
    """Base client error."""


class NotConfiguredError(MantleForgeError):
    """Repository has no local mantle-forge config."""


class BranchUndeterminedError(MantleForgeError):
    """Current git branch could not be determined."""


class ValidationError(MantleForgeError, ValueError):
    """Local input was rejected before any remote call."""


class SecretFormatError(ValidationError):
    """Secret assignment is not of the form KEY=VALUE."""


class RemoteStateError(MantleForgeError):
    """Agent service call failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: object | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AgentNotFoundError(RemoteStateError):
    """No agent is deployed for the requested branch identity."""


class TransportError(RemoteStateError):
    """Network failure, timeout, non-2xx status or malformed response."""


class ComparisonError(MantleForgeError):
    """One side of a branch comparison could not be fetched."""

    def __init__(self, branch_name: str, cause: RemoteStateError) -> None:
        super().__init__(f"failed to fetch stats for {branch_name}: {cause}")
        self.branch_name = branch_name
        self.cause = cause


class NoStatsError(MantleForgeError):
    """At least one compared branch has not produced metrics yet."""

    def __init__(self, branch_names: tuple[str, ...]) -> None:
        super().__init__(f"no metrics available yet for: {', '.join(branch_names)}")
        self.branch_names = branch_names
