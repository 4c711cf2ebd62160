"""Capability contracts consumed by the command dispatcher."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from mantle_forge.cli.config import ProjectConfig


class RemoteStateClient(Protocol):
    def get_stats(self, branch_hash: str) -> dict: ...

    def check_secrets(self, branch_hash: str) -> dict: ...

    def set_secret(self, *, repo_url: str, branch_name: str, key: str, value: str) -> dict: ...

    def get_logs(self, repo_url: str, branch_name: str) -> dict: ...

    def restart_agent(self, branch_hash: str) -> dict: ...


class VcsContext(Protocol):
    def current_branch(self) -> str: ...

    def origin_url(self) -> str: ...


class ConfigStoreProtocol(Protocol):
    def exists(self) -> bool: ...

    def load(self) -> "ProjectConfig": ...

    def save(self, config: "ProjectConfig") -> None: ...


__all__ = ["ConfigStoreProtocol", "RemoteStateClient", "VcsContext"]
