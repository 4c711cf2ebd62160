"""Typed client for the agent service endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote

from mantle_forge.errors import AgentNotFoundError, RemoteStateError, TransportError

DEFAULT_API_BASE = "https://mantle-git-agent.onrender.com"
DEFAULT_TIMEOUT = 15.0

_ERROR_BODY_FIELDS = ("error", "detail", "message")


def encode_path_segment(value: str) -> str:
    # Same unreserved set as JavaScript's encodeURIComponent.
    return quote(value, safe="!*'()")


def _error_message_from_body(body: object) -> str | None:
    if not isinstance(body, dict):
        return None
    for field in _ERROR_BODY_FIELDS:
        value = body.get(field)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


@dataclass
class AgentServiceClient:
    base_url: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    retries: int = 2

    def __post_init__(self) -> None:
        try:
            import requests
            from requests.adapters import HTTPAdapter
            from urllib3.util.retry import Retry
        except Exception as exc:  # pragma: no cover
            raise TransportError(f"requests stack unavailable: {exc}") from exc

        self._requests = requests
        self._session = requests.Session()
        retry = Retry(
            total=max(0, int(self.retries)),
            connect=max(0, int(self.retries)),
            read=max(0, int(self.retries)),
            status=max(0, int(self.retries)),
            status_forcelist=(429, 502, 503, 504),
            backoff_factor=0.2,
            # restart and secret writes are not idempotent
            allowed_methods=("GET",),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry)
        self._session.mount("http://", adapter)
        self._session.mount("https://", adapter)

    def _url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, *, json_payload: dict | None = None) -> dict:
        try:
            response = self._session.request(
                method,
                self._url(path),
                json=json_payload,
                timeout=self.timeout,
            )
        except self._requests.Timeout as exc:
            raise TransportError(f"request timed out after {self.timeout}s: {exc}") from exc
        except self._requests.RequestException as exc:
            raise TransportError(str(exc)) from exc

        if response.status_code >= 400:
            try:
                body = response.json()
            except Exception:
                body = None
            detail = _error_message_from_body(body)
            message = detail or f"agent service request failed: {response.status_code}"
            error_cls: type[RemoteStateError] = (
                AgentNotFoundError if response.status_code == 404 else TransportError
            )
            raise error_cls(message, status_code=response.status_code, body=body)

        try:
            payload = response.json()
        except Exception as exc:
            raise TransportError(
                "agent service returned a non-JSON response",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise TransportError(
                "agent service returned an unexpected response shape",
                status_code=response.status_code,
                body=payload,
            )
        return payload

    def get_stats(self, branch_hash: str) -> dict:
        return self._request("GET", f"/api/stats/{branch_hash}")

    def check_secrets(self, branch_hash: str) -> dict:
        return self._request("GET", f"/api/secrets/check/{branch_hash}")

    def set_secret(self, *, repo_url: str, branch_name: str, key: str, value: str) -> dict:
        # The service derives the branch hash itself for writes.
        return self._request(
            "POST",
            "/api/secrets",
            json_payload={
                "repo_url": repo_url,
                "branch_name": branch_name,
                "key": key,
                "value": value,
            },
        )

    def get_logs(self, repo_url: str, branch_name: str) -> dict:
        return self._request(
            "GET",
            f"/api/logs/{encode_path_segment(repo_url)}/{encode_path_segment(branch_name)}",
        )

    def restart_agent(self, branch_hash: str) -> dict:
        return self._request("POST", f"/api/agents/branch/{branch_hash}/restart")


__all__ = ["AgentServiceClient", "DEFAULT_API_BASE", "DEFAULT_TIMEOUT"]
